"""
Where to find the reviewed file inside add-on and version detail records.

A new add-on exposes its file under the channel's version record
(`current_version` for listed, `latest_unlisted_version` for unlisted), while a
version detail record carries the file directly.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from amo_submit.exceptions import MalformedResponse

from .interfaces import Channel, FileRecord


class FileLocation(Enum):
    """Path to the file sub-record within a detail record."""

    LISTED = ("current_version", "file")
    UNLISTED = ("latest_unlisted_version", "file")
    VERSION = ("file",)

    @property
    def path(self) -> Tuple[str, ...]:
        return self.value

    @classmethod
    def for_channel(cls, channel: Union[Channel, str]) -> "FileLocation":
        """Return the location used by an add-on record for `channel`."""
        if Channel(channel) is Channel.LISTED:
            return cls.LISTED
        return cls.UNLISTED

    def extract(self, data: Any) -> Optional[FileRecord]:
        """
        Project the file sub-record out of a detail record.

        A key missing from the record is treated as a malformed response. A key
        present with a null value means the record is not populated yet (for example
        `current_version` before a listed add-on is approved) and yields None.

        Raises:
            MalformedResponse: If the record does not have the expected shape.
        """
        node: Any = data
        for key in self.path:
            if node is None:
                return None
            if not isinstance(node, Mapping) or key not in node:
                raise MalformedResponse(
                    f"Detail record has no '{'.'.join(self.path)}'", body=data
                )
            node = node[key]
        if node is None:
            return None
        if not isinstance(node, Mapping):
            raise MalformedResponse(
                f"Detail record '{'.'.join(self.path)}' is not an object", body=data
            )
        return FileRecord.from_json(node)
