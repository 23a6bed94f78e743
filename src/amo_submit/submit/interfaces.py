"""
Core data structures for the submission workflows.

This module defines the records exchanged with the review service and the
per-run context threaded through the submission pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from amo_submit.constants import (
    CHANNEL_LISTED,
    CHANNEL_UNLISTED,
    DEFAULT_JWT_EXPIRES_IN,
    FILE_STATUS_PUBLIC,
)
from amo_submit.exceptions import MalformedResponse

Pathish = Union[str, Path]
JsonDict = Dict[str, Any]


class Channel(str, Enum):
    """Release track of a submitted version."""

    LISTED = CHANNEL_LISTED
    UNLISTED = CHANNEL_UNLISTED


class WorkflowKind(str, Enum):
    """Which pipeline produced a WorkflowContext."""

    NEW_ADDON = "addon"
    NEW_VERSION = "version"
    DOWNLOAD_LATEST = "download-latest"


@dataclass(frozen=True)
class Credentials:
    """API key pair used to mint per-request tokens."""

    api_key: str
    """JWT issuer"""

    api_secret: str
    """Shared HMAC secret"""

    jwt_expires_in: int = DEFAULT_JWT_EXPIRES_IN
    """Token lifetime in seconds"""

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.api_key!r}, jwt_expires_in={self.jwt_expires_in})"


@dataclass
class UploadRecord:
    """State of an uploaded package as reported by the upload detail endpoint."""

    uuid: str
    processed: bool = False
    valid: bool = False
    validation: Optional[Any] = None
    url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "UploadRecord":
        """
        Build an UploadRecord from an upload response body.

        Raises:
            MalformedResponse: If `data` is not a mapping or has no non-empty `uuid`.
        """
        if not isinstance(data, Mapping) or not data.get("uuid"):
            raise MalformedResponse("Upload response has no uuid", body=data)
        return cls(
            uuid=str(data["uuid"]),
            processed=bool(data.get("processed", False)),
            valid=bool(data.get("valid", False)),
            validation=data.get("validation"),
            url=data.get("url"),
        )


@dataclass
class FileRecord:
    """The file sub-record of a version, carrying its review status."""

    status: Optional[str]
    url: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_public(self) -> bool:
        return self.status == FILE_STATUS_PUBLIC

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "FileRecord":
        return cls(status=data.get("status"), url=data.get("url"), id=data.get("id"))


@dataclass
class WorkflowContext:
    """Per-invocation state threaded from one pipeline stage to the next."""

    kind: WorkflowKind
    channel: Optional[Channel] = None
    addon_id: Optional[str] = None
    upload_uuid: Optional[str] = None
    detail_url: Optional[str] = None
    file_url: Optional[str] = None
    saved_path: Optional[Path] = None
