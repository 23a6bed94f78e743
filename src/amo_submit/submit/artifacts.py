"""
Persisting the signed package downloaded from the review service.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Optional

import aiofiles  # type: ignore[import-untyped]
import aiohttp
from aiohttp import ClientResponse

from amo_submit.constants import BYTES_PER_MEGABYTE, DEFAULT_CHUNK_SIZE, SIGNED_FILE_NAME
from amo_submit.exceptions import DownloadFailed, FileSystemError
from amo_submit.log_utils import logger as default_logger

from .interfaces import Pathish


class ArtifactSaver:
    """Streams a download response into `<download_dir>/the.xpi`."""

    def __init__(
        self,
        download_dir: Pathish,
        file_name: str = SIGNED_FILE_NAME,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.download_dir = Path(download_dir)
        self.file_name = file_name
        self.chunk_size = chunk_size
        self.logger = logger or default_logger

    @property
    def destination(self) -> Path:
        return self.download_dir / self.file_name

    def _discard(self, temp_path: Path) -> None:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                self.logger.debug(f"Could not remove {temp_path}")

    async def save(self, response: ClientResponse) -> Path:
        """
        Write the response body to the destination, replacing any existing file.

        The body is streamed chunk by chunk into a temporary file next to the
        destination, which is then moved into place.

        Returns:
            Path: The written file.

        Raises:
            DownloadFailed: If the response is not ok or has no body.
            FileSystemError: If writing fails; the temporary file is removed.
            aiohttp.ClientError, asyncio.TimeoutError: If reading the body fails; these
                propagate unchanged after the temporary file is removed.
        """
        try:
            if not response.ok or response.content is None:
                raise DownloadFailed(
                    f"Download of signed xpi failed: {response.reason}.",
                    endpoint=str(response.url),
                    status_code=response.status,
                )

            target = self.destination
            temp_path = target.with_name(
                f".{target.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
            )
            downloaded = 0
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        await f.write(chunk)
                        downloaded += len(chunk)
                temp_path.replace(target)
            except (aiohttp.ClientError, asyncio.TimeoutError):
                # ClientOSError and TimeoutError are OSError subclasses
                self._discard(temp_path)
                raise
            except OSError as e:
                self.logger.error(f"Filesystem error saving {target}: {e}")
                self._discard(temp_path)
                raise FileSystemError(
                    "Could not save signed package", path=str(target), details=str(e)
                ) from e
        finally:
            response.release()

        self.logger.info(
            f"Downloaded: {target} ({downloaded / BYTES_PER_MEGABYTE:.2f} MB)"
        )
        return target
