"""
Staging of inbound uploads on local disk.

FFprobe needs a real file path, and the object store upload wants a
seekable stream, so every upload is copied into a temp file first. The
file exists only for the duration of the ``with staged_upload(...)`` block:
leaving the block by any route (return, exception, cancellation) closes the
handle and removes the file.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Generator, Optional, Protocol

from src.core.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


class AsyncReadable(Protocol):
    """Anything with an async ``read(size)``, e.g. Starlette's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


class StagedUpload:
    """A temp file holding one request's upload."""

    def __init__(self, file: BinaryIO, max_bytes: Optional[int] = None) -> None:
        self._file = file
        self._max_bytes = max_bytes
        self.bytes_written = 0

    @property
    def path(self) -> str:
        return self._file.name

    @property
    def file(self) -> BinaryIO:
        return self._file

    async def write_from(
        self,
        source: AsyncReadable,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """
        Copy the source into the staged file in chunks.

        Stops with PayloadTooLargeError on the first chunk that would cross
        the ceiling; that chunk is not written.
        """
        while True:
            chunk = await source.read(chunk_size)
            if not chunk:
                break

            self.bytes_written += len(chunk)
            if self._max_bytes is not None and self.bytes_written > self._max_bytes:
                raise PayloadTooLargeError()

            await asyncio.to_thread(self._file.write, chunk)

        await asyncio.to_thread(self._file.flush)
        return self.bytes_written

    def rewind(self) -> None:
        """Move the cursor back to the start before handing the file on."""
        self._file.seek(0)


@contextmanager
def staged_upload(
    suffix: str = "",
    directory: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> Generator[StagedUpload, None, None]:
    """
    Provide a fresh staged upload and always remove it afterwards.

    Usage:
        with staged_upload(suffix=".mp4", max_bytes=limit) as staged:
            await staged.write_from(upload)
            staged.rewind()
            ...
    """
    tmp = tempfile.NamedTemporaryFile(
        prefix="tubely-upload-",
        suffix=suffix,
        dir=directory,
        delete=False,
    )
    path = tmp.name

    try:
        yield StagedUpload(tmp, max_bytes=max_bytes)
    finally:
        tmp.close()
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                "Failed to remove staged upload",
                extra={"path": path, "error": str(e)}
            )
