"""
Transient local staging for uploads.

A StagedFile is owned by the call that created it and must be released on
every exit path. The orchestrator registers each one on an ExitStack right
after creation; release() is idempotent so double registration is harmless.
"""
import asyncio
import logging
import os
import tempfile
from typing import IO, Optional, Protocol

from tubely.config import Settings
from tubely.errors import PayloadTooLarge, StagingFailed

logger = logging.getLogger(__name__)

STAGING_PREFIX = "tubely-upload-"


class AsyncReadable(Protocol):
    """Anything with an async read(size), e.g. starlette's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


class StagedFile:
    """Filesystem-backed handle to bytes being processed."""

    def __init__(self, path: str, file: Optional[IO[bytes]] = None, size: Optional[int] = None):
        self._path = path
        self._file = file
        self._released = False
        self.size = size if size is not None else os.path.getsize(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def released(self) -> bool:
        return self._released

    @property
    def file(self) -> IO[bytes]:
        """Readable, seekable handle (opened lazily for adopted files)."""
        if self._released:
            raise ValueError(f"Staged file {self._path} was released")
        if self._file is None:
            self._file = open(self._path, "rb")
        return self._file

    def rewind(self) -> None:
        self.file.seek(0)

    def read_bytes(self) -> bytes:
        """Read the full content from byte zero."""
        self.rewind()
        return self.file.read()

    def release(self) -> None:
        """Close the handle and delete the file. Safe to call repeatedly."""
        if self._released:
            return
        self._released = True
        if self._file is not None:
            self._file.close()
        try:
            os.remove(self._path)
            logger.debug(f"Removed staged file {self._path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove staged file {self._path}: {e}")

    def __enter__(self) -> "StagedFile":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __repr__(self):
        return f"<StagedFile(path={self._path}, size={self.size}, released={self._released})>"


class StagingStore:
    """Creates StagedFiles in the configured staging directory."""

    def __init__(self, settings: Settings):
        self.directory = settings.staging_dir or tempfile.gettempdir()
        self.chunk_size = settings.staging_chunk_size

    async def stage(self, stream: AsyncReadable, limit: int, suffix: str = "") -> StagedFile:
        """
        Copy ``stream`` into a new temporary file.

        At most ``limit`` bytes are accepted. On any failure the partial
        file is removed before the error propagates, so the caller only owns
        a StagedFile once this returns.

        Raises:
            PayloadTooLarge: If the stream yields more than ``limit`` bytes
            StagingFailed: On local I/O errors
        """
        try:
            fd, path = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=suffix, dir=self.directory)
        except OSError as e:
            raise StagingFailed(detail=str(e)) from e

        staged = StagedFile(path, file=os.fdopen(fd, "w+b"), size=0)
        try:
            written = 0
            while True:
                chunk = await stream.read(self.chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise PayloadTooLarge()
                # Off the event loop
                await asyncio.to_thread(staged.file.write, chunk)
            await asyncio.to_thread(staged.file.flush)
            staged.size = written
            staged.rewind()
        except OSError as e:
            staged.release()
            raise StagingFailed(detail=str(e)) from e
        except BaseException:
            staged.release()
            raise

        logger.info(f"Staged upload at {path} ({written} bytes)")
        return staged

    def adopt(self, path: str) -> StagedFile:
        """Wrap a tool-produced file so it gets the same cleanup guarantee."""
        return StagedFile(path)


async def read_limited(stream: AsyncReadable, limit: int, chunk_size: int = 1 << 20) -> bytes:
    """
    Read a whole stream into memory, refusing more than ``limit`` bytes.

    Raises:
        PayloadTooLarge: If the stream is longer than ``limit``
    """
    chunks = []
    total = 0
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)
