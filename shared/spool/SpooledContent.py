"""Replay buffers for document content.

A document stream can only be consumed once, but the stage needs the bytes
twice: once for type detection and submission, once for the next stage.
The content is therefore spooled into memory or, above a size threshold,
into a temporary file, and read back as often as needed.
"""

import io
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from typing import BinaryIO

from shared.exceptions import SpoolInterruptedError, SpoolIOError

IN_MEMORY_MAXIMUM_SIZE = 65536  # bytes; larger content goes to disk
TEMP_FILE_PREFIX = "mcfmico"
TEMP_FILE_SUFFIX = ".tmp"
COPY_BUFFER_SIZE = 65536


def _wrap_os_error(e: OSError, action: str) -> SpoolIOError:
    if isinstance(e, InterruptedError):
        return SpoolInterruptedError(f"Interrupted while {action} spool: {e}")
    return SpoolIOError(f"Failed {action} spool: {e}")


class SpooledContent(ABC):
    """Write-once / read-many buffer holding a complete copy of a document's bytes."""

    def __init__(self) -> None:
        self._bytes_written = 0
        self._writer_issued = False
        self._writer_closed = False
        self._released = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    @abstractmethod
    def strategy(self) -> str:
        """
        Returns the backing strategy of the spool, "memory" or "file".
        """
        pass

    def length(self) -> int:
        """
        Returns the number of bytes written so far.
        """
        return self._bytes_written

    ##########################################
    ################ WRITING #################
    ##########################################

    def writer(self) -> BinaryIO:
        """Return the single-use sink of the spool.

        The sink must be written completely and closed before reader() is called.

        Returns:
            BinaryIO: The writable sink.

        Raises:
            SpoolIOError: If the writer was already handed out or the spool is released.
        """
        self._check_not_released()
        if self._writer_issued:
            raise SpoolIOError("Spool writer can only be obtained once.")
        self._writer_issued = True
        try:
            sink = self._open_sink()
        except OSError as e:
            raise _wrap_os_error(e, "opening") from e
        return _SpoolWriter(self, sink)

    def write_from(self, stream: BinaryIO | None) -> int:
        """Copy a stream completely into the spool and close the writer.

        Args:
            stream (BinaryIO | None): The source stream, read until exhausted. None spools nothing.

        Returns:
            int: The number of bytes spooled.

        Raises:
            SpoolIOError: If reading the source or writing the spool fails.
            SpoolInterruptedError: If the transfer was interrupted.
        """
        sink = self.writer()
        try:
            if stream is not None:
                shutil.copyfileobj(stream, sink, COPY_BUFFER_SIZE)
        except OSError as e:
            raise _wrap_os_error(e, "writing") from e
        finally:
            sink.close()
        return self.length()

    @abstractmethod
    def _open_sink(self) -> BinaryIO:
        pass

    def _seal_sink(self, sink: BinaryIO) -> None:
        """Hook called with the sink right before it is closed."""
        pass

    ##########################################
    ################ READING #################
    ##########################################

    def reader(self) -> BinaryIO:
        """Return a fresh reader over the full content.

        Every call returns an independent stream positioned at the start.

        Returns:
            BinaryIO: The readable stream. The caller closes it.

        Raises:
            SpoolIOError: If the writer has not been closed yet, the spool is released, or the backing store cannot be opened.
        """
        self._check_not_released()
        if not self._writer_closed:
            raise SpoolIOError("Spool must be written completely before it can be read.")
        try:
            return self._open_source()
        except OSError as e:
            raise _wrap_os_error(e, "reading") from e

    @abstractmethod
    def _open_source(self) -> BinaryIO:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def release(self) -> None:
        """Discard the content and remove any backing file. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self._cleanup()

    @abstractmethod
    def _cleanup(self) -> None:
        pass

    def _check_not_released(self) -> None:
        if self._released:
            raise SpoolIOError("Spool has already been released.")

    def __enter__(self) -> "SpooledContent":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class _SpoolWriter(io.RawIOBase):
    """Sink handed out by SpooledContent.writer(); counts bytes and translates OSError into SpoolIOError."""

    def __init__(self, spool: SpooledContent, sink: BinaryIO) -> None:
        super().__init__()
        self._spool = spool
        self._sink = sink

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        try:
            written = self._sink.write(data)
        except OSError as e:
            raise _wrap_os_error(e, "writing") from e
        self._spool._bytes_written += written
        return written

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._spool._seal_sink(self._sink)
            self._sink.close()
        except OSError as e:
            raise _wrap_os_error(e, "closing") from e
        finally:
            self._spool._writer_closed = True
            super().close()


class MemorySpooledContent(SpooledContent):
    """Spool backed by an in-memory buffer."""

    def __init__(self) -> None:
        super().__init__()
        self._content: bytes = b""

    @property
    def strategy(self) -> str:
        return "memory"

    def _open_sink(self) -> BinaryIO:
        return io.BytesIO()

    def _seal_sink(self, sink: BinaryIO) -> None:
        self._content = sink.getvalue()

    def _open_source(self) -> BinaryIO:
        return io.BytesIO(self._content)

    def _cleanup(self) -> None:
        self._content = b""


class FileSpooledContent(SpooledContent):
    """Spool backed by a temporary file with a collision-resistant name."""

    def __init__(self, directory: str | None = None) -> None:
        super().__init__()
        try:
            fd, self._path = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=TEMP_FILE_SUFFIX, dir=directory)
        except OSError as e:
            raise _wrap_os_error(e, "creating") from e
        self._fd: int | None = fd

    @property
    def strategy(self) -> str:
        return "file"

    @property
    def path(self) -> str:
        return self._path

    def _open_sink(self) -> BinaryIO:
        fd, self._fd = self._fd, None
        return os.fdopen(fd, "wb")

    def _open_source(self) -> BinaryIO:
        return open(self._path, "rb")

    def _cleanup(self) -> None:
        # the descriptor is still ours if no writer was ever handed out
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        try:
            os.remove(self._path)
        except FileNotFoundError:
            pass


def create_spool(size_hint: int, directory: str | None = None) -> SpooledContent:
    """Create a spool suited to the expected content size.

    Args:
        size_hint (int): The expected number of bytes.
        directory (str | None): Directory for temporary files; the system default if None.

    Returns:
        SpooledContent: A memory spool for up to 64K, a file spool otherwise.
    """
    if size_hint <= IN_MEMORY_MAXIMUM_SIZE:
        return MemorySpooledContent()
    return FileSpooledContent(directory=directory)
