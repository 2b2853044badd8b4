"""Binary stream helpers.

Blocking and asyncio entry points for filling fixed-size buffers, plus two
restricted stream facades: a write-only view handed out by the writer and a
forward-only view used for sources that cannot seek.
"""

import asyncio
import inspect
import io
import os
from typing import Any, BinaryIO


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, retrying partial reads until EOF.

    Args:
        stream: Readable binary stream.
        size: Number of bytes wanted.

    Returns:
        The bytes read. Shorter than ``size`` only when the stream ended.
    """
    chunk = stream.read(size)
    if chunk is None:
        chunk = b""
    if len(chunk) == size:
        return bytes(chunk)

    buffer = bytearray(chunk)
    while len(buffer) < size:
        chunk = stream.read(size - len(buffer))
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


async def read_exact_async(stream: Any, size: int) -> bytes:
    """Asynchronous counterpart of :func:`read_exact`.

    Streams whose ``read`` returns an awaitable are awaited; for blocking
    streams control is handed back to the event loop once per read call.
    """
    buffer = bytearray()
    while len(buffer) < size:
        chunk = await _read_once(stream, size - len(buffer))
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


async def _read_once(stream: Any, size: int) -> bytes:
    result = stream.read(size)
    if inspect.isawaitable(result):
        return await result or b""
    await asyncio.sleep(0)
    return result or b""


async def write_all_async(sink: Any, data: bytes) -> None:
    """Write ``data`` to ``sink``, awaiting the write when it is a coroutine."""
    result = sink.write(data)
    if inspect.isawaitable(result):
        await result
    else:
        await asyncio.sleep(0)


def is_seekable(stream: Any) -> bool:
    seekable = getattr(stream, "seekable", None)
    if seekable is None:
        return False
    try:
        return bool(seekable())
    except ValueError:
        # closed file objects raise instead of answering
        return False


def stream_length(stream: Any) -> int | None:
    """Total length of a seekable stream, or None when it cannot be known.

    The current position is preserved.
    """
    if not is_seekable(stream):
        return None
    position = stream.tell()
    end = stream.seek(0, os.SEEK_END)
    stream.seek(position, os.SEEK_SET)
    return end


class WriteOnlyStream(io.RawIOBase):
    """Write-only view over another binary stream.

    Reading, seeking and truncation raise ``io.UnsupportedOperation``. Closing
    the view leaves the wrapped stream open.
    """

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    def write(self, b: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        data = bytes(b)
        self._stream.write(data)
        return len(data)

    def flush(self) -> None:
        if not self.closed and not getattr(self._stream, "closed", False):
            self._stream.flush()

    def read(self, size: int = -1) -> bytes:
        raise io.UnsupportedOperation("stream is write-only")

    def readinto(self, b: Any) -> int:
        raise io.UnsupportedOperation("stream is write-only")

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        raise io.UnsupportedOperation("stream is write-only")

    def tell(self) -> int:
        raise io.UnsupportedOperation("stream is write-only")

    def truncate(self, size: int | None = None) -> int:
        raise io.UnsupportedOperation("stream is write-only")


class ForwardOnlyStream(io.RawIOBase):
    """Read-only, non-seekable view over another binary stream.

    Useful for feeding a reader from a pipe-like source, or for hiding the
    seek capability of an in-memory buffer.
    """

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def readinto(self, b: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        view = memoryview(b).cast("B")
        data = self._stream.read(len(view))
        if not data:
            return 0
        view[: len(data)] = data
        return len(data)

    def write(self, b: Any) -> int:
        raise io.UnsupportedOperation("stream is read-only")

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        raise io.UnsupportedOperation("stream is not seekable")

    def tell(self) -> int:
        raise io.UnsupportedOperation("stream is not seekable")

    def truncate(self, size: int | None = None) -> int:
        raise io.UnsupportedOperation("stream is read-only")

    def close(self) -> None:
        if not self.closed:
            self._stream.close()
        super().close()


def check_cancelled(cancel: asyncio.Event | None) -> None:
    """Raise ``asyncio.CancelledError`` once ``cancel`` has been set."""
    if cancel is not None and cancel.is_set():
        raise asyncio.CancelledError("Operation cancelled")
