"""PCM WAV readers.

This module provides random-access and streaming access to the samples of a
PCM WAV file. Two sources are supported:

- :class:`WavFile` reads from a path and opens an independent file handle for
  every traversal, so several traversals of the same file can run side by side.
- :class:`WavStream` reads from a caller-supplied binary stream. Seekable
  streams are rewound in place for each traversal; forward-only streams can be
  traversed exactly once.

Random access (``reader[i]``) and bulk extraction (``channel``, ``channels``)
are strict and raise when the payload is shorter than the header declares.
Enumeration (``enumerate_samples``) is lenient and simply stops at the first
incomplete frame.
"""

import asyncio
import io
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from numbers import Integral
from os import PathLike
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO

import numpy as np
from numpy.typing import NDArray

from pcmwav.format.frame import Frame
from pcmwav.format.riff import HEADER_LENGTH, FrameIndexError, Header, ShortReadError
from pcmwav.format.samples import (
    channel_amplitude,
    decode_block,
    decode_sample,
    dequantize,
    dequantize_decimal,
)
from pcmwav.format.streams import (
    check_cancelled,
    is_seekable,
    read_exact,
    read_exact_async,
    stream_length,
)
from pcmwav.format.validation import validate_channel_index, validate_file_name
from pcmwav.types import Sample, Scale

logger = logging.getLogger(__name__)

FrameValues = tuple[float, NDArray[np.int64]]
ProgressCallback = Callable[[float], Any]


class _Traversal:
    """Decoding state for one pass over the payload.

    Shared by the blocking and asyncio enumerators, which differ only in how
    they obtain each block.
    """

    def __init__(self, reader: "WavReader", channel: int | None, shared: bool) -> None:
        self.frames = reader.frames_count
        self.block_align = reader.block_align
        self._width = reader.bytes_per_sample
        self._sample_rate = reader.sample_rate
        self._channel = channel
        self._buffer = np.empty(reader.channels_count, dtype=np.int64) if shared else None

    def step(self, index: int, block: bytes) -> Sample | FrameValues:
        time = index / self._sample_rate
        if self._channel is not None:
            return Sample(time, decode_sample(block, self._channel * self._width, self._width))
        values = decode_block(block, self._width)
        if self._buffer is None:
            return time, values
        self._buffer[:] = values
        return time, self._buffer


class WavReader(ABC):
    """Common read operations over a parsed PCM WAV header and its payload."""

    def __init__(self, header: Header, *, scale: Scale | None = None) -> None:
        self._header = header
        self._scale = scale

    # -- stream access ---------------------------------------------------

    @property
    @abstractmethod
    def _data_offset(self) -> int:
        """Absolute offset of the first payload byte in the data stream."""

    @abstractmethod
    def _open_data(self) -> Any:
        """Context manager yielding a stream positioned at the payload start."""

    @property
    def seekable(self) -> bool:
        """Whether frames can be read by index."""
        return True

    # -- header-derived properties ---------------------------------------

    @property
    def header(self) -> Header:
        return self._header

    @property
    def scale(self) -> Scale | None:
        """Default scale for the floating point and decimal channel reads."""
        return self._scale

    @property
    def sample_rate(self) -> int:
        return self._header.sample_rate

    @property
    def channels_count(self) -> int:
        return self._header.channels_count

    @property
    def bits_per_sample(self) -> int:
        return self._header.bits_per_sample

    @property
    def bytes_per_sample(self) -> int:
        return self._header.bytes_per_sample

    @property
    def block_align(self) -> int:
        """Bytes in one frame across all channels."""
        return self._header.block_align

    @property
    def data_length(self) -> int:
        """Declared payload length in bytes."""
        return self._header.subchunk2_size

    @property
    def frames_count(self) -> int:
        return self._header.frame_count

    @property
    def dt(self) -> float:
        """Sampling period in seconds."""
        return 1.0 / self._header.sample_rate

    @property
    def file_time_length(self) -> float:
        """Duration of the declared frames in seconds."""
        return self.frames_count * self.dt

    @property
    def channel_amplitude(self) -> int:
        return channel_amplitude(self._header.bits_per_sample)

    def __len__(self) -> int:
        return self.frames_count

    # -- random access ---------------------------------------------------

    def __getitem__(self, index: int) -> Frame:
        """Read the frame at ``index``.

        Raises:
            FrameIndexError: If the frame lies outside the stream.
            ShortReadError: If the stream returned less than one frame.
            io.UnsupportedOperation: If the source cannot seek.
        """
        if not isinstance(index, Integral):
            raise TypeError(f"Frame index must be an integer, got {type(index).__name__}")
        if not self.seekable:
            raise io.UnsupportedOperation("Random access requires a seekable source")

        block_align = self.block_align
        with self._open_data() as stream:
            length = stream_length(stream)
            offset = self._data_offset + index * block_align
            if index < 0 or length is None or offset + block_align > length:
                raise FrameIndexError(
                    f"Frame {index} at offset {offset} lies outside the stream "
                    f"(length {length}, frame size {block_align})"
                )
            stream.seek(offset, os.SEEK_SET)
            data = read_exact(stream, block_align)

        if len(data) != block_align:
            raise ShortReadError(f"Read of frame {index} at offset {offset} failed", block_align, len(data))
        return Frame(index / self.sample_rate, self.channels_count, data)

    # -- bulk reads ------------------------------------------------------

    def _read_frames(self) -> NDArray[np.int64]:
        """Read the whole payload in one pass as a (frames, channels) array."""
        expected = self.frames_count * self.block_align
        with self._open_data() as stream:
            data = read_exact(stream, expected)
        if len(data) != expected:
            raise ShortReadError("Payload ended before the declared frame count", expected, len(data))
        return decode_block(data, self.bytes_per_sample).reshape(self.frames_count, self.channels_count)

    def channel(self, channel: int) -> NDArray[np.int64]:
        """Read every raw sample of one channel.

        Raises:
            IndexError: If ``channel`` is not a channel of this file.
            ShortReadError: If the payload is shorter than declared.
        """
        validate_channel_index(channel, self.channels_count)
        return self._read_frames()[:, channel].copy()

    def channel_float(self, channel: int, scale: Scale | None = None) -> NDArray[np.float64]:
        """Read one channel as float64, scaled by ``scale`` or the reader's scale.

        Without any scale the raw integer values are returned as floats.
        """
        return dequantize(self.channel(channel), self.bits_per_sample, scale or self._scale)

    def channel_decimal(self, channel: int, scale: Scale | None = None) -> list[Decimal]:
        """Read one channel as Decimal values, scaled like :meth:`channel_float`."""
        return dequantize_decimal(self.channel(channel), self.bits_per_sample, scale or self._scale)

    def channels(self) -> NDArray[np.int64]:
        """Read every channel; the result has shape (channels_count, frames_count)."""
        return np.ascontiguousarray(self._read_frames().T)

    # -- enumeration -----------------------------------------------------

    def enumerate_samples(
        self, channel: int | None = None, *, shared: bool = False
    ) -> Iterator[Any]:
        """Lazily iterate over the payload, one frame at a time.

        Args:
            channel: Yield ``Sample(time, value)`` for this channel only. When
                None, yield ``(time, values)`` for all channels.
            shared: Reuse one values array for every step. The caller must
                consume each item before advancing.

        Returns:
            A single-pass iterator. It ends silently at the first incomplete
            frame.
        """
        if channel is not None:
            validate_channel_index(channel, self.channels_count)
        return self._enumerate(_Traversal(self, channel, shared))

    def _enumerate(self, traversal: _Traversal) -> Iterator[Any]:
        with self._open_data() as stream:
            for index in range(traversal.frames):
                block = read_exact(stream, traversal.block_align)
                if len(block) != traversal.block_align:
                    _log_early_end(index, traversal.frames)
                    return
                yield traversal.step(index, block)

    def enumerate_samples_async(
        self,
        channel: int | None = None,
        *,
        shared: bool = False,
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[Any]:
        """Asynchronous counterpart of :meth:`enumerate_samples`.

        Args:
            channel: As for :meth:`enumerate_samples`.
            shared: As for :meth:`enumerate_samples`.
            progress: Called with ``index / frames_count`` after each frame.
            cancel: Checked before each frame; when set the iteration raises
                ``asyncio.CancelledError``.
        """
        if channel is not None:
            validate_channel_index(channel, self.channels_count)
        return self._enumerate_async(_Traversal(self, channel, shared), progress, cancel)

    async def _enumerate_async(
        self,
        traversal: _Traversal,
        progress: ProgressCallback | None,
        cancel: asyncio.Event | None,
    ) -> AsyncIterator[Any]:
        check_cancelled(cancel)
        with self._open_data() as stream:
            for index in range(traversal.frames):
                check_cancelled(cancel)
                block = await read_exact_async(stream, traversal.block_align)
                if len(block) != traversal.block_align:
                    _log_early_end(index, traversal.frames)
                    return
                item = traversal.step(index, block)
                if progress is not None:
                    progress(index / traversal.frames)
                yield item

    # -- lifetime --------------------------------------------------------

    def close(self) -> None:
        """Release the underlying source, if this reader owns one."""

    def __enter__(self) -> "WavReader":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _log_early_end(index: int, frames: int) -> None:
    logger.warning("Payload ended at frame %d of %d declared frames", index, frames)


class WavFile(WavReader):
    """Reader over a WAV file on disk."""

    def __init__(
        self,
        path: str | PathLike[str],
        *,
        scale: Scale | None = None,
        validate: bool = True,
    ) -> None:
        """Open a WAV file and parse its header.

        Args:
            path: Path to the WAV file.
            scale: Default scale for floating point and decimal reads.
            validate: When False, chunk sizes are not cross-checked against
                the file length, so truncated files can still be opened.

        Raises:
            ValueError: If ``path`` is empty.
            FileNotFoundError: If the file does not exist.
            WavFormatError: If the file is not a valid PCM WAV file.
        """
        validate_file_name(path)
        self._path = Path(path)
        with open(self._path, "rb") as f:
            header = Header.read(f, validate=validate)
        super().__init__(header, scale=scale)
        logger.debug("Opened %s: %d frames", self._path, header.frame_count)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def full_length(self) -> int:
        """Current size of the file in bytes, header included."""
        return self._path.stat().st_size

    @property
    def _data_offset(self) -> int:
        return HEADER_LENGTH

    @contextmanager
    def _open_data(self) -> Iterator[BinaryIO]:
        with open(self._path, "rb") as f:
            f.seek(HEADER_LENGTH, os.SEEK_SET)
            yield f

    def __repr__(self) -> str:
        return f"WavFile({str(self._path)!r}, frames={self.frames_count})"


class WavStream(WavReader):
    """Reader over a caller-supplied binary stream.

    The header is read from the current stream position. If the stream cannot
    seek, the payload can be traversed only once; later traversals see an
    exhausted stream and yield nothing.
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        leave_open: bool = False,
        scale: Scale | None = None,
        validate: bool = True,
    ) -> None:
        if stream is None:
            raise ValueError("stream must not be None")
        self._stream = stream
        self._leave_open = leave_open
        self._seekable = is_seekable(stream)
        self._origin = stream.tell() if self._seekable else 0
        self._consumed = False
        self._closed = False
        super().__init__(Header.read(stream, validate=validate), scale=scale)

    @property
    def stream(self) -> BinaryIO:
        return self._stream

    @property
    def seekable(self) -> bool:
        return self._seekable

    @property
    def _data_offset(self) -> int:
        return self._origin + HEADER_LENGTH

    @contextmanager
    def _open_data(self) -> Iterator[BinaryIO]:
        if self._closed:
            raise ValueError("I/O operation on closed WavStream")
        if self._seekable:
            self._stream.seek(self._data_offset, os.SEEK_SET)
        elif self._consumed:
            logger.warning("Forward-only stream was already traversed; no data remains")
        self._consumed = True
        yield self._stream

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._leave_open:
            self._stream.close()


def open_wav(
    source: str | PathLike[str] | BinaryIO,
    *,
    leave_open: bool = False,
    scale: Scale | None = None,
    validate: bool = True,
) -> WavReader:
    """Open a reader for a path or a binary stream.

    Paths get a :class:`WavFile`; anything else is treated as a stream and
    wrapped in a :class:`WavStream`.
    """
    if isinstance(source, (str, PathLike)):
        return WavFile(source, scale=scale, validate=validate)
    return WavStream(source, leave_open=leave_open, scale=scale, validate=validate)


@dataclass
class WavData:
    """A fully loaded WAV file."""

    header: Header
    """The parsed file header."""

    samples: NDArray[Any]
    """Samples with shape (frames, channels): int64, or float64 when scaled."""

    @property
    def sample_rate(self) -> int:
        return self.header.sample_rate

    @property
    def channels_count(self) -> int:
        return self.header.channels_count

    @property
    def frames_count(self) -> int:
        return self.samples.shape[0]


def load_wav(
    path: str | PathLike[str],
    *,
    scale: Scale | None = None,
    validate: bool = True,
) -> WavData:
    """Load every sample of a WAV file.

    Args:
        path: Path to the WAV file.
        scale: When given, samples are converted to physical float64 values.
        validate: Whether to cross-check chunk sizes against the file length.

    Returns:
        WavData with the header and a (frames, channels) sample array.
    """
    wav = WavFile(path, scale=scale, validate=validate)
    frames = wav._read_frames()
    if scale is not None:
        return WavData(header=wav.header, samples=dequantize(frames, wav.bits_per_sample, scale))
    return WavData(header=wav.header, samples=frames)
