"""PCM WAV writer.

The writer reserves a zeroed 44-byte header, appends frames sequentially and
commits the real header only when it is closed, once the payload length is
known. A writer that is never closed leaves a file with a zero header.
"""

import asyncio
import io
import logging
import os
from collections.abc import Callable, Iterable, Sequence
from os import PathLike
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO

import numpy as np
from numpy.typing import ArrayLike

from pcmwav.format.riff import HEADER_LENGTH, MAX_DATA_LENGTH, Header, RiffError
from pcmwav.format.samples import channel_amplitude, encode_block, encode_sample, quantize
from pcmwav.format.streams import (
    WriteOnlyStream,
    check_cancelled,
    is_seekable,
    stream_length,
    write_all_async,
)
from pcmwav.format.validation import ArrayLengthError, validate_file_name, validate_values_length
from pcmwav.types import (
    DEFAULT_BITS_PER_SAMPLE,
    DEFAULT_CHANNELS_COUNT,
    DEFAULT_SAMPLE_RATE,
    Scale,
    WavFormat,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Any]


class WavWriter:
    """Sequential writer for PCM WAV files.

    Values passed to the write methods may be integers, floats or Decimals.
    Integers are written as raw samples. Floats and Decimals are clamped to the
    scale amplitude and quantized when a scale is set, and only rounded when it
    is not.

    Example:
        >>> with WavWriter("tone.wav", sample_rate=8000, scale=Scale(1.0)) as w:
        ...     w.write_frames(np.sin(np.linspace(0, 2 * np.pi, 8000)))
    """

    def __init__(
        self,
        target: str | PathLike[str] | BinaryIO,
        channels_count: int = DEFAULT_CHANNELS_COUNT,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE,
        *,
        scale: Scale | None = None,
        leave_open: bool = False,
    ) -> None:
        """Create a file, or take over a seekable stream, and reserve the header.

        Args:
            target: Output path or seekable binary stream. The header is
                written at the stream's current position.
            channels_count: Number of channels per frame.
            sample_rate: Frames per second.
            bits_per_sample: Sample width: 8, 16, 32 or 64.
            scale: Physical scale for float and Decimal values.
            leave_open: Leave a caller-supplied stream open on close.

        Raises:
            ValueError: If the path is empty or the format is invalid or
                cannot be stored in the header.
            io.UnsupportedOperation: If the stream cannot seek.
        """
        if target is None:
            raise ValueError("target must not be None")
        self._format = WavFormat(channels_count, sample_rate, bits_per_sample)
        self._scale = scale

        if isinstance(target, (str, PathLike)):
            validate_file_name(target)
            self._stream: BinaryIO = open(Path(target), "wb")
            self._leave_open = False
        else:
            if not is_seekable(target):
                raise io.UnsupportedOperation("WAV output requires a seekable stream")
            self._stream = target
            self._leave_open = leave_open

        self._origin = self._stream.tell()
        self._block = bytearray(self._format.block_align)
        self._closed = False
        self._final_header: Header | None = None
        self._stream.write(bytes(HEADER_LENGTH))
        logger.debug(
            "Opened WAV writer: %d ch, %d Hz, %d bit",
            channels_count,
            sample_rate,
            bits_per_sample,
        )

    @property
    def format(self) -> WavFormat:
        return self._format

    @property
    def channels_count(self) -> int:
        return self._format.channels_count

    @property
    def sample_rate(self) -> int:
        return self._format.sample_rate

    @property
    def bits_per_sample(self) -> int:
        return self._format.bits_per_sample

    @property
    def block_align(self) -> int:
        return self._format.block_align

    @property
    def scale(self) -> Scale | None:
        return self._scale

    @property
    def channel_amplitude(self) -> int:
        return channel_amplitude(self._format.bits_per_sample)

    @property
    def resolution(self) -> float | None:
        """Physical value of one quantization step, or None without a scale."""
        if self._scale is None:
            return None
        return self._scale.resolution(self._format.bits_per_sample)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def time(self) -> float:
        """Duration written so far in seconds."""
        return self._written() / self._format.block_align / self._format.sample_rate

    @property
    def header(self) -> Header:
        """Header describing the payload written so far."""
        if self._final_header is not None:
            return self._final_header
        end = stream_length(self._stream)
        data_length = max(0, end - self._origin - HEADER_LENGTH)
        return Header.build(
            self._format.channels_count,
            self._format.sample_rate,
            self._format.block_align,
            self._format.bits_per_sample,
            data_length,
        )

    def _written(self) -> int:
        if self._final_header is not None:
            return self._final_header.subchunk2_size
        return self._stream.tell() - self._origin - HEADER_LENGTH

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed WavWriter")

    def _check_room(self, nbytes: int) -> None:
        if self._written() + nbytes > MAX_DATA_LENGTH:
            raise RiffError(
                f"Appending {nbytes} bytes would exceed the {MAX_DATA_LENGTH} byte "
                "payload limit of a WAV file"
            )

    def _append(self, data: bytes | bytearray | memoryview) -> None:
        self._check_room(memoryview(data).nbytes)
        self._stream.write(data)

    async def _append_async(self, data: bytes | bytearray | memoryview) -> None:
        self._check_room(memoryview(data).nbytes)
        await write_all_async(self._stream, bytes(data))

    def _encode(self, values: Sequence[Any] | np.ndarray) -> bytearray:
        """Quantize one frame into the reusable block buffer."""
        self._ensure_open()
        validate_values_length(values, self._format.channels_count)
        raw = quantize(values, self._format.bits_per_sample, self._scale)
        width = self._format.bytes_per_sample
        for channel, value in enumerate(raw):
            encode_sample(int(value), self._block, channel * width, width)
        return self._block

    # -- frame writes ----------------------------------------------------

    def write(self, *values: Any) -> float:
        """Append one frame, one value per channel.

        A single sequence or array argument is taken as the whole frame, so
        ``write(1, 2)`` and ``write([1, 2])`` are equivalent.

        Returns:
            Duration written so far in seconds.

        Raises:
            ArrayLengthError: If the value count differs from the channel count.
            RiffError: If the frame would not fit the 32-bit size fields.
        """
        self._append(self._encode(_unpack(values)))
        return self.time

    async def write_async(self, *values: Any, cancel: asyncio.Event | None = None) -> float:
        """Asynchronous counterpart of :meth:`write`."""
        check_cancelled(cancel)
        await self._append_async(self._encode(_unpack(values)))
        return self.time

    def write_frames(self, frames: ArrayLike) -> float:
        """Append many frames at once.

        Args:
            frames: Array of shape (frames, channels). A 1-D array is accepted
                for single-channel files.

        Returns:
            Duration written so far in seconds.
        """
        self._ensure_open()
        data = frames if isinstance(frames, np.ndarray) else np.asarray(frames)
        channels = self._format.channels_count
        if data.ndim == 1 and channels == 1:
            data = data.reshape(-1, 1)
        if data.ndim != 2 or data.shape[1] != channels:
            raise ArrayLengthError(
                f"Frames of shape {data.shape} do not match the channel count of the file",
                actual=data.shape[-1] if data.ndim else 0,
                expected=channels,
                field="frames[0]",
            )
        raw = quantize(data, self._format.bits_per_sample, self._scale)
        self._append(encode_block(raw, self._format.bytes_per_sample))
        return self.time

    def write_signals(self, *signals: Iterable[Any], progress: ProgressCallback | None = None) -> float:
        """Append frames built from one iterable per channel.

        The iterables are advanced in lock step and writing stops silently at
        the end of the shortest one.

        Args:
            signals: One iterable of values per channel.
            progress: Called with the number of frames written after each frame.

        Returns:
            Duration written so far in seconds.
        """
        _check_signals(signals, self._format.channels_count)
        for count, values in enumerate(zip(*signals), start=1):
            self._append(self._encode(values))
            if progress is not None:
                progress(count)
        return self.time

    async def write_signals_async(
        self,
        *signals: Iterable[Any],
        progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> float:
        """Asynchronous counterpart of :meth:`write_signals`.

        ``cancel`` is an ``asyncio.Event`` checked before each frame.
        """
        _check_signals(signals, self._format.channels_count)
        for count, values in enumerate(zip(*signals), start=1):
            check_cancelled(cancel)
            await self._append_async(self._encode(values))
            if progress is not None:
                progress(count)
        return self.time

    # -- raw access ------------------------------------------------------

    def write_raw(self, buffer: bytes | bytearray | memoryview) -> float:
        """Append already encoded payload bytes."""
        self._ensure_open()
        self._append(buffer)
        return self.time

    async def write_raw_async(self, buffer: bytes | bytearray | memoryview) -> float:
        self._ensure_open()
        await self._append_async(buffer)
        return self.time

    def data_stream(self) -> WriteOnlyStream:
        """Write-only view of the payload stream.

        Bytes written to the view are appended to the payload. Closing the
        view does not close the writer.
        """
        self._ensure_open()
        return WriteOnlyStream(self._stream)

    # -- finalization ----------------------------------------------------

    def _finish(self) -> Header | None:
        if self._closed:
            return None
        self._closed = True
        header = self.header
        self._final_header = header
        self._stream.seek(self._origin, os.SEEK_SET)
        return header

    def _release(self, header: Header) -> None:
        self._stream.seek(0, os.SEEK_END)
        self._stream.flush()
        logger.debug("Committed WAV header: %d frames", header.frame_count)
        if not self._leave_open:
            self._stream.close()

    def close(self) -> None:
        """Commit the header and close the output.

        Calling close more than once has no further effect.
        """
        header = self._finish()
        if header is None:
            return
        try:
            header.write(self._stream)
        finally:
            self._release(header)

    async def aclose(self) -> None:
        """Asynchronous counterpart of :meth:`close`."""
        header = self._finish()
        if header is None:
            return
        try:
            await header.write_async(self._stream)
        finally:
            self._release(header)

    def __enter__(self) -> "WavWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> "WavWriter":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _unpack(values: tuple[Any, ...]) -> Any:
    if len(values) == 1 and isinstance(values[0], (Sequence, np.ndarray)) and not isinstance(
        values[0], (str, bytes)
    ):
        return values[0]
    return values


def _check_signals(signals: tuple[Any, ...], channels_count: int) -> None:
    if len(signals) != channels_count:
        raise ArrayLengthError(
            "Number of signals does not match the channel count of the file",
            actual=len(signals),
            expected=channels_count,
            field="signals",
        )


def save_wav(
    path: str | PathLike[str],
    samples: ArrayLike,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE,
    *,
    scale: Scale | None = None,
) -> Header:
    """Write a whole signal to a WAV file.

    Args:
        path: Output path.
        samples: Array of shape (frames,) for mono or (frames, channels).
        sample_rate: Frames per second.
        bits_per_sample: Sample width: 8, 16, 32 or 64.
        scale: Physical scale for float and Decimal samples.

    Returns:
        The committed header.
    """
    data = samples if isinstance(samples, np.ndarray) else np.asarray(samples)
    channels_count = 1 if data.ndim == 1 else data.shape[1]
    with WavWriter(path, channels_count, sample_rate, bits_per_sample, scale=scale) as writer:
        writer.write_frames(data)
    return writer.header
