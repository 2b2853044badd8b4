"""RIFF/WAVE header codec.

This module reads, validates and writes the canonical 44-byte header of a PCM
WAV file: a RIFF chunk descriptor, a 16-byte ``fmt `` chunk and the ``data``
chunk header that precedes the sample payload.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Any, BinaryIO

from pcmwav.format.streams import read_exact, stream_length, write_all_async
from pcmwav.types import MAX_INT32, SUPPORTED_BIT_DEPTHS, AudioFormat

logger = logging.getLogger(__name__)

# FourCC identifiers
RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
FMT_ID = b"fmt "
DATA_ID = b"data"

HEADER_LENGTH = 44
PCM_FMT_CHUNK_SIZE = 16

# The RIFF chunk size is a signed 32-bit field covering everything after it
MAX_DATA_LENGTH = MAX_INT32 - (HEADER_LENGTH - 8)

# Offsets (relative to the start of the file) that header checks report
_OFFSETS = {
    "chunk_id": 0,
    "chunk_size": 4,
    "format": 8,
    "subchunk1_id": 12,
    "subchunk1_size": 16,
    "audio_format": 20,
    "channels_count": 22,
    "sample_rate": 24,
    "byte_rate": 28,
    "block_align": 32,
    "bits_per_sample": 34,
    "subchunk2_id": 36,
    "subchunk2_size": 40,
}

_HEADER_STRUCT = struct.Struct("<4si4s4sihhiihh4si")


class RiffError(Exception):
    """Error reading or writing RIFF files."""


class WavFormatError(RiffError):
    """The byte source is not a well-formed PCM WAV container."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        self.offset = _OFFSETS.get(field) if field is not None else None
        if self.offset is not None:
            message = f"{message} (header offset {self.offset})"
        super().__init__(message)


class ShortReadError(RiffError):
    """A strict read returned fewer bytes than one block."""

    def __init__(self, message: str, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{message}: expected {expected} bytes, got {actual}")


class FrameIndexError(RiffError, IndexError):
    """A frame index lies outside the readable payload."""


@dataclass(frozen=True)
class Header:
    """The 44-byte header of a PCM WAV file."""

    chunk_size: int
    """Length of the file minus 8 bytes."""

    subchunk1_size: int
    """Size of the fmt chunk body (16 for PCM)."""

    audio_format: int
    """Format tag (1 for PCM)."""

    channels_count: int
    sample_rate: int

    byte_rate: int
    """Bytes per second: sample_rate * block_align."""

    block_align: int
    """Bytes in one frame across all channels."""

    bits_per_sample: int

    subchunk2_size: int
    """Length of the sample payload in bytes."""

    @classmethod
    def build(
        cls,
        channels_count: int,
        sample_rate: int,
        block_align: int,
        bits_per_sample: int,
        data_length: int,
    ) -> "Header":
        """Build a PCM header for a payload of ``data_length`` bytes.

        Args:
            channels_count: Number of channels.
            sample_rate: Sample rate in Hz.
            block_align: Bytes per frame across all channels.
            bits_per_sample: Bits per channel sample.
            data_length: Payload length in bytes.

        Returns:
            A header with byte_rate derived and the fmt chunk sized for PCM.
        """
        return cls(
            chunk_size=data_length + HEADER_LENGTH - 8,
            subchunk1_size=PCM_FMT_CHUNK_SIZE,
            audio_format=AudioFormat.PCM,
            channels_count=channels_count,
            sample_rate=sample_rate,
            byte_rate=sample_rate * block_align,
            block_align=block_align,
            bits_per_sample=bits_per_sample,
            subchunk2_size=data_length,
        )

    @classmethod
    def parse(
        cls,
        data: bytes,
        *,
        file_length: int | None = None,
        validate: bool = True,
    ) -> "Header":
        """Parse and validate a header from its 44-byte encoding.

        Fields are checked in file order and the first violation is raised,
        except that the sample width is checked ahead of the byte rate and
        block align derived from it.

        Args:
            data: At least 44 bytes starting at the RIFF tag.
            file_length: Total file length when known. Enables the chunk and
                payload size cross-checks.
            validate: When False, the size cross-checks against
                ``file_length`` are skipped. Field-to-field consistency is
                always enforced.

        Returns:
            The parsed header.

        Raises:
            WavFormatError: If the data is not a valid PCM WAV header.
        """
        if not data:
            raise WavFormatError("Cannot read a WAV header from an empty source")
        if len(data) < HEADER_LENGTH:
            raise WavFormatError(
                f"Source too small to hold a WAV header: {len(data)} of {HEADER_LENGTH} bytes"
            )

        (
            chunk_id,
            chunk_size,
            wave_id,
            fmt_id,
            subchunk1_size,
            audio_format,
            channels_count,
            sample_rate,
            byte_rate,
            block_align,
            bits_per_sample,
            data_id,
            subchunk2_size,
        ) = _HEADER_STRUCT.unpack_from(data)

        check_sizes = validate and file_length is not None

        if chunk_id != RIFF_ID:
            raise WavFormatError(f"Not a RIFF file: tag {chunk_id!r}", "chunk_id")
        if check_sizes and chunk_size != file_length - 8:
            raise WavFormatError(
                f"RIFF chunk size {chunk_size} does not match file length "
                f"{file_length} (expected {file_length - 8})",
                "chunk_size",
            )
        if wave_id != WAVE_ID:
            raise WavFormatError(f"Not a WAVE file: tag {wave_id!r}", "format")
        if fmt_id != FMT_ID:
            raise WavFormatError(f"Missing fmt chunk: tag {fmt_id!r}", "subchunk1_id")

        if subchunk1_size != PCM_FMT_CHUNK_SIZE:
            raise WavFormatError(
                f"PCM fmt chunk size must be {PCM_FMT_CHUNK_SIZE}, got {subchunk1_size}",
                "subchunk1_size",
            )
        fmt = AudioFormat.from_code(audio_format)
        if fmt != AudioFormat.PCM:
            raise WavFormatError(
                f"Unsupported audio format {audio_format} ({fmt.display_name}); only PCM is supported",
                "audio_format",
            )
        if channels_count <= 0:
            raise WavFormatError(
                f"Channel count must be > 0, got {channels_count}", "channels_count"
            )
        if sample_rate <= 0:
            raise WavFormatError(f"Sample rate must be > 0, got {sample_rate}", "sample_rate")

        # byte rate and block align are derived from the sample width
        if bits_per_sample not in SUPPORTED_BIT_DEPTHS:
            raise WavFormatError(
                f"Unsupported bits per sample {bits_per_sample}; "
                f"supported: {', '.join(map(str, SUPPORTED_BIT_DEPTHS))}",
                "bits_per_sample",
            )
        expected_block_align = channels_count * (bits_per_sample // 8)
        if byte_rate // expected_block_align != sample_rate:
            raise WavFormatError(
                f"Byte rate {byte_rate} does not match sample rate {sample_rate} x "
                f"{expected_block_align} bytes per frame "
                f"(expected {sample_rate * expected_block_align})",
                "byte_rate",
            )
        if block_align != expected_block_align:
            raise WavFormatError(
                f"Block align {block_align} does not match {channels_count} channels x "
                f"{bits_per_sample} bits (expected {expected_block_align})",
                "block_align",
            )
        if data_id != DATA_ID:
            raise WavFormatError(f"Missing data chunk: tag {data_id!r}", "subchunk2_id")
        if check_sizes and subchunk2_size != file_length - HEADER_LENGTH:
            raise WavFormatError(
                f"Data chunk size {subchunk2_size} does not match file length "
                f"{file_length} (expected {file_length - HEADER_LENGTH})",
                "subchunk2_size",
            )

        return cls(
            chunk_size=chunk_size,
            subchunk1_size=subchunk1_size,
            audio_format=fmt,
            channels_count=channels_count,
            sample_rate=sample_rate,
            byte_rate=byte_rate,
            block_align=block_align,
            bits_per_sample=bits_per_sample,
            subchunk2_size=subchunk2_size,
        )

    @classmethod
    def read(cls, stream: BinaryIO, *, validate: bool = True) -> "Header":
        """Read and validate a header from the current position of a stream.

        The remaining stream length is used for size cross-checks when the
        stream is seekable; for forward-only streams those checks are skipped.

        Raises:
            WavFormatError: If the stream does not start with a valid header.
        """
        total = stream_length(stream)
        file_length = None if total is None else total - stream.tell()
        data = read_exact(stream, HEADER_LENGTH)
        header = cls.parse(data, file_length=file_length, validate=validate)
        logger.debug(
            "Parsed WAV header: %d ch, %d Hz, %d bit, %d data bytes",
            header.channels_count,
            header.sample_rate,
            header.bits_per_sample,
            header.subchunk2_size,
        )
        return header

    def to_bytes(self) -> bytes:
        """Encode the header in its on-disk layout."""
        return _HEADER_STRUCT.pack(
            RIFF_ID,
            self.chunk_size,
            WAVE_ID,
            FMT_ID,
            self.subchunk1_size,
            int(self.audio_format),
            self.channels_count,
            self.sample_rate,
            self.byte_rate,
            self.block_align,
            self.bits_per_sample,
            DATA_ID,
            self.subchunk2_size,
        )

    def write(self, sink: BinaryIO) -> None:
        sink.write(self.to_bytes())

    async def write_async(self, sink: Any) -> None:
        await write_all_async(sink, self.to_bytes())

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample >> 3

    @property
    def frame_count(self) -> int:
        """Number of whole frames declared by the data chunk."""
        return self.subchunk2_size // self.block_align

    @property
    def time_length(self) -> float:
        """Declared payload duration in seconds."""
        return self.subchunk2_size / self.byte_rate

    @property
    def file_length(self) -> int:
        return self.chunk_size + 8
