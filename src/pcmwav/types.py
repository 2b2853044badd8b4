"""Python types for PCM WAV format parameters.

These types describe the stream layout (channels, rate, sample width) and the
optional linear scale used to map raw integer samples to physical values.
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal, NamedTuple, TypeAlias

import numpy as np
from numpy.typing import NDArray

BitDepth = Literal[8, 16, 32, 64]

SUPPORTED_BIT_DEPTHS: tuple[int, ...] = (8, 16, 32, 64)

# Largest values the signed 16- and 32-bit header fields can hold
MAX_INT16 = 0x7FFF
MAX_INT32 = 0x7FFFFFFF

DEFAULT_CHANNELS_COUNT = 1
DEFAULT_SAMPLE_RATE = 44100
DEFAULT_BITS_PER_SAMPLE = 16

RawSamples: TypeAlias = NDArray[np.int64]
PhysicalSamples: TypeAlias = NDArray[np.float64]


class AudioFormat(IntEnum):
    """WAVE format tag stored in the ``fmt `` chunk.

    Only PCM payloads can be decoded. The remaining codes are recognized so
    that error messages can name what was found.
    """

    UNKNOWN = 0x0000
    PCM = 0x0001
    ADPCM = 0x0002
    IEEE_FLOAT = 0x0003
    ALAW = 0x0006
    MULAW = 0x0007
    MPEG = 0x0050
    MPEG_LAYER3 = 0x0055
    EXTENSIBLE = 0xFFFE

    @classmethod
    def from_code(cls, code: int) -> "AudioFormat":
        """Convert a raw format tag, treating unknown values as UNKNOWN."""
        try:
            return cls(code & 0xFFFF)
        except ValueError:
            return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        """Human-readable name for this format."""
        names = {
            self.UNKNOWN: "Unknown",
            self.PCM: "PCM",
            self.ADPCM: "Microsoft ADPCM",
            self.IEEE_FLOAT: "IEEE float",
            self.ALAW: "A-law",
            self.MULAW: "mu-law",
            self.MPEG: "MPEG",
            self.MPEG_LAYER3: "MPEG Layer 3",
            self.EXTENSIBLE: "Extensible",
        }
        return names.get(self, "Unknown")


@dataclass(frozen=True)
class WavFormat:
    """Layout of a PCM stream."""

    channels_count: int = DEFAULT_CHANNELS_COUNT
    """Number of interleaved channels in each frame."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    """Frames per second."""

    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE
    """Width of one channel sample in bits (8, 16, 32 or 64)."""

    def __post_init__(self) -> None:
        if self.channels_count <= 0:
            raise ValueError(f"channels_count must be > 0, got {self.channels_count}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {self.sample_rate}")
        if self.bits_per_sample <= 0:
            raise ValueError(f"bits_per_sample must be > 0, got {self.bits_per_sample}")
        if self.bits_per_sample not in SUPPORTED_BIT_DEPTHS:
            raise ValueError(
                f"Unsupported bits_per_sample {self.bits_per_sample}; "
                f"supported: {', '.join(map(str, SUPPORTED_BIT_DEPTHS))}"
            )
        if self.channels_count > MAX_INT16:
            raise ValueError(f"channels_count must be <= {MAX_INT16}, got {self.channels_count}")
        if self.block_align > MAX_INT16:
            raise ValueError(
                f"block_align {self.block_align} ({self.channels_count} channels x "
                f"{self.bytes_per_sample} bytes) exceeds {MAX_INT16}"
            )
        if self.byte_rate > MAX_INT32:
            raise ValueError(
                f"byte_rate {self.byte_rate} ({self.sample_rate} Hz x "
                f"{self.block_align} bytes) exceeds {MAX_INT32}"
            )

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        """Bytes in one frame across all channels."""
        return self.channels_count * self.bytes_per_sample

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align


@dataclass(frozen=True)
class Scale:
    """Linear mapping between raw samples and a physical quantity.

    A raw sample at full scale (``2**(bits - 1) - 1``) corresponds to
    ``amplitude + offset``.
    """

    amplitude: float
    """Physical value of a full-scale sample. Must be finite and > 0."""

    offset: float = 0.0
    """Physical value of a zero sample. Must be finite."""

    def __post_init__(self) -> None:
        if not math.isfinite(self.amplitude) or self.amplitude <= 0:
            raise ValueError(f"amplitude must be a finite positive number, got {self.amplitude}")
        if not math.isfinite(self.offset):
            raise ValueError(f"offset must be finite, got {self.offset}")

    def resolution(self, bits_per_sample: int) -> float:
        """Physical value of one quantization step at the given bit depth."""
        return self.amplitude / (2 ** (bits_per_sample - 1) - 1)


class Sample(NamedTuple):
    """One channel value at a point in time."""

    time: float
    value: int
