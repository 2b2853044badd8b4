"""Sample codec.

Converts between little-endian signed integer samples and Python/numpy values,
and between raw samples and physical values under a :class:`~pcmwav.types.Scale`.

All widths are signed two's complement: 1, 2, 4 or 8 bytes per sample.
"""

import struct
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_EVEN, Decimal
from numbers import Integral
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pcmwav.format.riff import RiffError
from pcmwav.types import Scale

# Sample width in bytes -> struct format / numpy dtype
_STRUCT_FORMATS = {1: "<b", 2: "<h", 4: "<i", 8: "<q"}
_DTYPES = {width: np.dtype(fmt) for width, fmt in _STRUCT_FORMATS.items()}

# float64 bounds that survive a cast to int64
_INT64_LOW = -(2.0**63)
_INT64_HIGH = float(np.nextafter(2.0**63, 0))


class UnsupportedWidthError(RiffError, ValueError):
    """Sample width is not 1, 2, 4 or 8 bytes."""

    def __init__(self, bytes_per_sample: int) -> None:
        self.bytes_per_sample = bytes_per_sample
        super().__init__(
            f"Sample width of {bytes_per_sample} bytes per channel is not supported "
            "(expected 1, 2, 4 or 8)"
        )


def sample_dtype(bytes_per_sample: int) -> np.dtype:
    """Get the little-endian numpy dtype for a sample width."""
    try:
        return _DTYPES[bytes_per_sample]
    except KeyError:
        raise UnsupportedWidthError(bytes_per_sample) from None


def _struct_format(bytes_per_sample: int) -> str:
    try:
        return _STRUCT_FORMATS[bytes_per_sample]
    except KeyError:
        raise UnsupportedWidthError(bytes_per_sample) from None


def decode_sample(buffer: Any, offset: int, bytes_per_sample: int) -> int:
    """Decode one signed little-endian sample.

    Args:
        buffer: Bytes-like object holding the sample.
        offset: Byte offset of the sample within ``buffer``.
        bytes_per_sample: Width of the sample (1, 2, 4 or 8).

    Returns:
        The sample value.

    Raises:
        UnsupportedWidthError: For any other width.
    """
    return struct.unpack_from(_struct_format(bytes_per_sample), buffer, offset)[0]


def encode_sample(value: int, buffer: Any, offset: int, bytes_per_sample: int) -> None:
    """Encode one sample into a writable buffer.

    Values outside the range of the target width wrap around, as a cast to a
    narrower integer would. Clamping belongs to :func:`quantize`.
    """
    fmt = _struct_format(bytes_per_sample)
    bits = bytes_per_sample * 8
    half = 1 << (bits - 1)
    wrapped = ((int(value) + half) & ((1 << bits) - 1)) - half
    struct.pack_into(fmt, buffer, offset, wrapped)


def decode_block(data: Any, bytes_per_sample: int) -> NDArray[np.int64]:
    """Decode a run of samples into an int64 array."""
    dtype = sample_dtype(bytes_per_sample)
    usable = len(data) - len(data) % bytes_per_sample
    return np.frombuffer(data, dtype=dtype, count=usable // bytes_per_sample).astype(np.int64)


def encode_block(values: ArrayLike, bytes_per_sample: int) -> bytes:
    """Encode integer samples, wrapping values that do not fit the width."""
    dtype = sample_dtype(bytes_per_sample)
    return np.asarray(values, dtype=np.int64).astype(dtype).tobytes()


def channel_amplitude(bits_per_sample: int) -> int:
    """Largest positive sample value at the given bit depth."""
    return (1 << (bits_per_sample - 1)) - 1


def to_physical(raw: Any, resolution: float, offset: float = 0.0) -> Any:
    """Map raw samples to physical values: ``raw * resolution + offset``."""
    return raw * resolution + offset


def to_raw(physical: Any, resolution: float) -> Any:
    """Map offset-free physical values to raw samples, rounding half to even."""
    if isinstance(physical, Decimal):
        return int((physical * (1 / Decimal(resolution))).to_integral_value(ROUND_HALF_EVEN))
    if isinstance(physical, np.ndarray):
        scaled = np.clip(np.rint(physical * (1.0 / resolution)), _INT64_LOW, _INT64_HIGH)
        return scaled.astype(np.int64)
    return round(physical * (1.0 / resolution))


def _is_integral(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def quantize(
    values: Sequence[Any] | NDArray[Any],
    bits_per_sample: int,
    scale: Scale | None = None,
) -> NDArray[np.int64]:
    """Convert channel values of any numeric representation to raw samples.

    Integer values pass through unchanged. Floating point and Decimal values
    are, with a scale, clamped to ``[-amplitude, amplitude]``, shifted by
    ``-offset`` and divided by the resolution; without a scale they are only
    rounded. Rounding is half to even.

    Args:
        values: Channel values for one or more frames.
        bits_per_sample: Target bit depth.
        scale: Optional physical scale.

    Returns:
        Raw integer samples with the same shape as ``values``.

    Raises:
        ValueError: If a float or Decimal value is NaN or infinite.
    """
    if isinstance(values, np.ndarray):
        if np.issubdtype(values.dtype, np.integer):
            return values.astype(np.int64)
        if values.dtype == object:
            return quantize(values.tolist(), bits_per_sample, scale)
        return _quantize_float(values.astype(np.float64), bits_per_sample, scale)

    items = list(values)
    if all(_is_integral(v) for v in items):
        return np.array(items, dtype=np.int64)
    if any(isinstance(v, Decimal) for v in items):
        return np.array(_quantize_decimal(items, bits_per_sample, scale), dtype=np.int64)
    return _quantize_float(np.array(items, dtype=np.float64), bits_per_sample, scale)


def _quantize_float(
    values: NDArray[np.float64], bits_per_sample: int, scale: Scale | None
) -> NDArray[np.int64]:
    if not np.all(np.isfinite(values)):
        bad = int(np.flatnonzero(~np.isfinite(values))[0])
        raise ValueError(
            f"Sample values must be finite; got {values.flat[bad]} at position {bad}"
        )
    if scale is None:
        return to_raw(values, 1.0)
    a = scale.amplitude
    clamped = np.clip(values, -a, a) - scale.offset
    return to_raw(clamped, scale.resolution(bits_per_sample))


def _quantize_decimal(
    values: Iterable[Any], bits_per_sample: int, scale: Scale | None
) -> list[int]:
    decimals = [v if isinstance(v, Decimal) else Decimal(str(v)) for v in values]
    for position, v in enumerate(decimals):
        if not v.is_finite():
            raise ValueError(f"Sample values must be finite; got {v} at position {position}")
    if scale is None:
        return [int(v.to_integral_value(ROUND_HALF_EVEN)) for v in decimals]
    a = Decimal(str(scale.amplitude))
    offset = Decimal(str(scale.offset))
    resolution = Decimal(str(scale.amplitude)) / channel_amplitude(bits_per_sample)
    return [to_raw(min(a, max(-a, v)) - offset, resolution) for v in decimals]


def dequantize(
    raw: ArrayLike, bits_per_sample: int, scale: Scale | None = None
) -> NDArray[np.float64]:
    """Convert raw samples to float64, applying the scale when given."""
    values = np.asarray(raw, dtype=np.float64)
    if scale is None:
        return values
    return to_physical(values, scale.resolution(bits_per_sample), scale.offset)


def dequantize_decimal(
    raw: Iterable[int], bits_per_sample: int, scale: Scale | None = None
) -> list[Decimal]:
    """Convert raw samples to Decimal, applying the scale when given."""
    if scale is None:
        return [Decimal(int(v)) for v in raw]
    resolution = Decimal(str(scale.amplitude)) / channel_amplitude(bits_per_sample)
    offset = Decimal(str(scale.offset))
    return [to_physical(Decimal(int(v)), resolution, offset) for v in raw]
