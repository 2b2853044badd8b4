"""A single multi-channel frame read from a WAV payload."""

from datetime import timedelta
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pcmwav.format.samples import decode_block, decode_sample


class Frame:
    """Read-only view over the bytes of one frame.

    The frame does not copy its buffer. Two frames compare equal only when they
    share the same buffer object and the same time and channel layout.
    """

    __slots__ = ("_time", "_channels_count", "_data", "_bytes_per_sample")

    def __init__(self, time: float, channels_count: int, data: bytes | bytearray | memoryview) -> None:
        if channels_count <= 0:
            raise ValueError(f"channels_count must be > 0, got {channels_count}")
        self._time = time
        self._channels_count = channels_count
        self._data = data
        self._bytes_per_sample = len(data) // channels_count

    @property
    def time(self) -> float:
        """Offset of the frame from the start of the payload, in seconds."""
        return self._time

    @property
    def channels_count(self) -> int:
        return self._channels_count

    @property
    def bytes_per_sample(self) -> int:
        return self._bytes_per_sample

    @property
    def data(self) -> bytes | bytearray | memoryview:
        """The underlying frame bytes."""
        return self._data

    def __len__(self) -> int:
        return self._channels_count

    def __getitem__(self, channel: int) -> int:
        if not 0 <= channel < self._channels_count:
            raise IndexError(
                f"Channel {channel} out of range for a frame with {self._channels_count} channels"
            )
        return decode_sample(self._data, channel * self._bytes_per_sample, self._bytes_per_sample)

    def values(self) -> NDArray[np.int64]:
        """Decode all channels at once."""
        return decode_block(self._data, self._bytes_per_sample)[: self._channels_count]

    def __iter__(self) -> Any:
        return (self[channel] for channel in range(self._channels_count))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return (
            self._data is other._data
            and self._time == other._time
            and self._channels_count == other._channels_count
            and self._bytes_per_sample == other._bytes_per_sample
        )

    def __hash__(self) -> int:
        return hash((self._time, self._channels_count, id(self._data), self._bytes_per_sample))

    def __repr__(self) -> str:
        channels = "|".join(str(v) for v in self)
        return f"{timedelta(seconds=self._time)}#{channels}"
