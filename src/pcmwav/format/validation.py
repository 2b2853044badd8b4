"""Argument validation for readers and writers.

Caller mistakes are reported immediately with ``ValueError``/``IndexError``
subclasses; malformed files are reported by the header codec instead.
"""

from collections.abc import Sized
from os import PathLike


class ArrayLengthError(ValueError):
    """The number of values passed does not match the channel count."""

    def __init__(self, message: str, actual: int, expected: int, field: str | None = None) -> None:
        self.actual = actual
        self.expected = expected
        self.field = field
        super().__init__(message)

    def __str__(self) -> str:
        name = self.field or "values"
        return f"{self.args[0]} - len({name}) = {self.actual}; expected {self.expected}"


def validate_file_name(path: str | PathLike[str] | None) -> None:
    if path is None:
        raise ValueError("File name must not be None")
    if not str(path):
        raise ValueError("File name must not be empty")


def validate_channel_index(channel: int, channels_count: int) -> None:
    if not 0 <= channel < channels_count:
        raise IndexError(
            f"Channel {channel} requested but the file contains {channels_count} channel(s)"
        )


def validate_values_length(values: Sized, channels_count: int) -> None:
    """Check that one value was supplied per channel.

    Raises:
        ArrayLengthError: If the counts differ.
    """
    if len(values) != channels_count:
        raise ArrayLengthError(
            "Number of values does not match the channel count of the file",
            actual=len(values),
            expected=channels_count,
        )
