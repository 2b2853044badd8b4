from pcmwav.types import MAX_INT16


def validate_positive_number(type_: object, value: float | None) -> None:
    """Validate that value is greater than zero."""
    if value is not None and value <= 0:
        raise ValueError("Value must be greater than 0")


def validate_non_negative_integer(type_: object, value: int) -> None:
    if value < 0:
        raise ValueError("Value must not be negative")


def validate_channel_count(type_: object, channels: int) -> None:
    # the fmt chunk stores the channel count as a signed 16-bit field
    if not 0 < channels <= MAX_INT16:
        raise ValueError(f"Channel count must be between 1 and {MAX_INT16}")
