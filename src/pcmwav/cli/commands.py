import logging
import sys
from pathlib import Path
from typing import Annotated

import numpy as np
from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pcmwav.cli.validators import (
    validate_channel_count,
    validate_non_negative_integer,
    validate_positive_number,
)
from pcmwav.format import RiffError, WavFile, WavWriter
from pcmwav.format.samples import dequantize
from pcmwav.types import AudioFormat, BitDepth, Scale

app = App(name="pcmwav", help="A utility for inspecting and generating PCM WAV files")
console = Console()


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(message, style="bold red")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(message, style="bold green")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(message, style="bold yellow")


def configure_logging(verbose: bool) -> None:
    """Route library log records through the rich console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def open_or_report(file: Path, validate: bool = True) -> WavFile | None:
    """Open a WAV file, printing an error and returning None when it cannot be read."""
    if not file.exists():
        print_error(f"Error: File not found: {file}")
        return None
    try:
        return WavFile(file, validate=validate)
    except RiffError as e:
        print_error(f"Error reading {file}: {e}")
        return None


@app.command
def info(file: Path, lenient: bool = False, verbose: bool = False) -> int:
    """
    Display the header of a WAV file.

    Parameters
    ----------
    file: Path
        The path to the .wav file
    lenient: bool
        Accept files whose chunk sizes disagree with the file length
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)

    wav = open_or_report(file, validate=not lenient)
    if wav is None:
        return 1

    header = wav.header
    console.print(f"WAV file: {file}")
    console.print(f"  Audio format: {AudioFormat.from_code(header.audio_format).display_name}")
    console.print(f"  Channels: {header.channels_count}")
    console.print(f"  Sample rate: {header.sample_rate} Hz")
    console.print(f"  Bits per sample: {header.bits_per_sample}")
    console.print(f"  Block align: {header.block_align}")
    console.print(f"  Byte rate: {header.byte_rate}")
    console.print(f"  Data length: {header.subchunk2_size:,} bytes")
    console.print(f"  Frames: {wav.frames_count:,}")
    console.print(f"  Duration: {wav.file_time_length:.3f}s")

    if wav.full_length != header.file_length:
        print_warning(
            f"File is {wav.full_length:,} bytes but the header declares {header.file_length:,}"
        )

    return 0


@app.command
def dump(
    file: Path,
    channel: int | None = None,
    count: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 10,
    start: Annotated[int, Parameter(validator=validate_non_negative_integer)] = 0,
    amplitude: Annotated[float | None, Parameter(validator=validate_positive_number)] = None,
) -> int:
    """
    Print frames of a WAV file as a table.

    Parameters
    ----------
    file: Path
        The path to the .wav file
    channel: int | None
        Only show this channel
    count: int
        The number of frames to show
    start: int
        The index of the first frame to show
    amplitude: float | None
        Show physical values, with full scale mapped to this amplitude
    """
    wav = open_or_report(file)
    if wav is None:
        return 1

    if channel is not None and not 0 <= channel < wav.channels_count:
        print_error(f"Error: Channel {channel} not in file with {wav.channels_count} channel(s)")
        return 1

    scale = Scale(amplitude) if amplitude is not None else None
    channels = [channel] if channel is not None else list(range(wav.channels_count))
    stop = min(start + count, wav.frames_count)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Frame", justify="right")
    table.add_column("Time (s)", justify="right")
    for ch in channels:
        table.add_column(f"Ch {ch}", justify="right")

    try:
        for index in range(start, stop):
            frame = wav[index]
            values = dequantize(frame.values(), wav.bits_per_sample, scale)
            cells = [f"{values[ch]:.6g}" if scale else str(int(values[ch])) for ch in channels]
            table.add_row(str(index), f"{frame.time:.6f}", *cells)
    except RiffError as e:
        print_error(f"Error reading frames: {e}")
        return 1

    console.print(table)
    if stop - start < count:
        print_warning(f"Only {max(stop - start, 0)} of {count} requested frames available")

    return 0


@app.command
def sine(
    output: Path,
    frequency: Annotated[float, Parameter(validator=validate_positive_number)] = 1000.0,
    amplitude: Annotated[float, Parameter(validator=validate_positive_number)] = 1000.0,
    duration: Annotated[float, Parameter(validator=validate_positive_number)] = 5.0,
    sample_rate: Annotated[int, Parameter(validator=validate_positive_number)] = 44100,
    bits: BitDepth = 16,
    channels: Annotated[int, Parameter(validator=validate_channel_count)] = 1,
) -> int:
    """
    Generate a sine wave and write it to a WAV file.

    Parameters
    ----------
    output: Path
        The output destination for the .wav file
    frequency: float
        The frequency of the sine in Hz
    amplitude: float
        The peak amplitude; also used as the full-scale value of the file
    duration: float
        The length of the signal in seconds
    sample_rate: int
        The sample rate in Hz
    bits: BitDepth
        The bit depth of each sample
    channels: int
        The number of channels; every channel carries the same signal
    """
    frames = int(round(duration * sample_rate))
    t = np.arange(frames) / sample_rate
    wave = amplitude * np.sin(2.0 * np.pi * frequency * t)

    try:
        with WavWriter(output, channels, sample_rate, bits, scale=Scale(amplitude)) as writer:
            writer.write_frames(np.repeat(wave[:, np.newaxis], channels, axis=1))
    except ValueError as e:
        print_error(f"Invalid output format: {e}")
        return 1
    except OSError as e:
        print_error(f"Error writing output: {e}")
        return 1

    print_success(f"Wrote {frames:,} frames ({writer.time:.3f}s) to {output}")
    return 0


def main() -> None:
    sys.exit(app())


if __name__ == "__main__":
    main()
