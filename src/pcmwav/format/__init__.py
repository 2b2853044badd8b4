"""PCM WAV container module.

This module provides functionality for reading and writing PCM audio in the
canonical 44-byte-header RIFF/WAVE layout.

Format Overview
---------------
    +----------------------------------------+
    | RIFF chunk descriptor ("WAVE")         |   12 bytes
    +----------------------------------------+
    | fmt  chunk (PCM, 16-byte body)         |   24 bytes
    +----------------------------------------+
    | data chunk header                      |    8 bytes
    +----------------------------------------+
    | data (interleaved frames)              |
    |   - signed little-endian integers      |
    |   - 8, 16, 32 or 64 bits per sample    |
    +----------------------------------------+

Example Usage
-------------
>>> from pcmwav.format import WavFile, WavWriter
>>> with WavWriter("out.wav", channels_count=2) as writer:
...     writer.write(100, -100)
>>> wav = WavFile("out.wav")
>>> wav[0][1]
-100
"""

from pcmwav.format.frame import Frame
from pcmwav.format.reader import WavData, WavFile, WavReader, WavStream, load_wav, open_wav
from pcmwav.format.riff import (
    HEADER_LENGTH,
    FrameIndexError,
    Header,
    RiffError,
    ShortReadError,
    WavFormatError,
)
from pcmwav.format.samples import UnsupportedWidthError, dequantize, quantize
from pcmwav.format.streams import ForwardOnlyStream, WriteOnlyStream
from pcmwav.format.validation import ArrayLengthError
from pcmwav.format.writer import WavWriter, save_wav

__all__ = [
    # Header
    "HEADER_LENGTH",
    "Header",
    # Reader
    "Frame",
    "WavReader",
    "WavFile",
    "WavStream",
    "WavData",
    "open_wav",
    "load_wav",
    # Writer
    "WavWriter",
    "save_wav",
    # Samples
    "quantize",
    "dequantize",
    # Streams
    "WriteOnlyStream",
    "ForwardOnlyStream",
    # Errors
    "RiffError",
    "WavFormatError",
    "ShortReadError",
    "FrameIndexError",
    "UnsupportedWidthError",
    "ArrayLengthError",
]
