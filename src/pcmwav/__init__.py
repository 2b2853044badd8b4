"""pcmwav - PCM WAV reading and writing.

This package reads and writes uncompressed PCM audio stored in RIFF/WAVE
files, with random access to frames, lazy sync and asyncio enumeration of
samples, and a writer that commits the header once the payload is complete.

Example Usage
-------------
>>> import numpy as np
>>> from pcmwav import Scale, WavFile, save_wav
>>>
>>> t = np.arange(44100) / 44100
>>> save_wav("tone.wav", np.sin(2 * np.pi * 440 * t), scale=Scale(1.0))
>>>
>>> wav = WavFile("tone.wav", scale=Scale(1.0))
>>> print(f"{wav.frames_count} frames, {wav.file_time_length:.1f} s")
>>> left = wav.channel_float(0)
"""

from pcmwav.format import (
    ArrayLengthError,
    ForwardOnlyStream,
    Frame,
    FrameIndexError,
    Header,
    RiffError,
    ShortReadError,
    UnsupportedWidthError,
    WavData,
    WavFile,
    WavFormatError,
    WavReader,
    WavStream,
    WavWriter,
    WriteOnlyStream,
    load_wav,
    open_wav,
    save_wav,
)
from pcmwav.types import AudioFormat, Sample, Scale, WavFormat

__all__ = [
    # Types
    "AudioFormat",
    "WavFormat",
    "Scale",
    "Sample",
    "Header",
    "Frame",
    # Reader
    "WavReader",
    "WavFile",
    "WavStream",
    "WavData",
    "open_wav",
    "load_wav",
    # Writer
    "WavWriter",
    "save_wav",
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
