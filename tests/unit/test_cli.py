"""Unit tests for pcmwav.cli module."""

from pathlib import Path

import numpy as np
import pytest

from pcmwav.cli.commands import app
from pcmwav.format import WavFile, save_wav


class TestCliSine:
    """Test the sine command functionality."""

    def test_sine_default(self, tmp_path: Path) -> None:
        """Test sine command with default parameters."""
        output_path = tmp_path / "sine.wav"

        result = app(["sine", str(output_path)])

        assert result == 0
        assert output_path.exists()

        wav = WavFile(output_path)
        assert wav.frames_count == 220500
        assert wav.sample_rate == 44100
        assert wav.channels_count == 1
        assert wav.block_align == 2
        assert wav.header.subchunk2_size == 441000
        assert wav[0].time == 0.0

    def test_sine_custom_parameters(self, tmp_path: Path) -> None:
        """Test sine command with custom parameters."""
        output_path = tmp_path / "custom.wav"

        assert (
            app(
                [
                    "sine",
                    str(output_path),
                    "--frequency",
                    "250",
                    "--amplitude",
                    "2.5",
                    "--duration",
                    "0.5",
                    "--sample-rate",
                    "8000",
                    "--bits",
                    "32",
                    "--channels",
                    "2",
                ]
            )
            == 0
        )

        wav = WavFile(output_path)
        assert wav.frames_count == 4000
        assert wav.bits_per_sample == 32
        assert wav.channels_count == 2
        np.testing.assert_array_equal(wav.channel(0), wav.channel(1))
        # 250 Hz at 8 kHz peaks every 32 frames, starting at frame 8
        assert wav[8][0] == 2**31 - 1

    def test_sine_invalid_frequency(self, tmp_path: Path) -> None:
        """Test sine command with a non-positive frequency."""
        output_path = tmp_path / "invalid.wav"

        with pytest.raises(SystemExit) as e:
            app(["sine", str(output_path), "--frequency", "0"])

        assert e.value.code == 1
        assert not output_path.exists()

    def test_sine_block_too_wide(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a channel count whose frames overflow the header is reported."""
        output_path = tmp_path / "wide.wav"

        result = app(["sine", str(output_path), "--channels", "20000", "--duration", "0.01"])

        assert result == 1
        assert "block_align" in capsys.readouterr().out
        assert not output_path.exists()


class TestCliInfo:
    """Test the info command functionality."""

    def test_info_valid_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test info command with a valid WAV file."""
        output_path = tmp_path / "info.wav"
        save_wav(output_path, np.zeros((8000, 2), dtype=np.int64), sample_rate=8000)

        assert app(["info", str(output_path)]) == 0
        captured = capsys.readouterr()

        assert "Audio format: PCM" in captured.out
        assert "Channels: 2" in captured.out
        assert "Sample rate: 8000 Hz" in captured.out
        assert "Bits per sample: 16" in captured.out
        assert "Frames: 8,000" in captured.out
        assert "Duration: 1.000s" in captured.out

    def test_info_nonexistent_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test info command with a nonexistent file."""
        assert app(["info", "/nonexistent/file.wav"]) == 1

        assert "File not found" in capsys.readouterr().out

    def test_info_invalid_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test info command with a file that is not a WAV."""
        invalid_path = tmp_path / "invalid.wav"
        invalid_path.write_bytes(b"not a valid wav file" * 4)

        assert app(["info", str(invalid_path)]) == 1

        assert "RIFF" in capsys.readouterr().out

    def test_info_truncated_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test info command on a truncated file with and without --lenient."""
        output_path = tmp_path / "truncated.wav"
        save_wav(output_path, np.arange(100))
        with open(output_path, "r+b") as f:
            f.truncate(100)

        assert app(["info", str(output_path)]) == 1
        capsys.readouterr()

        assert app(["info", str(output_path), "--lenient"]) == 0
        captured = capsys.readouterr()
        assert "Frames: 100" in captured.out
        assert "header declares" in captured.out


class TestCliDump:
    """Test the dump command functionality."""

    def test_dump_frames(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test dumping the first frames as a table."""
        output_path = tmp_path / "dump.wav"
        save_wav(output_path, np.array([[11, -11], [22, -22], [33, -33]]), sample_rate=1000)

        assert app(["dump", str(output_path), "--count", "2"]) == 0
        captured = capsys.readouterr()

        assert "Ch 0" in captured.out
        assert "Ch 1" in captured.out
        assert "-22" in captured.out
        assert "33" not in captured.out

    def test_dump_single_channel_scaled(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test dumping one channel as physical values."""
        output_path = tmp_path / "dump.wav"
        save_wav(output_path, np.array([[32767, 0], [-32767, 0]]), sample_rate=1000)

        assert app(["dump", str(output_path), "--channel", "0", "--amplitude", "2"]) == 0
        captured = capsys.readouterr()

        assert "Ch 1" not in captured.out
        assert "-2" in captured.out
        assert "Only 2 of 10 requested frames available" in captured.out

    def test_dump_invalid_channel(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test dump with a channel the file does not have."""
        output_path = tmp_path / "dump.wav"
        save_wav(output_path, np.array([1, 2, 3]))

        assert app(["dump", str(output_path), "--channel", "3"]) == 1
        assert "Channel 3" in capsys.readouterr().out

    def test_dump_nonexistent_file(self) -> None:
        """Test dump with a nonexistent file."""
        assert app(["dump", "/nonexistent/file.wav"]) == 1
