"""Property-based tests (Hypothesis) for the WAV format module.

These tests use property-based testing to verify that:
1. Round-trip preservation: raw samples survive write -> read bit for bit
2. Scaled round trips stay within one quantization step
3. Enumeration and random access always agree
4. Headers survive build -> serialize -> parse
"""

import numpy as np
import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from pcmwav.format import Header, WavFile, WavWriter
from pcmwav.format.samples import channel_amplitude
from pcmwav.types import SUPPORTED_BIT_DEPTHS, Scale


def bit_depth_strategy() -> st.SearchStrategy[int]:
    """Generate any supported bit depth."""
    return st.sampled_from(SUPPORTED_BIT_DEPTHS)


@st.composite
def raw_frames(draw: st.DrawFn, max_channels: int = 4, max_frames: int = 32) -> tuple[int, np.ndarray]:
    """Generate a bit depth and an int64 (frames, channels) array that fits it."""
    bits = draw(bit_depth_strategy())
    channels = draw(st.integers(min_value=1, max_value=max_channels))
    frames = draw(st.integers(min_value=0, max_value=max_frames))
    high = channel_amplitude(bits)
    values = draw(
        st.lists(
            st.integers(min_value=-high - 1, max_value=high),
            min_size=frames * channels,
            max_size=frames * channels,
        )
    )
    return bits, np.array(values, dtype=np.int64).reshape(frames, channels)


@st.composite
def physical_frames(draw: st.DrawFn, amplitude: float) -> np.ndarray:
    """Generate a (frames, channels) float array within +/- amplitude."""
    channels = draw(st.integers(min_value=1, max_value=3))
    frames = draw(st.integers(min_value=1, max_value=32))
    values = draw(
        st.lists(
            st.floats(
                min_value=-amplitude,
                max_value=amplitude,
                allow_nan=False,
                allow_infinity=False,
            ),
            min_size=frames * channels,
            max_size=frames * channels,
        )
    )
    return np.array(values, dtype=np.float64).reshape(frames, channels)


class TestRoundTripPreservation:
    """Property tests for write/read round trips."""

    @settings(
        max_examples=50,
        suppress_health_check=[HealthCheck.too_slow],
        deadline=None,
    )
    @given(data=raw_frames(), sample_rate=st.integers(min_value=1, max_value=192000))
    def test_raw_samples_preserved(
        self,
        tmp_path_factory: pytest.TempPathFactory,
        data: tuple[int, np.ndarray],
        sample_rate: int,
    ) -> None:
        """Raw integer samples should survive a write/read cycle unchanged."""
        bits, frames = data
        path = tmp_path_factory.mktemp("raw") / "test.wav"

        with WavWriter(path, frames.shape[1], sample_rate, bits) as writer:
            writer.write_frames(frames)

        wav = WavFile(path)
        assert wav.frames_count == frames.shape[0]
        assert wav.sample_rate == sample_rate
        assert wav.channels_count == frames.shape[1]
        assert wav.bits_per_sample == bits
        for i in range(wav.frames_count):
            np.testing.assert_array_equal(wav[i].values(), frames[i])

    @settings(
        max_examples=50,
        suppress_health_check=[HealthCheck.too_slow],
        deadline=None,
    )
    @given(
        bits=bit_depth_strategy(),
        amplitude=st.floats(min_value=1e-3, max_value=1e6),
        data=st.data(),
    )
    def test_scaled_values_within_one_step(
        self,
        tmp_path_factory: pytest.TempPathFactory,
        bits: int,
        amplitude: float,
        data: st.DataObject,
    ) -> None:
        """Scaled values should come back within one quantization step."""
        frames = data.draw(physical_frames(amplitude))
        scale = Scale(amplitude)
        path = tmp_path_factory.mktemp("scaled") / "test.wav"

        with WavWriter(path, frames.shape[1], 8000, bits, scale=scale) as writer:
            writer.write_frames(frames)

        wav = WavFile(path, scale=scale)
        tolerance = scale.resolution(bits) + amplitude * 1e-12
        for channel in range(wav.channels_count):
            np.testing.assert_allclose(
                wav.channel_float(channel), frames[:, channel], rtol=0, atol=tolerance
            )

    @settings(
        max_examples=30,
        suppress_health_check=[HealthCheck.too_slow],
        deadline=None,
    )
    @given(data=raw_frames(max_frames=16))
    def test_enumeration_matches_random_access(
        self, tmp_path_factory: pytest.TempPathFactory, data: tuple[int, np.ndarray]
    ) -> None:
        """Enumeration should yield exactly the frames the indexer returns."""
        bits, frames = data
        path = tmp_path_factory.mktemp("enum") / "test.wav"

        with WavWriter(path, frames.shape[1], 8000, bits) as writer:
            writer.write_frames(frames)

        wav = WavFile(path)
        items = list(wav.enumerate_samples())
        assert len(items) == wav.frames_count
        for i, (time, values) in enumerate(items):
            assert time == wav[i].time
            np.testing.assert_array_equal(values, wav[i].values())


class TestHeaderInvariants:
    """Property tests for header serialization."""

    @given(
        channels=st.integers(min_value=1, max_value=64),
        bits=bit_depth_strategy(),
        sample_rate=st.integers(min_value=1, max_value=384000),
        frames=st.integers(min_value=0, max_value=100000),
    )
    def test_header_roundtrip(self, channels: int, bits: int, sample_rate: int, frames: int) -> None:
        """A built header should parse back to itself."""
        block_align = channels * bits // 8
        header = Header.build(channels, sample_rate, block_align, bits, frames * block_align)

        parsed = Header.parse(header.to_bytes(), file_length=header.file_length)

        assert parsed == header
        assert parsed.frame_count == frames
        assert parsed.byte_rate == sample_rate * block_align
