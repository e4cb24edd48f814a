"""Integration tests for AudioEngine and the ducked mix with real ffmpeg."""

import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from dubsync.audio.engine import CHANNELS, SAMPLE_RATE, AudioEngine
from dubsync.audio.mix import DuckParams, export_speech, mix_with_ducking
from dubsync.errors import AudioEngineError
from test_helpers import requires_ffmpeg, write_tone

pytestmark = [pytest.mark.integration, requires_ffmpeg]


def magnitude(samples: np.ndarray, rate: int, freq: float) -> float:
    """Spectral magnitude of one frequency in a mono window."""
    spectrum = np.abs(np.fft.rfft(samples))
    return float(spectrum[round(freq * len(samples) / rate)])


class TestAudioEngineIntegration:
    """Test engine primitives against real files."""

    def setup_method(self) -> None:
        self.engine = AudioEngine()

    def test_silence_has_requested_length(self, tmp_path: Path) -> None:
        path = self.engine.silence(tmp_path / "gap.wav", 0.75)

        assert self.engine.duration(path) == pytest.approx(0.75, abs=1e-3)

    def test_to_wav_normalizes_format(self, tmp_path: Path) -> None:
        """Test that mono 22.05 kHz input becomes the working stereo format."""
        src = write_tone(tmp_path / "mono.wav", 1.0)

        dst = self.engine.to_wav(src, tmp_path / "work.wav")

        info = sf.info(str(dst))
        assert info.samplerate == SAMPLE_RATE
        assert info.channels == CHANNELS
        assert info.duration == pytest.approx(1.0, abs=0.01)

    @pytest.mark.parametrize("factor", [1.5, 2.0, 3.0])
    def test_stretch_shortens_by_factor(self, tmp_path: Path, factor: float) -> None:
        src = self.engine.to_wav(write_tone(tmp_path / "t.wav", 3.0), tmp_path / "w.wav")

        dst = self.engine.stretch(src, tmp_path / "fast.wav", factor)

        assert self.engine.duration(dst) == pytest.approx(3.0 / factor, abs=0.05)

    def test_trim_removes_trailing_silence_only(self, tmp_path: Path) -> None:
        src = self.engine.to_wav(
            write_tone(tmp_path / "t.wav", 1.0, trailing_silence=1.0), tmp_path / "w.wav"
        )

        dst = self.engine.trim_trailing_silence(src, tmp_path / "trim.wav")

        assert self.engine.duration(src) == pytest.approx(2.0, abs=0.01)
        assert self.engine.duration(dst) == pytest.approx(1.0, abs=0.15)

    def test_concatenate_sums_durations(self, tmp_path: Path) -> None:
        pieces = [
            self.engine.to_wav(write_tone(tmp_path / "a.wav", 0.5), tmp_path / "a_w.wav"),
            self.engine.silence(tmp_path / "gap.wav", 0.25),
            self.engine.to_wav(write_tone(tmp_path / "b.wav", 1.0), tmp_path / "b_w.wav"),
        ]

        out = self.engine.concatenate(pieces, tmp_path / "joined.wav")

        assert self.engine.duration(out) == pytest.approx(1.75, abs=0.01)
        assert not (tmp_path / "joined_concat.txt").exists()

    def test_duration_via_ffprobe(self, tmp_path: Path) -> None:
        """Test probing a compressed file soundfile cannot read."""
        speech = self.engine.silence(tmp_path / "speech.wav", 2.0)
        encoded = export_speech(self.engine, speech, tmp_path / "speech.m4a")

        assert self.engine.duration(encoded) == pytest.approx(2.0, abs=0.1)

    def test_corrupt_input_raises(self, tmp_path: Path) -> None:
        bogus = tmp_path / "bogus.mp3"
        bogus.write_bytes(b"not audio at all")

        with pytest.raises(AudioEngineError):
            self.engine.to_wav(bogus, tmp_path / "out.wav")


class TestDuckedMixIntegration:
    """Test the sidechain mix on synthetic signals."""

    def test_background_ducked_under_speech(self, tmp_path: Path) -> None:
        """Test that the background drops while speech plays and recovers after."""
        engine = AudioEngine()
        background = engine.to_wav(
            write_tone(tmp_path / "bg.wav", 6.0, freq=220.0), tmp_path / "bg_w.wav"
        )
        speech = engine.concatenate(
            [
                engine.silence(tmp_path / "lead.wav", 2.0),
                engine.to_wav(write_tone(tmp_path / "sp.wav", 1.5, freq=1000.0), tmp_path / "sp_w.wav"),
            ],
            tmp_path / "speech.wav",
        )

        out = mix_with_ducking(engine, background, speech, tmp_path / "mix.wav", DuckParams())

        samples, rate = sf.read(str(out))
        assert rate == 48000
        assert len(samples) / rate == pytest.approx(6.0, abs=0.05)
        left = samples[:, 0]
        window = rate // 2
        before = magnitude(left[rate // 2 : rate // 2 + window], rate, 220.0)
        during = magnitude(left[int(2.5 * rate) : int(2.5 * rate) + window], rate, 220.0)
        after = magnitude(left[int(5.0 * rate) : int(5.0 * rate) + window], rate, 220.0)
        assert during < 0.5 * before
        assert after == pytest.approx(before, rel=0.2)

    def test_output_limited(self, tmp_path: Path) -> None:
        engine = AudioEngine()
        background = engine.to_wav(
            write_tone(tmp_path / "bg.wav", 2.0, freq=220.0, amplitude=0.9), tmp_path / "bg_w.wav"
        )
        speech = engine.to_wav(
            write_tone(tmp_path / "sp.wav", 2.0, freq=1000.0, amplitude=0.9), tmp_path / "sp_w.wav"
        )

        out = mix_with_ducking(engine, background, speech, tmp_path / "mix.flac")

        samples, _ = sf.read(str(out))
        assert np.max(np.abs(samples)) <= 0.96
