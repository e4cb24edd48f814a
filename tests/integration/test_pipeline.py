"""End-to-end dubbing with a tone provider and real ffmpeg."""

import sys
from pathlib import Path

import pytest
import soundfile as sf

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from dubsync.audio.engine import AudioEngine
from dubsync.cache.manager import SynthesisCache
from dubsync.pipeline import DubbingPipeline
from dubsync.timing.models import Cue, FitState
from dubsync.timing.synthesizer import RateFittingSynthesizer
from test_helpers import ToneProvider, requires_ffmpeg, write_tone

pytestmark = [pytest.mark.integration, requires_ffmpeg]

CUES = [
    Cue(0.5, 2.0, "Dzień dobry"),
    Cue(3.0, 4.0, "Jak się masz?"),
    Cue(4.5, 6.0, ""),
    Cue(6.5, 8.0, "Do widzenia"),
]


def build(provider: ToneProvider, cache: SynthesisCache | None = None) -> DubbingPipeline:
    engine = AudioEngine()
    return DubbingPipeline(RateFittingSynthesizer(provider, engine, cache=cache), engine)


class TestDubbingPipelineIntegration:
    """Test complete runs from cues to encoded audio."""

    @pytest.mark.asyncio
    async def test_speech_only_follows_schedule(self, tmp_path: Path) -> None:
        """Test that the speech track ends where the last cue ends."""
        provider = ToneProvider(default=1.0)

        result = await build(provider).run(CUES, tmp_path / "speech.wav")

        info = sf.info(str(result.output))
        assert info.samplerate == 48000
        assert info.channels == 2
        assert info.duration == pytest.approx(7.5, abs=0.05)
        assert result.final_debt == pytest.approx(0.0)
        assert provider.calls == ["Dzień dobry", "Jak się masz?", "Do widzenia"]

    @pytest.mark.asyncio
    async def test_overlong_cue_sped_up(self, tmp_path: Path) -> None:
        """Test that a cue twice its window is stretched back to fit."""
        provider = ToneProvider(durations={"Jak się masz?": 2.0})
        engine = AudioEngine()
        synthesizer = RateFittingSynthesizer(provider, engine)
        cues = [Cue(0.0, 1.0, "Jak się masz?"), Cue(1.0, 2.0, "Tak")]

        rendered = await synthesizer.render_all(cues, tmp_path / "work")

        assert rendered[0].state is FitState.FITTED
        assert rendered[0].speaking_rate == pytest.approx(2.0, abs=0.01)
        assert rendered[0].actual_duration == pytest.approx(1.0, abs=0.05)

    @pytest.mark.asyncio
    async def test_mix_over_background(self, tmp_path: Path) -> None:
        background = write_tone(tmp_path / "music.wav", 10.0, freq=220.0)
        speech_copy = tmp_path / "kept" / "speech.wav"

        result = await build(ToneProvider()).run(
            CUES,
            tmp_path / "dubbed.flac",
            background=background,
            speech_track=speech_copy,
            max_workers=3,
        )

        assert sf.info(str(result.output)).duration == pytest.approx(10.0, abs=0.05)
        assert sf.info(str(speech_copy)).duration == pytest.approx(7.5, abs=0.05)
        assert result.cache_hits == 1

    @pytest.mark.asyncio
    async def test_second_run_served_from_cache(self, tmp_path: Path) -> None:
        """Test that a warm cache avoids every provider call."""
        cache = SynthesisCache(cache_dir=tmp_path / "cache")
        provider = ToneProvider()

        first = await build(provider, cache).run(CUES, tmp_path / "one.wav")
        calls_after_first = len(provider.calls)
        second = await build(provider, cache).run(CUES, tmp_path / "two.wav")

        assert first.cache_misses == 3
        assert len(provider.calls) == calls_after_first
        assert second.cache_hits == len(CUES)
        assert sf.info(str(tmp_path / "two.wav")).duration == pytest.approx(
            sf.info(str(tmp_path / "one.wav")).duration, abs=0.01
        )
