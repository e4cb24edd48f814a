"""Unit tests for ducking parameters and the mix filter graph."""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from dubsync.audio.mix import (
    PRESETS,
    DuckParams,
    duck_filtergraph,
    export_speech,
    mix_with_ducking,
    output_codec_args,
    preset,
)
from dubsync.config import DuckConfig
from dubsync.errors import AudioEngineError


class TestDuckParams:
    """Test parameter defaults, presets and overrides."""

    def test_defaults(self) -> None:
        params = DuckParams()
        assert params.threshold_db == -40.0
        assert params.ratio == 20.0
        assert params.attack_ms == 5.0
        assert params.release_ms == 200.0
        assert params.limit == 0.95

    def test_threshold_linear(self) -> None:
        assert DuckParams(threshold_db=-20.0).threshold_linear == pytest.approx(0.1)

    @pytest.mark.parametrize(
        "kwargs",
        [{"threshold_db": 3.0}, {"ratio": 0.5}, {"attack_ms": 0.0}, {"limit": 1.5}],
    )
    def test_validation(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            DuckParams(**kwargs)

    def test_presets(self) -> None:
        assert set(PRESETS) == {"quiet", "normal", "intense"}
        assert preset("normal") == DuckParams()
        assert preset("quiet").threshold_db < preset("intense").threshold_db

    def test_unknown_preset(self) -> None:
        with pytest.raises(KeyError, match="Available presets"):
            preset("loud")

    def test_from_config_applies_overrides(self) -> None:
        params = DuckParams.from_config(DuckConfig(preset="intense", ratio=4.0))
        assert params.ratio == 4.0
        assert params.threshold_db == PRESETS["intense"].threshold_db


class TestFilterGraph:
    """Test the sidechain-duck-mix-limit graph."""

    def test_graph_structure(self) -> None:
        graph = duck_filtergraph(DuckParams())
        stages = graph.split(";")

        assert stages[0] == "[0:a]aformat=sample_rates=44100:channel_layouts=stereo[bg]"
        assert stages[1] == "[1:a]asplit=2[sc][speech]"
        assert stages[2].startswith("[bg][sc]sidechaincompress=threshold=0.010000:")
        assert "ratio=20:attack=5:release=200" in stages[2]
        assert "amix=inputs=2:duration=first:dropout_transition=2:normalize=0" in stages[3]
        assert stages[4] == "[mixed]alimiter=limit=0.95:attack=5:release=50:asc=1:level=0[out]"


class TestOutputCodec:
    @pytest.mark.parametrize(
        "name,codec",
        [("out.flac", "flac"), ("out.wav", "pcm_s16le"), ("out.MP3", "libmp3lame"), ("out.m4a", "aac")],
    )
    def test_codec_from_suffix(self, name: str, codec: str) -> None:
        args = output_codec_args(Path(name))
        assert args[args.index("-acodec") + 1] == codec
        assert args[:2] == ["-map", "[out]"]
        assert args[-4:] == ["-ar", "48000", "-ac", "2"]

    def test_unsupported_suffix(self) -> None:
        with pytest.raises(ValueError, match="Unsupported output format"):
            output_codec_args(Path("out.xyz"))


class TestMixWithDucking:
    """Test the mix entry point against a mocked engine."""

    def test_runs_single_graph(self, tmp_path: Path) -> None:
        background = tmp_path / "bg.wav"
        speech = tmp_path / "speech.wav"
        background.write_bytes(b"RIFF")
        speech.write_bytes(b"RIFF")
        engine = Mock()

        result = mix_with_ducking(engine, background, speech, tmp_path / "out.flac")

        assert result == tmp_path / "out.flac"
        inputs, graph, dst, args = engine.filtergraph.call_args[0]
        assert inputs == [background, speech]
        assert graph == duck_filtergraph(DuckParams())
        assert "flac" in args

    def test_missing_input(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            mix_with_ducking(Mock(), tmp_path / "bg.wav", tmp_path / "s.wav", tmp_path / "o.flac")

    def test_engine_failure_is_fatal(self, tmp_path: Path) -> None:
        """Test that a rejected graph surfaces instead of mixing without ducking."""
        background = tmp_path / "bg.wav"
        speech = tmp_path / "speech.wav"
        background.write_bytes(b"RIFF")
        speech.write_bytes(b"RIFF")
        engine = Mock()
        engine.filtergraph.side_effect = AudioEngineError("No such filter", ["ffmpeg"])

        with pytest.raises(AudioEngineError, match="Ducked mix failed"):
            mix_with_ducking(engine, background, speech, tmp_path / "out.flac")
        assert engine.filtergraph.call_count == 1

    def test_export_speech(self, tmp_path: Path) -> None:
        speech = tmp_path / "speech.wav"
        speech.write_bytes(b"RIFF")
        engine = Mock()

        export_speech(engine, speech, tmp_path / "out.mp3")

        inputs, graph, _, args = engine.filtergraph.call_args[0]
        assert inputs == [speech]
        assert graph == "[0:a]anull[out]"
        assert "libmp3lame" in args
