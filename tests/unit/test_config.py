"""Unit tests for config loading, defaults and env overrides."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

import dubsync.config as config_module
from dubsync.config import DEFAULT_CONFIG, TimingConfig, default_config, load_config


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch) -> Path:
    """Point the config module at a temporary config file."""
    path = tmp_path / "config" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_DIR", path.parent)
    monkeypatch.setattr(config_module, "CONFIG_PATH", path)
    for name in (
        "DUBSYNC_PROVIDER",
        "DUBSYNC_VOICE",
        "DUBSYNC_LANGUAGE",
        "DUBSYNC_TTS_TIMEOUT",
        "DUBSYNC_WORKERS",
        "DUBSYNC_DUCK_PRESET",
        "DUBSYNC_FFMPEG",
        "DUBSYNC_FFPROBE",
    ):
        monkeypatch.delenv(name, raising=False)
    return path


class TestLoadConfig:
    """Test the config file lifecycle."""

    def test_first_run_generates_and_exits(self, config_path: Path) -> None:
        """Test that a missing config is generated and the run stops for review."""
        with pytest.raises(SystemExit) as exc_info:
            load_config()

        assert exc_info.value.code == 1
        assert config_path.read_text() == DEFAULT_CONFIG

    def test_generated_config_matches_defaults(self, config_path: Path) -> None:
        """Test that the generated file loads to the built-in defaults."""
        config_path.parent.mkdir(parents=True)
        config_path.write_text(DEFAULT_CONFIG)

        assert load_config() == default_config()

    def test_memoized(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text(DEFAULT_CONFIG)

        assert load_config() is load_config()

    def test_env_overrides(self, config_path: Path, monkeypatch) -> None:
        """Test that DUBSYNC_* variables win over file values."""
        config_path.parent.mkdir(parents=True)
        config_path.write_text(DEFAULT_CONFIG)
        monkeypatch.setenv("DUBSYNC_PROVIDER", "system")
        monkeypatch.setenv("DUBSYNC_VOICE", "pl")
        monkeypatch.setenv("DUBSYNC_WORKERS", "4")
        monkeypatch.setenv("DUBSYNC_DUCK_PRESET", "quiet")
        monkeypatch.setenv("DUBSYNC_TTS_TIMEOUT", "5")

        config = load_config()

        assert config.tts.provider == "system"
        assert config.tts.voice == "pl"
        assert config.tts.timeout == 5.0
        assert config.timing.workers == 4
        assert config.duck.preset == "quiet"

    def test_missing_required_keys(self, config_path: Path, capsys) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text('[tts]\nprovider = "google"\n')

        with pytest.raises(SystemExit):
            load_config()

        err = capsys.readouterr().err
        assert "tts.voice" in err
        assert "cache.enabled" in err

    def test_invalid_value_exits(self, config_path: Path, capsys) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text(DEFAULT_CONFIG.replace("max_rate = 2.0", "max_rate = 0.5"))

        with pytest.raises(SystemExit):
            load_config()

        assert "Invalid config value" in capsys.readouterr().err

    def test_optional_sections_read(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text(
            DEFAULT_CONFIG.replace("# max_entries = 10000", "max_entries = 10").replace(
                "# ratio = 20.0", "ratio = 4.0"
            )
        )
        config = load_config()
        assert config.cache.max_entries == 10
        assert config.duck.ratio == 4.0


class TestTimingConfig:
    """Test validation of timing parameters."""

    def test_defaults(self) -> None:
        timing = TimingConfig()
        assert timing.sync_threshold == 0.5
        assert (timing.min_rate, timing.max_rate) == (0.25, 2.0)
        assert timing.max_attempts == 3
        assert timing.min_silence == 0.01

    def test_rate_range_must_contain_one(self) -> None:
        with pytest.raises(ValueError, match="rate range"):
            TimingConfig(min_rate=1.2, max_rate=2.0)

    def test_rate_range_bounded(self) -> None:
        with pytest.raises(ValueError, match="rate range"):
            TimingConfig(max_rate=5.0)

    def test_attempts_at_least_one(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            TimingConfig(max_attempts=0)

    def test_workers_at_least_one(self) -> None:
        with pytest.raises(ValueError, match="workers"):
            TimingConfig(workers=0)
