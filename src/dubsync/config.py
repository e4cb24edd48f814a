"""Configuration management for dubsync.

Loads configuration from ~/.config/dubsync/config.toml.
Priority chain: CLI flags > env vars > config file.
"""

import os
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_DIR = Path.home() / ".config" / "dubsync"
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
# dubsync configuration

[tts]
# Provider: "google" (Google Cloud TTS), "elevenlabs" (cloud), "system" (OS built-in)
provider = "google"

# Voice and language passed to the provider
voice = "pl-PL-Standard-G"
language = "pl-PL"

# Encoding requested from the provider: "MP3", "LINEAR16", "OGG_OPUS"
encoding = "MP3"

# Pitch shift in semitones (-20.0 to 20.0)
pitch = 0.0

# Per-request timeout (seconds) and retries for the synthesis service
timeout = 60
retries = 2

[timing]
# Overflow (seconds) tolerated before a cue is sped up
sync_threshold = 0.5

# Speaking rate range used while fitting a cue into its window
min_rate = 0.25
max_rate = 2.0

# Renders per cue, including the first one at rate 1.0
max_attempts = 3

# Silences shorter than this (seconds) are never emitted
min_silence = 0.01

# Cues synthesized concurrently (1 = sequential)
workers = 1

[duck]
# Preset: "quiet", "normal", "intense"
preset = "normal"
# Uncomment to override preset values
# threshold_db = -40.0
# ratio = 20.0
# attack_ms = 5.0
# release_ms = 200.0

[cache]
# Content-addressed cache of synthesized audio
enabled = true

# Keep at most this many entries (oldest evicted first); omit for no limit
# max_entries = 10000

[engine]
ffmpeg = "ffmpeg"
ffprobe = "ffprobe"
# Per-invocation timeout (seconds) and retries
timeout = 600
retries = 1

# Credentials are read from environment variables, not this file:
#   GOOGLE_APPLICATION_CREDENTIALS - Google Cloud service account JSON
#   ELEVENLABS_API_KEY             - ElevenLabs provider
"""


@dataclass(frozen=True)
class TTSConfig:
    """TTS provider configuration."""

    provider: str
    voice: str
    language: str
    encoding: str = "MP3"
    pitch: float = 0.0
    timeout: float = 60.0
    retries: int = 2


@dataclass(frozen=True)
class TimingConfig:
    """Rate-fitting and timeline assembly parameters."""

    sync_threshold: float = 0.5
    min_rate: float = 0.25
    max_rate: float = 2.0
    max_attempts: int = 3
    min_silence: float = 0.01
    workers: int = 1

    def __post_init__(self) -> None:
        """Validate timing parameters."""
        if not 0.25 <= self.min_rate <= 1.0 <= self.max_rate <= 4.0:
            raise ValueError(
                "rate range must contain 1.0 and lie within [0.25, 4.0], "
                f"got [{self.min_rate}, {self.max_rate}]"
            )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.sync_threshold < 0 or self.min_silence < 0:
            raise ValueError("sync_threshold and min_silence must be non-negative")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")


@dataclass(frozen=True)
class DuckConfig:
    """Ducking preset with optional per-field overrides."""

    preset: str = "normal"
    threshold_db: float | None = None
    ratio: float | None = None
    attack_ms: float | None = None
    release_ms: float | None = None


@dataclass(frozen=True)
class CacheConfig:
    """Synthesis cache configuration."""

    enabled: bool
    max_entries: int | None = None


@dataclass(frozen=True)
class EngineConfig:
    """Audio engine (ffmpeg) configuration."""

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    timeout: float = 600.0
    retries: int = 1


@dataclass(frozen=True)
class DubsyncConfig:
    """Top-level dubsync configuration."""

    tts: TTSConfig
    timing: TimingConfig
    duck: DuckConfig
    cache: CacheConfig
    engine: EngineConfig


_cached_config: DubsyncConfig | None = None


def default_config() -> DubsyncConfig:
    """Built-in defaults, matching the generated config file.

    Used by library callers that do not want the config file (or its
    first-run exit) involved.
    """
    return DubsyncConfig(
        tts=TTSConfig(provider="google", voice="pl-PL-Standard-G", language="pl-PL"),
        timing=TimingConfig(),
        duck=DuckConfig(),
        cache=CacheConfig(enabled=True),
        engine=EngineConfig(),
    )


def generate_config() -> Path:
    """Generate default config file at ~/.config/dubsync/config.toml."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_PATH.write_text(DEFAULT_CONFIG)
    return CONFIG_PATH


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else float(default)


def load_config() -> DubsyncConfig:
    """Load configuration from config file with env var overrides.

    On first run, generates the config file and exits so the user
    can review it before proceeding.

    Returns:
        Loaded and validated DubsyncConfig.

    Raises:
        SystemExit: If config is missing (after generating) or invalid.
    """
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    if not CONFIG_PATH.exists():
        path = generate_config()
        print(
            f"No config found. Generated {path}. Review it and run again.",
            file=sys.stderr,
        )
        raise SystemExit(1)

    with open(CONFIG_PATH, "rb") as f:
        data = tomllib.load(f)

    tts = data.get("tts", {})
    timing = data.get("timing", {})
    duck = data.get("duck", {})
    cache = data.get("cache", {})
    engine = data.get("engine", {})

    # Validate required fields
    missing = []
    for key in ("provider", "voice", "language"):
        if key not in tts:
            missing.append(f"tts.{key}")
    if "enabled" not in cache:
        missing.append("cache.enabled")

    if missing:
        print(
            f"Missing required config values: {', '.join(missing)}",
            file=sys.stderr,
        )
        print(f"Edit {CONFIG_PATH} or delete it to regenerate.", file=sys.stderr)
        raise SystemExit(1)

    try:
        _cached_config = DubsyncConfig(
            tts=TTSConfig(
                provider=os.getenv("DUBSYNC_PROVIDER", tts["provider"]),
                voice=os.getenv("DUBSYNC_VOICE", tts["voice"]),
                language=os.getenv("DUBSYNC_LANGUAGE", tts["language"]),
                encoding=tts.get("encoding", "MP3"),
                pitch=float(tts.get("pitch", 0.0)),
                timeout=_env_float("DUBSYNC_TTS_TIMEOUT", tts.get("timeout", 60.0)),
                retries=int(tts.get("retries", 2)),
            ),
            timing=TimingConfig(
                sync_threshold=float(timing.get("sync_threshold", 0.5)),
                min_rate=float(timing.get("min_rate", 0.25)),
                max_rate=float(timing.get("max_rate", 2.0)),
                max_attempts=int(timing.get("max_attempts", 3)),
                min_silence=float(timing.get("min_silence", 0.01)),
                workers=int(os.getenv("DUBSYNC_WORKERS", timing.get("workers", 1))),
            ),
            duck=DuckConfig(
                preset=os.getenv("DUBSYNC_DUCK_PRESET", duck.get("preset", "normal")),
                threshold_db=duck.get("threshold_db"),
                ratio=duck.get("ratio"),
                attack_ms=duck.get("attack_ms"),
                release_ms=duck.get("release_ms"),
            ),
            cache=CacheConfig(
                enabled=cache["enabled"],
                max_entries=cache.get("max_entries"),
            ),
            engine=EngineConfig(
                ffmpeg=os.getenv("DUBSYNC_FFMPEG", engine.get("ffmpeg", "ffmpeg")),
                ffprobe=os.getenv("DUBSYNC_FFPROBE", engine.get("ffprobe", "ffprobe")),
                timeout=float(engine.get("timeout", 600.0)),
                retries=int(engine.get("retries", 1)),
            ),
        )
    except ValueError as e:
        print(f"Invalid config value: {e}", file=sys.stderr)
        print(f"Edit {CONFIG_PATH} or delete it to regenerate.", file=sys.stderr)
        raise SystemExit(1) from e

    return _cached_config
