"""Core functionality for dubsync - wires config, providers and the pipeline."""

import logging
from dataclasses import replace
from pathlib import Path

from .audio.engine import AudioEngine
from .audio.mix import DuckParams
from .cache import get_cache_dir
from .cache.eviction import MaxEntries, NeverEvict
from .cache.manager import SynthesisCache
from .cache.models import CacheStats
from .config import DubsyncConfig, default_config
from .cues import load_cues
from .errors import AudioEngineError
from .pipeline import DubbingPipeline, DubResult, ProgressSink
from .providers import ProviderRegistry
from .timing.assembler import TimelineAssembler
from .timing.synthesizer import RateFittingSynthesizer
from .tts.errors import TTSAPIError, TTSAuthError
from .tts.models import SynthesisOptions

logger = logging.getLogger(__name__)


def open_cache(config: DubsyncConfig, provider: str) -> SynthesisCache:
    """Open the cache for one provider.

    Providers render the same options differently, so each gets its own
    directory under ~/.cache/dubsync.
    """
    max_entries = config.cache.max_entries
    policy = MaxEntries(max_entries) if max_entries else NeverEvict()
    return SynthesisCache(cache_dir=get_cache_dir() / provider, policy=policy)


def build_pipeline(config: DubsyncConfig) -> DubbingPipeline:
    """Assemble a DubbingPipeline from configuration.

    Raises:
        KeyError: If the provider or duck preset is unknown
        AudioEngineError: If ffmpeg or ffprobe is not installed
        ValueError: If voice options are invalid
    """
    engine = AudioEngine.from_config(config.engine)
    if not engine.available():
        raise AudioEngineError(
            f"{config.engine.ffmpeg} and {config.engine.ffprobe} must be installed and on PATH"
        )

    provider = ProviderRegistry.get_instance(config.tts.provider)
    options = SynthesisOptions(
        language=config.tts.language,
        voice=config.tts.voice,
        encoding=config.tts.encoding,
        pitch=config.tts.pitch,
    )

    cache = None
    if config.cache.enabled:
        try:
            cache = open_cache(config, config.tts.provider)
        except Exception as e:
            logger.error(f"Failed to open synthesis cache: {e}. Proceeding without cache.")

    synthesizer = RateFittingSynthesizer(
        provider,
        engine,
        options=options,
        cache=cache,
        timing=config.timing,
        timeout=config.tts.timeout,
        retries=config.tts.retries,
    )
    logger.debug(
        f"Pipeline: provider={config.tts.provider}, voice={options.voice}, "
        f"language={options.language}, cache={'on' if cache else 'off'}, "
        f"duck preset={config.duck.preset}"
    )
    return DubbingPipeline(
        synthesizer,
        engine,
        assembler=TimelineAssembler(min_silence=config.timing.min_silence),
        duck=DuckParams.from_config(config.duck),
    )


def apply_overrides(
    config: DubsyncConfig,
    provider: str | None = None,
    voice: str | None = None,
    language: str | None = None,
    cache: bool | None = None,
    workers: int | None = None,
    preset: str | None = None,
) -> DubsyncConfig:
    """Layer explicit (CLI or API) values over a loaded config."""
    tts = replace(
        config.tts,
        provider=provider or config.tts.provider,
        voice=voice or config.tts.voice,
        language=language or config.tts.language,
    )
    return replace(
        config,
        tts=tts,
        timing=replace(config.timing, workers=workers) if workers else config.timing,
        duck=replace(config.duck, preset=preset) if preset else config.duck,
        cache=replace(config.cache, enabled=cache) if cache is not None else config.cache,
    )


async def dub_file(
    cue_file: str | Path,
    output: str | Path,
    background: str | Path | None = None,
    config: DubsyncConfig | None = None,
    on_progress: ProgressSink | None = None,
    speech_track: str | Path | None = None,
) -> DubResult:
    """Dub a JSON cue file into output.

    Args:
        cue_file: JSON array of {"start", "end", "text"} objects
        output: Destination audio file
        background: Track to duck under the speech (None for speech only)
        config: Configuration (built-in defaults if omitted)
        on_progress: Receives overall progress from 0 to 100
        speech_track: Optional path to keep the assembled speech WAV

    Raises:
        CueError: If the cue file is missing or invalid
        TTSError: If synthesis fails
        AssemblyError: If the speech track cannot be assembled
        AudioEngineError: If ffmpeg is missing or the mix fails
        KeyError: If provider or preset not found
    """
    config = config or default_config()
    cues = load_cues(cue_file)
    pipeline = build_pipeline(config)
    return await pipeline.run(
        cues,
        output,
        background=background,
        on_progress=on_progress,
        max_workers=config.timing.workers,
        speech_track=speech_track,
    )


async def list_available_voices(provider: str = "google", language: str | None = None) -> None:
    """List all available voices from specified provider.

    Prints voices in "Name: voice_id" format to stdout.

    Raises:
        TTSAuthError: If credentials are not configured
        TTSAPIError: If API call fails
        KeyError: If provider not found
    """
    try:
        provider_instance = ProviderRegistry.get_instance(provider)
        voices = await provider_instance.list_voices(language)

        for voice in voices:
            print(f"{voice['name']}: {voice['id']}")

    except (TTSAuthError, TTSAPIError, KeyError):
        raise
    except Exception as e:
        raise TTSAPIError(f"Failed to list voices: {e}", None, e) from e


def cache_stats(config: DubsyncConfig, provider: str) -> CacheStats:
    return open_cache(config, provider).stats()


def clear_cache(config: DubsyncConfig, provider: str) -> int:
    """Remove every cached rendering for provider; returns the count removed."""
    return open_cache(config, provider).clear()
