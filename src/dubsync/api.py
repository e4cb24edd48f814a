"""High-level API for dubsync library usage."""

from pathlib import Path

from .config import DubsyncConfig, default_config
from .core import apply_overrides, dub_file
from .pipeline import DubResult, ProgressSink


async def dub(
    cues: str | Path,
    output: str | Path,
    background: str | Path | None = None,
    provider: str | None = None,
    voice: str | None = None,
    language: str | None = None,
    cache: bool = True,
    workers: int | None = None,
    preset: str | None = None,
    on_progress: ProgressSink | None = None,
    speech_track: str | Path | None = None,
    config: DubsyncConfig | None = None,
) -> DubResult:
    """Dub a cue file over a background track.

    Args:
        cues: JSON cue file (array of {"start", "end", "text"} in seconds)
        output: Destination file (.flac, .wav, .mp3 or .m4a)
        background: Track to duck under the speech; None exports speech only
        provider: TTS provider name (config default if None)
        voice: Voice ID/name (provider-specific)
        language: Language code, e.g. "pl-PL"
        cache: Whether to use the synthesis cache
        workers: Cues synthesized concurrently
        preset: Ducking preset ("quiet", "normal", "intense")
        on_progress: Receives overall progress from 0 to 100
        speech_track: Optional path to keep the assembled speech WAV
        config: Base configuration (built-in defaults if None; the config
            file is not read)

    Returns:
        DubResult describing the job

    Raises:
        CueError: If the cue file is missing or invalid
        TTSAuthError: If provider credentials are not configured
        TTSAPIError: If synthesis fails
        AssemblyError: If the speech track cannot be assembled
        AudioEngineError: If ffmpeg is missing or the mix fails
        KeyError: If provider or preset not found
    """
    resolved = apply_overrides(
        config or default_config(),
        provider=provider,
        voice=voice,
        language=language,
        cache=cache,
        workers=workers,
        preset=preset,
    )
    return await dub_file(
        cues,
        output,
        background=background,
        config=resolved,
        on_progress=on_progress,
        speech_track=speech_track,
    )
