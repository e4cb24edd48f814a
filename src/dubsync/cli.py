"""Typer CLI definition for dubsync."""

import asyncio
import logging
from pathlib import Path
from typing import NoReturn

import typer

from .config import load_config
from .core import apply_overrides, cache_stats, clear_cache, dub_file, list_available_voices
from .errors import AssemblyError, AudioEngineError, CueError
from .tts.errors import TTSAPIError, TTSAuthError

app = typer.Typer(help="Dub subtitle cues with synthesized speech over a background track")


def _fail(message: str, error: Exception, debug: bool, label: str) -> NoReturn:
    if debug:
        typer.echo(f"Debug - {label}: {error!r}", err=True)
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1) from None


def format_size(size: int) -> str:
    """Human-readable byte count."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@app.command()
def dub(
    cues: Path | None = typer.Argument(
        None, help="JSON cue file: array of {start, end, text} in seconds"
    ),
    background: Path | None = typer.Option(
        None, "-b", "--background", help="Background track to duck under the speech"
    ),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Output file (.flac, .wav, .mp3, .m4a)"
    ),
    speech_only: bool = typer.Option(
        False, "--speech-only", help="Export the assembled speech without mixing"
    ),
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="TTS provider (from config if omitted)"
    ),
    voice: str | None = typer.Option(
        None, "-v", "--voice", help="Voice ID (from config if omitted)"
    ),
    language: str | None = typer.Option(
        None, "--language", help="Language code, e.g. pl-PL (from config if omitted)"
    ),
    workers: int | None = typer.Option(
        None, "--workers", min=1, help="Cues synthesized concurrently"
    ),
    preset: str | None = typer.Option(
        None, "--preset", help="Ducking preset: quiet, normal, intense"
    ),
    speech_track: Path | None = typer.Option(
        None, "--speech-track", help="Also save the assembled speech WAV here"
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the synthesis cache"),
    list_voices: bool = typer.Option(
        False, "--list-voices", help="List available voices and exit"
    ),
    show_cache_stats: bool = typer.Option(
        False, "--cache-stats", help="Show synthesis cache size and exit"
    ),
    clear: bool = typer.Option(
        False, "--clear-cache", help="Delete cached renderings for the provider and exit"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and timing decisions"
    ),
) -> None:
    """Synthesize each cue, fit it to its window and mix it over a background."""
    # Configure logging for debug mode
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    config = apply_overrides(
        load_config(),
        provider=provider,
        voice=voice,
        language=language,
        cache=False if no_cache else None,
        workers=workers,
        preset=preset,
    )

    if list_voices:
        try:
            asyncio.run(list_available_voices(config.tts.provider, language))
        except Exception as e:
            _fail(f"Failed to list voices: {e}", e, debug, "Failed to list voices")
        raise typer.Exit(0)

    if show_cache_stats:
        stats = cache_stats(config, config.tts.provider)
        typer.echo(
            f"{config.tts.provider}: {stats.count} entries, {format_size(stats.total_bytes)}"
        )
        raise typer.Exit(0)

    if clear:
        removed = clear_cache(config, config.tts.provider)
        typer.echo(f"Removed {removed} cached entries for {config.tts.provider}")
        raise typer.Exit(0)

    if cues is None:
        typer.echo("Error: No cue file provided", err=True)
        raise typer.Exit(1)
    if output is None:
        typer.echo("Error: --output is required", err=True)
        raise typer.Exit(1)
    if background is None and not speech_only:
        typer.echo("Error: --background is required unless --speech-only is set", err=True)
        raise typer.Exit(1)

    try:
        with typer.progressbar(length=100, label="Dubbing") as bar:
            reported = 0

            def on_progress(percent: float) -> None:
                nonlocal reported
                step = int(percent) - reported
                if step > 0:
                    bar.update(step)
                    reported += step

            result = asyncio.run(
                dub_file(
                    cues,
                    output,
                    background=None if speech_only else background,
                    config=config,
                    on_progress=on_progress,
                    speech_track=speech_track,
                )
            )

        typer.echo(f"Audio saved to {result.output}")
        typer.echo(
            f"{result.cue_count} cues, {result.cache_hits} from cache, "
            f"{result.total_duration:.1f}s speech"
        )
        if result.final_debt > 0.1:
            typer.echo(f"Warning: speech ends {result.final_debt:.2f}s behind schedule")

    except CueError as e:
        _fail(str(e), e, debug, "Cue error")
    except TTSAuthError as e:
        _fail(str(e), e, debug, "Authentication error")
    except TTSAPIError as e:
        _fail(str(e), e, debug, "TTS API error")
    except AssemblyError as e:
        _fail(str(e), e, debug, "Assembly error")
    except AudioEngineError as e:
        _fail(str(e), e, debug, "Audio engine error")
    except KeyError as e:
        _fail(str(e.args[0]) if e.args else str(e), e, debug, "Lookup error")
    except (ValueError, FileNotFoundError) as e:
        _fail(str(e), e, debug, "Input error")
    except OSError as e:
        _fail(f"File system error: {e}", e, debug, "File system error")
    except Exception as e:
        _fail("An unexpected error occurred", e, debug, "Unexpected error")
