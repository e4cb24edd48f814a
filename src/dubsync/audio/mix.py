"""Ducked mix of the assembled speech track over a background track.

The background is run through a sidechain compressor keyed by the speech,
mixed with the speech without level normalization (so the background comes
back at its original loudness once speech stops), and limited just under
full scale.
"""

import logging
import time
from dataclasses import dataclass, replace
from pathlib import Path

from ..config import DuckConfig
from ..errors import AudioEngineError
from .engine import SAMPLE_RATE, AudioEngine

logger = logging.getLogger(__name__)

LIMITER_CEILING = 0.95


@dataclass(frozen=True)
class DuckParams:
    """Sidechain ducking parameters for one job.

    Args:
        threshold_db: Speech level (dBFS) above which the background is ducked
        ratio: Compression ratio applied to the background (1-20)
        attack_ms: How fast ducking engages
        release_ms: How fast the background recovers after speech
        limit: Limiter ceiling as linear amplitude
    """

    threshold_db: float = -40.0
    ratio: float = 20.0
    attack_ms: float = 5.0
    release_ms: float = 200.0
    limit: float = LIMITER_CEILING

    def __post_init__(self) -> None:
        """Validate ranges accepted by sidechaincompress and alimiter."""
        if not -60.0 <= self.threshold_db <= 0.0:
            raise ValueError("threshold_db must be between -60.0 and 0.0")
        if not 1.0 <= self.ratio <= 20.0:
            raise ValueError("ratio must be between 1.0 and 20.0")
        if not 0.01 <= self.attack_ms <= 2000.0:
            raise ValueError("attack_ms must be between 0.01 and 2000")
        if not 0.01 <= self.release_ms <= 9000.0:
            raise ValueError("release_ms must be between 0.01 and 9000")
        if not 0.0625 <= self.limit <= 1.0:
            raise ValueError("limit must be between 0.0625 and 1.0")

    @property
    def threshold_linear(self) -> float:
        return 10 ** (self.threshold_db / 20.0)

    @classmethod
    def from_config(cls, config: DuckConfig) -> "DuckParams":
        """Resolve a preset and apply any explicit overrides."""
        params = preset(config.preset)
        overrides = {
            name: value
            for name, value in (
                ("threshold_db", config.threshold_db),
                ("ratio", config.ratio),
                ("attack_ms", config.attack_ms),
                ("release_ms", config.release_ms),
            )
            if value is not None
        }
        return replace(params, **overrides) if overrides else params


PRESETS: dict[str, DuckParams] = {
    # Quiet scenes: duck earlier and harder
    "quiet": DuckParams(threshold_db=-45.0, ratio=20.0, attack_ms=3.0, release_ms=150.0),
    "normal": DuckParams(),
    # Busy scenes: keep more of the background
    "intense": DuckParams(threshold_db=-32.0, ratio=8.0, attack_ms=10.0, release_ms=400.0),
}


def preset(name: str) -> DuckParams:
    """Look up a ducking preset by name.

    Raises:
        KeyError: If the preset does not exist
    """
    if name not in PRESETS:
        raise KeyError(
            f"Duck preset '{name}' not found. Available presets: {', '.join(PRESETS)}"
        )
    return PRESETS[name]


def duck_filtergraph(params: DuckParams) -> str:
    """Build the filter graph for input 0 = background, input 1 = speech.

    The speech stream is split because a labelled stream can only be
    consumed once: one copy keys the compressor, the other is mixed.
    alimiter runs with level=0 so it does not re-gain the output to 0 dBFS.
    """
    return ";".join(
        [
            # Backgrounds arrive in any rate or layout; match the speech track
            f"[0:a]aformat=sample_rates={SAMPLE_RATE}:channel_layouts=stereo[bg]",
            "[1:a]asplit=2[sc][speech]",
            (
                "[bg][sc]sidechaincompress="
                f"threshold={params.threshold_linear:.6f}:"
                f"ratio={params.ratio:g}:"
                f"attack={params.attack_ms:g}:"
                f"release={params.release_ms:g}"
                "[ducked]"
            ),
            "[ducked][speech]amix=inputs=2:duration=first:dropout_transition=2:normalize=0[mixed]",
            f"[mixed]alimiter=limit={params.limit:g}:attack=5:release=50:asc=1:level=0[out]",
        ]
    )


def output_codec_args(output: Path) -> list[str]:
    """Pick codec arguments from the output file suffix."""
    suffix = output.suffix.lower()
    if suffix == ".flac":
        codec = ["-acodec", "flac"]
    elif suffix == ".wav":
        codec = ["-acodec", "pcm_s16le"]
    elif suffix == ".mp3":
        codec = ["-acodec", "libmp3lame", "-b:a", "192k"]
    elif suffix in (".m4a", ".aac"):
        codec = ["-acodec", "aac", "-b:a", "192k"]
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .flac, .wav, .mp3 or .m4a"
        )
    return ["-map", "[out]", *codec, "-ar", "48000", "-ac", "2"]


def mix_with_ducking(
    engine: AudioEngine,
    background: str | Path,
    speech: str | Path,
    output: str | Path,
    params: DuckParams | None = None,
) -> Path:
    """Duck background under speech, mix both and limit the result.

    The output runs as long as the background track.

    Args:
        engine: Audio engine used to run the filter graph
        background: Track to attenuate while speech is active
        speech: Assembled speech track (the sidechain key)
        output: Destination file; its suffix selects the codec
        params: Ducking parameters (defaults to the "normal" preset)

    Returns:
        Path of the mixed output

    Raises:
        FileNotFoundError: If an input track is missing
        AudioEngineError: If ffmpeg rejects the graph or fails
    """
    params = params or DuckParams()
    background = Path(background)
    speech = Path(speech)
    output = Path(output)

    for track in (background, speech):
        if not track.exists():
            raise FileNotFoundError(f"Audio track not found: {track}")

    logger.info(
        f"Ducking {background.name} under {speech.name}: "
        f"threshold={params.threshold_db}dB, ratio={params.ratio}, "
        f"attack={params.attack_ms}ms, release={params.release_ms}ms, "
        f"limit={params.limit}"
    )
    started = time.monotonic()
    try:
        engine.filtergraph(
            [background, speech],
            duck_filtergraph(params),
            output,
            output_codec_args(output),
        )
    except AudioEngineError as e:
        raise AudioEngineError(
            f"Ducked mix failed: {e}", e.argv, e.original_error or e
        ) from e

    logger.info(
        f"Mix completed in {(time.monotonic() - started):.1f}s: {output.name}"
    )
    return output


def export_speech(engine: AudioEngine, speech: str | Path, output: str | Path) -> Path:
    """Encode the speech track alone, with the same output format rules as a mix.

    Raises:
        FileNotFoundError: If the speech track is missing
        AudioEngineError: If ffmpeg fails
    """
    speech = Path(speech)
    output = Path(output)
    if not speech.exists():
        raise FileNotFoundError(f"Audio track not found: {speech}")
    engine.filtergraph([speech], "[0:a]anull[out]", output, output_codec_args(output))
    logger.info(f"Exported speech track to {output.name}")
    return output
