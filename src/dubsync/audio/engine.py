"""Audio-processing engine backed by ffmpeg/ffprobe.

Every primitive the dubbing core needs from an audio toolkit lives here:
silence generation, WAV conversion, duration probing, tempo stretching,
trailing-silence trimming, concatenation and arbitrary filter graphs.
Each call is synchronous and fallible; failures raise AudioEngineError.
"""

import logging
import shutil
import subprocess
import time
from pathlib import Path

import numpy as np
import soundfile as sf

from ..config import EngineConfig
from ..errors import AudioEngineError

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
CHANNELS = 2

# atempo accepts factors in this range per stage
ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0

# Formats soundfile can probe without spawning ffprobe
_SOUNDFILE_SUFFIXES = {".wav", ".flac", ".ogg"}


def atempo_chain(
    factor: float,
    low: float = ATEMPO_MIN,
    high: float = ATEMPO_MAX,
    tolerance: float = 1e-3,
) -> list[float]:
    """Decompose a tempo factor into stages the atempo filter accepts.

    Factors inside [low, high] need a single stage. Factors outside are
    split into full-range stages followed by one remainder stage, so the
    product of the returned stages equals factor.

    Args:
        factor: Target playback speed multiplier (> 0)
        low: Smallest factor one stage supports
        high: Largest factor one stage supports
        tolerance: Factors this close to 1.0 need no processing

    Returns:
        Stage factors to apply in order; empty when factor is ~1.0

    Raises:
        ValueError: If factor is not positive
    """
    if factor <= 0:
        raise ValueError(f"tempo factor must be positive, got {factor}")

    stages: list[float] = []
    remaining = factor
    while abs(remaining - 1.0) > tolerance:
        if remaining > high:
            stages.append(high)
            remaining /= high
        elif remaining < low:
            stages.append(low)
            remaining /= low
        else:
            stages.append(remaining)
            remaining = 1.0
    return stages


def _tail(s: str | None, n: int = 4000) -> str:
    s = str(s or "")
    return s if len(s) <= n else s[-n:]


class AudioEngine:
    """Thin, fallible wrapper around ffmpeg and ffprobe.

    All intermediate audio is 16-bit PCM WAV at 44.1 kHz stereo so pieces
    can be concatenated without resampling.
    """

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        timeout: float | None = 600.0,
        retries: int = 1,
    ) -> None:
        """Initialize the engine.

        Args:
            ffmpeg: ffmpeg executable name or path
            ffprobe: ffprobe executable name or path
            timeout: Per-invocation timeout in seconds (None disables it)
            retries: Extra attempts after a failed or timed-out invocation
        """
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.timeout = timeout
        self.retries = max(0, int(retries))

    @classmethod
    def from_config(cls, config: EngineConfig) -> "AudioEngine":
        return cls(
            ffmpeg=config.ffmpeg,
            ffprobe=config.ffprobe,
            timeout=config.timeout,
            retries=config.retries,
        )

    def available(self) -> bool:
        """Check that both ffmpeg and ffprobe are on PATH."""
        return bool(shutil.which(self.ffmpeg) and shutil.which(self.ffprobe))

    def run(self, argv: list[str]) -> subprocess.CompletedProcess[str]:
        """Run a command with timeout and bounded retry.

        Raises:
            AudioEngineError: If every attempt fails or times out
        """
        for attempt in range(self.retries + 1):
            try:
                return subprocess.run(
                    argv,
                    check=True,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                if attempt >= self.retries:
                    raise AudioEngineError(
                        f"{Path(argv[0]).name} timed out after {self.timeout}s", argv, e
                    ) from e
                logger.warning(
                    f"{Path(argv[0]).name} timed out (attempt {attempt + 1}), retrying"
                )
            except subprocess.CalledProcessError as e:
                if attempt >= self.retries:
                    raise AudioEngineError(
                        f"{Path(argv[0]).name} failed (exit={e.returncode}): "
                        f"{_tail(e.stderr or e.stdout)}",
                        argv,
                        e,
                    ) from e
                logger.warning(
                    f"{Path(argv[0]).name} failed with exit {e.returncode} "
                    f"(attempt {attempt + 1}), retrying"
                )
            except OSError as e:
                # Missing executable; retrying will not help
                raise AudioEngineError(f"Failed to run {argv[0]}: {e}", argv, e) from e
        raise AudioEngineError(f"{argv[0]} failed", argv)

    def _ffmpeg(self, *args: str) -> None:
        self.run([self.ffmpeg, "-hide_banner", "-nostdin", "-y", *args])

    @staticmethod
    def _wav_args(dst: Path) -> list[str]:
        return [
            "-acodec", "pcm_s16le",
            "-ar", str(SAMPLE_RATE),
            "-ac", str(CHANNELS),
            str(dst),
        ]

    def duration(self, path: str | Path) -> float:
        """Measure the duration of an audio file in seconds.

        Raises:
            AudioEngineError: If the file is missing or cannot be probed
        """
        path = Path(path)
        if not path.exists():
            raise AudioEngineError(f"Audio file not found: {path}")

        if path.suffix.lower() in _SOUNDFILE_SUFFIXES:
            try:
                return float(sf.info(str(path)).duration)
            except RuntimeError as e:
                logger.debug(f"soundfile could not read {path.name} ({e}), using ffprobe")

        result = self.run(
            [
                self.ffprobe,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(path),
            ]
        )
        value = result.stdout.strip()
        try:
            return float(value)
        except ValueError as e:
            raise AudioEngineError(
                f"ffprobe returned no duration for {path}: {value!r}", original_error=e
            ) from e

    def silence(self, dst: str | Path, seconds: float) -> Path:
        """Write a silent WAV of the given length.

        Raises:
            ValueError: If seconds is not positive
        """
        if seconds <= 0:
            raise ValueError(f"silence duration must be positive, got {seconds}")
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)

        frames = max(1, round(seconds * SAMPLE_RATE))
        samples = np.zeros((frames, CHANNELS), dtype=np.int16)
        try:
            sf.write(str(dst), samples, SAMPLE_RATE, subtype="PCM_16")
        except (RuntimeError, OSError) as e:
            raise AudioEngineError(f"Failed to write silence to {dst}: {e}", original_error=e) from e

        logger.debug(f"Created {seconds:.3f}s silence: {dst.name}")
        return dst

    def to_wav(self, src: str | Path, dst: str | Path) -> Path:
        """Decode any supported input into the working WAV format."""
        dst = Path(dst)
        self._ffmpeg("-i", str(src), *self._wav_args(dst))
        return dst

    def stretch(self, src: str | Path, dst: str | Path, factor: float) -> Path:
        """Change playback speed without changing pitch.

        A factor of ~1.0 copies the file unchanged.
        """
        dst = Path(dst)
        stages = atempo_chain(factor)
        if not stages:
            shutil.copyfile(src, dst)
            logger.debug(f"No tempo change needed for {Path(src).name}, copied")
            return dst

        filter_chain = ",".join(f"atempo={stage:.6f}" for stage in stages)
        started = time.monotonic()
        self._ffmpeg("-i", str(src), "-af", filter_chain, *self._wav_args(dst))
        logger.debug(
            f"Stretched {Path(src).name} by {factor:.3f}x ({len(stages)} stage(s)) "
            f"in {(time.monotonic() - started) * 1000:.0f}ms"
        )
        return dst

    def trim_trailing_silence(
        self,
        src: str | Path,
        dst: str | Path,
        threshold_db: float = -50.0,
        min_silence: float = 0.1,
    ) -> Path:
        """Remove silence from the end of a file only.

        The audio is reversed so that silenceremove's leading-silence mode
        can be used; pauses inside the speech are left alone.
        """
        dst = Path(dst)
        filter_chain = (
            "areverse,"
            f"silenceremove=start_periods=1:start_duration={min_silence}:"
            f"start_threshold={threshold_db}dB:detection=peak,"
            "areverse"
        )
        self._ffmpeg("-i", str(src), "-af", filter_chain, *self._wav_args(dst))
        return dst

    def concatenate(self, paths: list[Path], dst: str | Path) -> Path:
        """Join WAV pieces end to end with the concat demuxer.

        Raises:
            AudioEngineError: If paths is empty or ffmpeg fails
        """
        if not paths:
            raise AudioEngineError("Nothing to concatenate")
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)

        list_file = dst.with_name(f"{dst.stem}_concat.txt")
        lines = []
        for path in paths:
            escaped = str(Path(path).resolve()).replace("'", "'\\''")
            lines.append(f"file '{escaped}'")
        list_file.write_text("\n".join(lines) + "\n", encoding="utf-8")

        try:
            self._ffmpeg(
                "-f", "concat", "-safe", "0", "-i", str(list_file), *self._wav_args(dst)
            )
        finally:
            list_file.unlink(missing_ok=True)

        logger.debug(f"Concatenated {len(paths)} pieces into {dst.name}")
        return dst

    def filtergraph(
        self,
        inputs: list[Path],
        graph: str,
        dst: str | Path,
        output_args: list[str],
    ) -> Path:
        """Run a -filter_complex graph over several inputs into one output."""
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)
        argv: list[str] = []
        for path in inputs:
            argv.extend(["-i", str(path)])
        self._ffmpeg(*argv, "-filter_complex", graph, *output_args, str(dst))
        return dst
