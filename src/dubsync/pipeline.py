"""Dubbing pipeline orchestrator.

Coordinates RateFittingSynthesizer, TimelineAssembler and the ducked mix
into one job: cues in, mixed audio file out. Each run owns a temporary
directory for its per-cue artifacts, removed on success and on failure.
"""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .audio.engine import AudioEngine
from .audio.mix import DuckParams, export_speech, mix_with_ducking, output_codec_args
from .errors import CueError
from .timing.assembler import TimelineAssembler
from .timing.models import Cue
from .timing.synthesizer import RateFittingSynthesizer

logger = logging.getLogger(__name__)

ProgressSink = Callable[[float], None]

# Progress budget per phase (percent at the end of each phase)
SYNTHESIS_DONE = 50.0
ASSEMBLY_DONE = 80.0
MIX_DONE = 100.0


@dataclass(frozen=True)
class DubResult:
    """Outcome of one dubbing job.

    Attributes:
        speech_track: Saved copy of the assembled speech WAV, if requested
        output: Final encoded output file
        cue_count: Number of cues processed
        cache_hits: Cues whose base audio came from cache (blank cues included)
        cache_misses: Cues that called the synthesis provider
        final_debt: Residual timing debt in seconds
        total_duration: Length of the assembled speech track in seconds
    """

    speech_track: Path | None
    output: Path
    cue_count: int
    cache_hits: int
    cache_misses: int
    final_debt: float
    total_duration: float


class DubbingPipeline:
    """Orchestrates the full workflow from cues to mixed output.

    Example:
        pipeline = DubbingPipeline(synthesizer, engine, duck=preset("quiet"))
        result = await pipeline.run(
            cues,
            output="episode.flac",
            background="episode_music.wav",
            on_progress=lambda pct: print(f"{pct:.0f}%"),
        )
    """

    def __init__(
        self,
        synthesizer: RateFittingSynthesizer,
        engine: AudioEngine,
        assembler: TimelineAssembler | None = None,
        duck: DuckParams | None = None,
    ) -> None:
        self.synthesizer = synthesizer
        self.engine = engine
        self.assembler = assembler or TimelineAssembler()
        self.duck = duck or DuckParams()

    async def run(
        self,
        cues: list[Cue],
        output: str | Path,
        background: str | Path | None = None,
        on_progress: ProgressSink | None = None,
        max_workers: int = 1,
        speech_track: str | Path | None = None,
    ) -> DubResult:
        """Dub cues into output.

        Args:
            cues: Cues to speak (sorted here by start)
            output: Destination file; its suffix selects the codec
            background: Track to duck under the speech. None exports the
                speech track alone.
            on_progress: Receives overall progress from 0 to 100
            max_workers: Cues synthesized concurrently
            speech_track: Optional path to keep a copy of the assembled speech WAV

        Returns:
            DubResult describing the job

        Raises:
            CueError: If there are no cues
            ValueError: If the output format is unsupported
            FileNotFoundError: If the background track is missing
            TTSError: If synthesis fails
            AssemblyError: If the speech track cannot be assembled
            AudioEngineError: If the mix fails
        """
        output = Path(output)
        # Fail before any synthesis is paid for
        output_codec_args(output)
        if not cues:
            raise CueError("No cues to dub")
        if background is not None and not Path(background).exists():
            raise FileNotFoundError(f"Background track not found: {background}")

        def report(percent: float) -> None:
            if on_progress:
                on_progress(min(MIX_DONE, percent))

        ordered = sorted(cues, key=lambda cue: cue.start)
        logger.info(f"Dubbing {len(ordered)} cues into {output}")
        report(0.0)

        with tempfile.TemporaryDirectory(prefix="dubsync-") as tmp:
            workdir = Path(tmp)

            rendered = await self.synthesizer.render_all(
                ordered,
                workdir / "cues",
                on_progress=lambda done, total: report(SYNTHESIS_DONE * done / total),
                max_workers=max_workers,
            )
            report(SYNTHESIS_DONE)

            plan = self.assembler.plan(rendered)
            speech = await asyncio.to_thread(
                self.assembler.assemble,
                plan,
                self.engine,
                workdir / "pieces",
                workdir / "speech.wav",
            )
            report(ASSEMBLY_DONE)

            saved_speech = None
            if speech_track is not None:
                saved_speech = Path(speech_track)
                saved_speech.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(speech, saved_speech)

            if background is None:
                await asyncio.to_thread(export_speech, self.engine, speech, output)
            else:
                await asyncio.to_thread(
                    mix_with_ducking, self.engine, background, speech, output, self.duck
                )
            report(MIX_DONE)

        hits = sum(1 for r in rendered if r.cache_hit)
        result = DubResult(
            speech_track=saved_speech,
            output=output,
            cue_count=len(rendered),
            cache_hits=hits,
            cache_misses=len(rendered) - hits,
            final_debt=plan.final_debt,
            total_duration=plan.total_duration,
        )
        logger.info(
            f"Dub complete: {result.output} ({result.total_duration:.2f}s, "
            f"{result.cache_hits}/{result.cue_count} cache hits, "
            f"residual debt {result.final_debt:.2f}s)"
        )
        return result
