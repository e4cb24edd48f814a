"""Timeline assembly with a timing-debt ledger.

Rendered cues rarely match their windows exactly. The assembler lays them
out in order, inserting silence to reach each cue's nominal start. A cue
that starts late because its predecessor ran long adds the lost time to a
debt, which later gaps pay back by shortening their silence.

plan() is pure and decides every piece; assemble() writes the silences and
concatenates the result.
"""

import logging
from pathlib import Path

from ..audio.engine import AudioEngine
from ..errors import AssemblyError, AudioEngineError
from .models import AssemblyPlan, AssemblyState, Piece, PieceKind, RenderedCue

logger = logging.getLogger(__name__)

# Residual debt above this is reported as a warning
DEBT_WARNING = 0.1


class TimelineAssembler:
    """Sequence rendered cues into one speech track.

    Args:
        min_silence: Silences at or below this length (seconds) are skipped,
            and drift within it is ignored
    """

    def __init__(self, min_silence: float = 0.01) -> None:
        self.min_silence = min_silence

    def _silence(self, seconds: float) -> Piece:
        return Piece(kind=PieceKind.SILENCE, duration=seconds)

    def plan(self, rendered: list[RenderedCue]) -> AssemblyPlan:
        """Decide the ordered pieces for a rendered cue list.

        Args:
            rendered: Rendered cues in ascending start order

        Returns:
            AssemblyPlan with its pieces and the final ledger state
        """
        eps = self.min_silence
        pieces: list[Piece] = []
        state = AssemblyState()
        if not rendered:
            return AssemblyPlan(pieces=pieces, final_state=state)

        lead = rendered[0].cue.start
        if lead > eps:
            pieces.append(self._silence(lead))
            state = state.advance(lead)

        for i, item in enumerate(rendered):
            drift = item.cue.start - state.position
            if drift > eps:
                pieces.append(self._silence(drift))
                state = state.advance(drift)
            elif drift < -eps:
                state = state.borrow(-drift)
                logger.debug(
                    f"Cue {item.index} starts {-drift:.3f}s late, debt now {state.debt:.3f}s"
                )

            pieces.append(
                Piece(
                    kind=PieceKind.SPEECH,
                    duration=item.actual_duration,
                    cue_index=item.index,
                    path=item.audio_path,
                )
            )
            state = state.advance(item.actual_duration)

            if i + 1 >= len(rendered):
                break

            gap_needed = rendered[i + 1].cue.start - state.position
            if gap_needed <= eps:
                # Already at or past the next start; its drift check books the debt
                continue

            silence = gap_needed
            if state.debt > eps:
                repayment = min(state.debt, gap_needed - eps)
                if repayment > eps:
                    state = state.repay(repayment)
                    silence -= repayment
                    logger.debug(
                        f"Repaid {repayment:.3f}s after cue {item.index}, "
                        f"debt now {state.debt:.3f}s"
                    )
            if silence > eps:
                pieces.append(self._silence(silence))
                state = state.advance(silence)

        return AssemblyPlan(pieces=pieces, final_state=state)

    def assemble(
        self,
        plan: AssemblyPlan,
        engine: AudioEngine,
        workdir: str | Path,
        output: str | Path,
    ) -> Path:
        """Write silences, validate every piece and concatenate them.

        Args:
            plan: Result of plan()
            engine: Audio engine used for silence and concatenation
            workdir: Directory for silence files
            output: Destination WAV file

        Returns:
            Path of the assembled speech track

        Raises:
            AssemblyError: If the plan is empty, a speech piece is missing or
                empty, or concatenation fails
        """
        if not plan.pieces:
            raise AssemblyError("No audio pieces to assemble")

        workdir = Path(workdir)
        workdir.mkdir(parents=True, exist_ok=True)

        paths: list[Path] = []
        for n, piece in enumerate(plan.pieces):
            if piece.kind is PieceKind.SILENCE:
                silence_path = workdir / f"silence_{n:04d}.wav"
                try:
                    engine.silence(silence_path, piece.duration)
                except AudioEngineError as e:
                    raise AssemblyError(
                        f"Failed to create {piece.duration:.3f}s silence: {e}",
                        original_error=e,
                    ) from e
                paths.append(silence_path)
                continue

            if piece.path is None or not piece.path.exists():
                raise AssemblyError(
                    f"Rendered audio for cue {piece.cue_index} is missing: {piece.path}",
                    cue_index=piece.cue_index,
                )
            if piece.path.stat().st_size == 0 or piece.duration <= 0:
                raise AssemblyError(
                    f"Rendered audio for cue {piece.cue_index} is empty: {piece.path}",
                    cue_index=piece.cue_index,
                )
            paths.append(piece.path)

        try:
            track = engine.concatenate(paths, output)
        except AudioEngineError as e:
            raise AssemblyError(f"Failed to concatenate speech track: {e}", original_error=e) from e

        debt = plan.final_debt
        if debt > DEBT_WARNING:
            logger.warning(
                f"Speech track ends {debt:.2f}s behind schedule (residual timing debt)"
            )
        logger.info(
            f"Assembled {len(paths)} pieces into {Path(track).name} "
            f"({plan.total_duration:.2f}s, residual debt {debt:.2f}s)"
        )
        return Path(track)
