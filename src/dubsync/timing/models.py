"""Data models for cue timing, rendering and timeline assembly."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class Cue:
    """A text span with the nominal time window it must occupy.

    Attributes:
        start: Nominal start in seconds
        end: Nominal end in seconds (strictly greater than start)
        text: Text to speak; empty or whitespace-only text renders as silence
    """

    start: float
    end: float
    text: str

    def __post_init__(self) -> None:
        """Validate cue timing."""
        if self.start < 0:
            raise ValueError(f"start must be non-negative, got {self.start}")
        if self.end <= self.start:
            raise ValueError(
                f"end must be greater than start, got start={self.start} end={self.end}"
            )

    @property
    def expected_duration(self) -> float:
        return self.end - self.start

    @property
    def is_blank(self) -> bool:
        return not self.text or not self.text.strip()


class FitState(Enum):
    """Per-cue rate-fitting states.

    PENDING -> FITTING -> FITTED | TRIMMED | OVERFLOW_ACCEPTED
    """

    PENDING = "pending"
    FITTING = "fitting"
    FITTED = "fitted"
    TRIMMED = "trimmed"
    OVERFLOW_ACCEPTED = "overflow_accepted"

    @property
    def terminal(self) -> bool:
        return self in (FitState.FITTED, FitState.TRIMMED, FitState.OVERFLOW_ACCEPTED)


@dataclass(frozen=True)
class RenderedCue:
    """Result of fitting one cue, consumed once by the assembler.

    Attributes:
        index: Position of the cue in the sorted cue list
        cue: The source cue
        audio_path: Rendered WAV file for this cue
        cache_hit: Whether the base audio came from cache (blank cues count as hits)
        expected_duration: Effective time budget, including any gap extension
        actual_duration: Measured length of audio_path
        speaking_rate: Final rate applied to the base audio
        state: Terminal fitting state
    """

    index: int
    cue: Cue
    audio_path: Path
    cache_hit: bool
    expected_duration: float
    actual_duration: float
    speaking_rate: float = 1.0
    state: FitState = FitState.FITTED

    @property
    def overflow(self) -> float:
        """Positive when the audio runs longer than its budget."""
        return self.actual_duration - self.expected_duration


class PieceKind(Enum):
    SILENCE = "silence"
    SPEECH = "speech"


@dataclass(frozen=True)
class Piece:
    """One entry of the assembled timeline.

    Speech pieces reference the rendered cue file. Silence pieces get a path
    only once the assembler materializes them.
    """

    kind: PieceKind
    duration: float
    cue_index: int | None = None
    path: Path | None = None


@dataclass(frozen=True)
class AssemblyState:
    """Ledger threaded through the assembly pass.

    position only moves forward; debt is never negative.
    """

    position: float = 0.0
    debt: float = 0.0

    def advance(self, seconds: float) -> "AssemblyState":
        return AssemblyState(position=self.position + seconds, debt=self.debt)

    def borrow(self, seconds: float) -> "AssemblyState":
        return AssemblyState(position=self.position, debt=self.debt + seconds)

    def repay(self, seconds: float) -> "AssemblyState":
        return AssemblyState(position=self.position, debt=max(0.0, self.debt - seconds))


@dataclass(frozen=True)
class AssemblyPlan:
    """Ordered pieces plus the ledger state left after the last cue."""

    pieces: list[Piece] = field(default_factory=list)
    final_state: AssemblyState = field(default_factory=AssemblyState)

    @property
    def final_debt(self) -> float:
        return self.final_state.debt

    @property
    def total_duration(self) -> float:
        return sum(piece.duration for piece in self.pieces)
