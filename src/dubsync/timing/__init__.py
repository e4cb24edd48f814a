"""Cue timing: rate-fitting synthesis and timeline assembly."""

from .assembler import TimelineAssembler
from .models import (
    AssemblyPlan,
    AssemblyState,
    Cue,
    FitState,
    Piece,
    PieceKind,
    RenderedCue,
)
from .synthesizer import RateFittingSynthesizer

__all__ = [
    "AssemblyPlan",
    "AssemblyState",
    "Cue",
    "FitState",
    "Piece",
    "PieceKind",
    "RateFittingSynthesizer",
    "RenderedCue",
    "TimelineAssembler",
]
