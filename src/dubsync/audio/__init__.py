"""Audio engine and ducked mixing for dubsync."""

from .engine import AudioEngine, atempo_chain
from .mix import PRESETS, DuckParams, export_speech, mix_with_ducking

__all__ = [
    "PRESETS",
    "AudioEngine",
    "DuckParams",
    "atempo_chain",
    "export_speech",
    "mix_with_ducking",
]
