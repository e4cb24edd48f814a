"""Data models for cache storage."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass
class CacheEntry:
    """Cache entry containing synthesis metadata and audio file reference.

    Attributes:
        key: Content address (see keys.cache_key)
        text: Normalized text the audio was synthesized from
        language: Language code used for synthesis
        voice: Voice identifier used for synthesis
        encoding: Encoding of the stored bytes
        pitch: Pitch used for synthesis
        audio_path: Path to the cached audio file
        size: Size of the audio file in bytes
        timestamp: When this entry was created
    """

    key: str
    text: str
    language: str
    voice: str
    encoding: str
    pitch: float
    audio_path: Path
    size: int
    timestamp: datetime


@dataclass(frozen=True)
class CacheStats:
    """Aggregate cache usage."""

    count: int
    total_bytes: int
