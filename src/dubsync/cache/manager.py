"""Content-addressed cache manager for synthesized speech.

Maps a cache key (normalized text + voice options, see keys.cache_key) to
the rate-1.0 audio bytes returned by a TTS provider. Entries are immutable
once written; removal only happens through an explicit EvictionPolicy or
clear().
"""

import logging
import os
import threading
from datetime import datetime
from pathlib import Path

from ..text import normalize_text
from ..tts.models import SynthesisOptions
from . import get_cache_dir
from .eviction import EvictionPolicy, NeverEvict
from .models import CacheEntry, CacheStats
from .storage import CacheStorage

logger = logging.getLogger(__name__)


class SynthesisCache:
    """Content-addressed store for base (rate 1.0) synthesized audio.

    Coordinates CacheStorage (SQLite metadata) and the audio directory on the
    filesystem.

    Example:
        cache = SynthesisCache()
        key = cache_key("Dzień dobry", options)

        audio = cache.lookup(key)
        if audio is None:
            audio = await provider.synthesize("Dzień dobry", options)
            cache.store(key, audio, text="Dzień dobry", options=options)
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        policy: EvictionPolicy | None = None,
    ):
        """Initialize the cache.

        Args:
            cache_dir: Directory for cache storage (defaults to ~/.cache/dubsync)
            policy: Eviction policy applied after each store (defaults to NeverEvict)

        Raises:
            RuntimeError: If storage initialization fails
        """
        self.cache_dir = cache_dir or get_cache_dir()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.audio_dir = self.cache_dir / "audio"
        self.audio_dir.mkdir(exist_ok=True)

        self.policy = policy or NeverEvict()

        try:
            self.storage = CacheStorage(self.cache_dir)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize synthesis cache: {e}") from e

        logger.debug(
            f"SynthesisCache initialized at {self.cache_dir} "
            f"with policy {type(self.policy).__name__}"
        )

    def lookup(self, key: str) -> bytes | None:
        """Return cached audio bytes for key, or None on a miss.

        A row whose audio file has disappeared is treated as a miss and
        dropped so the next store can repopulate it.
        """
        entry = self.storage.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key[:12]}")
            return None

        if not entry.audio_path.exists():
            logger.warning(
                f"Cache corruption: metadata exists but audio file missing: {entry.audio_path}"
            )
            self.storage.delete(key)
            return None

        logger.debug(f"Cache hit: {key[:12]} ({entry.size} bytes)")
        return entry.audio_path.read_bytes()

    def contains(self, key: str) -> bool:
        entry = self.storage.get(key)
        return entry is not None and entry.audio_path.exists()

    def store(
        self,
        key: str,
        audio_bytes: bytes,
        *,
        text: str = "",
        options: SynthesisOptions | None = None,
        extension: str | None = None,
    ) -> Path:
        """Store audio bytes under key.

        Storing a key that already exists keeps the original bytes. The audio
        file is written to a temporary name and renamed into place, and is
        removed again if the metadata insert fails.

        Args:
            key: Content address for the audio
            audio_bytes: Rate-1.0 audio returned by the provider
            text: Source text, kept as metadata
            options: Voice options, kept as metadata
            extension: File extension of the bytes (defaults to the
                encoding's extension)

        Returns:
            Path of the cached audio file

        Raises:
            ValueError: If audio_bytes is empty
            RuntimeError: If the caching operation fails
        """
        if not audio_bytes:
            raise ValueError("Cannot cache empty audio")

        existing = self.storage.get(key)
        if existing is not None and existing.audio_path.exists():
            logger.debug(f"Cache entry {key[:12]} already present, keeping it")
            return existing.audio_path

        extension = extension or (options.extension if options else "bin")
        audio_path = self.audio_dir / f"{key}.{extension}"
        tmp_path = audio_path.with_suffix(f".{os.getpid()}.{threading.get_ident()}.tmp")
        identity = options.identity() if options else {}

        try:
            tmp_path.write_bytes(audio_bytes)
            os.replace(tmp_path, audio_path)

            if existing is not None:
                # Row left behind by a vanished file
                self.storage.delete(key)

            self.storage.save(
                CacheEntry(
                    key=key,
                    text=normalize_text(text),
                    language=str(identity.get("language", "")),
                    voice=str(identity.get("voice", "")),
                    encoding=str(identity.get("encoding", "")),
                    pitch=float(identity.get("pitch", 0.0)),
                    audio_path=audio_path,
                    size=len(audio_bytes),
                    timestamp=datetime.now(),
                )
            )
        except Exception as e:
            for path in (tmp_path, audio_path):
                if path.exists():
                    try:
                        path.unlink()
                    except OSError as cleanup_error:
                        logger.warning(
                            f"Failed to clean up partial audio file: {cleanup_error}"
                        )
            raise RuntimeError(f"Failed to cache audio: {e}") from e

        logger.debug(f"Cached {len(audio_bytes)} bytes as {audio_path.name}")
        self._evict()
        return audio_path

    def _evict(self) -> None:
        for key in self.policy.select(self.storage):
            self._remove(key)
            logger.info(f"Evicted cache entry {key[:12]}")

    def _remove(self, key: str) -> None:
        entry = self.storage.get(key)
        self.storage.delete(key)
        if entry is not None:
            entry.audio_path.unlink(missing_ok=True)

    def stats(self) -> CacheStats:
        """Return entry count and total size of cached audio."""
        count, total = self.storage.totals()
        return CacheStats(count=count, total_bytes=total)

    def clear(self) -> int:
        """Remove every cached entry and its audio file.

        Returns:
            Number of entries removed
        """
        entries = self.storage.all_entries()
        for entry in entries:
            self._remove(entry.key)
        logger.info(f"Cleared {len(entries)} cached entries")
        return len(entries)
