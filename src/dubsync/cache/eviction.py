"""Pluggable eviction policies for the synthesis cache.

The cache never evicts unless a policy says so. Policies only pick keys;
SynthesisCache removes both the row and the audio file.
"""

from abc import ABC, abstractmethod

from .storage import CacheStorage


class EvictionPolicy(ABC):
    """Decides which cache entries to drop after a store."""

    @abstractmethod
    def select(self, storage: CacheStorage) -> list[str]:
        """Return the keys to evict (possibly empty)."""
        pass


class NeverEvict(EvictionPolicy):
    """Keep every entry forever."""

    def select(self, storage: CacheStorage) -> list[str]:
        return []


class MaxEntries(EvictionPolicy):
    """Keep at most max_entries entries, evicting the oldest first."""

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries

    def select(self, storage: CacheStorage) -> list[str]:
        count, _ = storage.totals()
        excess = count - self.max_entries
        return [entry.key for entry in storage.oldest(excess)]
