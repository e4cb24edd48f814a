"""Unit tests for cache eviction policies."""

import sys
from unittest.mock import Mock
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from dubsync.cache.eviction import MaxEntries, NeverEvict


class TestNeverEvict:
    def test_selects_nothing(self) -> None:
        storage = Mock()
        assert NeverEvict().select(storage) == []
        storage.totals.assert_not_called()


class TestMaxEntries:
    """Test oldest-first eviction above a size limit."""

    def test_rejects_non_positive_limit(self) -> None:
        with pytest.raises(ValueError, match="max_entries must be at least 1"):
            MaxEntries(0)

    def test_under_limit_selects_nothing(self) -> None:
        storage = Mock()
        storage.totals.return_value = (3, 300)
        storage.oldest.return_value = []

        assert MaxEntries(5).select(storage) == []

    def test_selects_excess_oldest_keys(self) -> None:
        """Test that exactly the overflow count is requested, oldest first."""
        storage = Mock()
        storage.totals.return_value = (7, 700)
        storage.oldest.return_value = [Mock(key="k1"), Mock(key="k2")]

        assert MaxEntries(5).select(storage) == ["k1", "k2"]
        storage.oldest.assert_called_once_with(2)
