"""Pytest configuration and fixtures for dubsync tests."""

import sys
from collections.abc import Generator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import dubsync.config
from dubsync.providers import ProviderRegistry


@pytest.fixture(autouse=True)
def isolate_home(monkeypatch, tmp_path) -> None:
    """Keep config and cache lookups away from the real home directory."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture(autouse=True)
def reset_provider_instances() -> Generator[None]:
    """Drop provider instances cached by earlier tests."""
    ProviderRegistry._instances.clear()
    yield
    ProviderRegistry._instances.clear()


@pytest.fixture(autouse=True)
def reset_config_cache() -> Generator[None]:
    """Forget config memoized by load_config()."""
    dubsync.config._cached_config = None
    yield
    dubsync.config._cached_config = None


@pytest.fixture
def workdir() -> Generator[Path]:
    with TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)
