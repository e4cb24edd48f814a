"""Integration tests for CLI execution in a subprocess."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Project root for running tests
PROJECT_ROOT = Path(__file__).parent.parent.parent

pytestmark = pytest.mark.integration


def run_cli(*args: str, home: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "dubsync", *args],
        cwd=PROJECT_ROOT,
        env={**os.environ, "PYTHONPATH": "src", "HOME": str(home)},
        capture_output=True,
        text=True,
    )


def test_cli_shows_help(tmp_path: Path) -> None:
    """Test that CLI shows help when --help flag used."""
    result = run_cli("--help", home=tmp_path)

    assert result.returncode == 0
    assert "--background" in result.stdout
    assert "--speech-only" in result.stdout


def test_first_run_generates_config(tmp_path: Path) -> None:
    """Test that the first run writes a default config and exits 1."""
    result = run_cli("cues.json", "--speech-only", "-o", "out.wav", home=tmp_path)

    assert result.returncode == 1
    assert "No config found" in result.stderr
    assert (tmp_path / ".config" / "dubsync" / "config.toml").exists()


def test_missing_cue_file_reported(tmp_path: Path) -> None:
    config_dir = tmp_path / ".config" / "dubsync"
    config_dir.mkdir(parents=True)
    (config_dir / "config.toml").write_text(
        '[tts]\nprovider = "system"\nvoice = "pl"\nlanguage = "pl-PL"\n\n[cache]\nenabled = false\n'
    )

    result = run_cli(str(tmp_path / "none.json"), "--speech-only", "-o", "out.wav", home=tmp_path)

    assert result.returncode == 1
    assert "Error:" in result.stderr
