"""Cue source adapter.

Subtitle parsing happens upstream; this module only accepts an already
timed cue list (a JSON array of {"start", "end", "text"} objects, seconds)
and validates it.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .errors import CueError
from .timing.models import Cue

logger = logging.getLogger(__name__)


def parse_cues(records: list[dict[str, Any]]) -> list[Cue]:
    """Build a sorted cue list from plain records.

    Args:
        records: Sequence of mappings with start, end and text keys

    Returns:
        Cues sorted ascending by start (stable for equal starts)

    Raises:
        CueError: If a record is missing fields or has invalid timing
    """
    if not isinstance(records, list):
        raise CueError("Cue data must be a list of objects")

    cues = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise CueError(f"Cue {i + 1} is not an object")
        missing = [key for key in ("start", "end", "text") if key not in record]
        if missing:
            raise CueError(f"Cue {i + 1} is missing {', '.join(missing)}")
        try:
            cues.append(
                Cue(
                    start=float(record["start"]),
                    end=float(record["end"]),
                    text=str(record["text"] or ""),
                )
            )
        except (TypeError, ValueError) as e:
            raise CueError(f"Cue {i + 1} is invalid: {e}", e) from e

    return sorted(cues, key=lambda cue: cue.start)


def load_cues(path: str | Path) -> list[Cue]:
    """Load and validate cues from a JSON file.

    Raises:
        CueError: If the file is missing, not JSON, or holds invalid cues
    """
    cue_file = Path(path)
    if not cue_file.exists():
        raise CueError(f"Cue file not found: {cue_file}")

    try:
        data = json.loads(cue_file.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise CueError(f"Cue file is not valid JSON: {e}", e) from e

    cues = parse_cues(data)
    logger.info(f"Loaded {len(cues)} cues from {cue_file}")
    return cues
