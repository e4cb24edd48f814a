"""Cache key derivation."""

import hashlib
import json

from ..text import normalize_text
from ..tts.models import SynthesisOptions


def cache_key(text: str, options: SynthesisOptions) -> str:
    """Derive the content address for synthesized audio.

    The key covers the normalized text and every option that changes the
    base audio. speaking_rate is not part of it, so one cached rendering
    serves every rate.

    Args:
        text: Text that was (or will be) synthesized
        options: Voice options of the request

    Returns:
        64-character SHA-256 hex digest
    """
    if text is None or options is None:
        raise ValueError("text and options must be non-None")

    key_data = json.dumps(
        {"text": normalize_text(text), **options.identity()},
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(key_data.encode("utf-8")).hexdigest()
