"""TTS (Text-to-Speech) package for dubsync.

Holds the synthesis option model and the synthesis error types shared by
all providers.
"""

from .errors import TTSAPIError, TTSAuthError, TTSError
from .models import SynthesisOptions

__all__ = [
    "SynthesisOptions",
    "TTSAPIError",
    "TTSAuthError",
    "TTSError",
]
