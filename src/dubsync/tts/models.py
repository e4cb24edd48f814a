"""TTS data models with validation."""

from dataclasses import dataclass, replace

# Encoding name -> file extension of the bytes a provider returns
ENCODING_EXTENSIONS = {
    "MP3": "mp3",
    "LINEAR16": "wav",
    "OGG_OPUS": "ogg",
}


@dataclass(frozen=True)
class SynthesisOptions:
    """Voice options for a synthesis request.

    Instances are immutable. Rate-fitting replaces the whole value on each
    attempt via with_rate() instead of mutating it.

    Args:
        language: BCP-47 language code (e.g., "pl-PL")
        voice: Provider-specific voice identifier
        encoding: Audio encoding of the returned bytes (MP3, LINEAR16, OGG_OPUS)
        pitch: Pitch shift in semitones (-20.0 to 20.0)
        speaking_rate: Playback rate applied after synthesis (0.25-4.0)
    """

    language: str = "pl-PL"
    voice: str = "pl-PL-Standard-G"
    encoding: str = "MP3"
    pitch: float = 0.0
    speaking_rate: float = 1.0

    def __post_init__(self) -> None:
        """Validate synthesis options."""
        if not self.language or not self.language.strip():
            raise ValueError("language cannot be empty")
        if self.encoding not in ENCODING_EXTENSIONS:
            supported = ", ".join(ENCODING_EXTENSIONS)
            raise ValueError(
                f"encoding must be one of {supported}, got {self.encoding!r}"
            )
        if not -20.0 <= self.pitch <= 20.0:
            raise ValueError("pitch must be between -20.0 and 20.0")
        if not 0.25 <= self.speaking_rate <= 4.0:
            raise ValueError("speaking_rate must be between 0.25 and 4.0")

    @property
    def extension(self) -> str:
        """File extension matching the encoding."""
        return ENCODING_EXTENSIONS[self.encoding]

    def with_rate(self, speaking_rate: float) -> "SynthesisOptions":
        """Return a copy with a different speaking rate."""
        return replace(self, speaking_rate=speaking_rate)

    def identity(self) -> dict[str, str | float]:
        """Fields that identify the base (rate 1.0) audio.

        speaking_rate is deliberately absent: it is applied by stretching
        the cached base audio, so it must not split cache entries.
        """
        return {
            "language": self.language,
            "voice": self.voice,
            "encoding": self.encoding,
            "pitch": float(self.pitch),
        }
