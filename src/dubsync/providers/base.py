"""Abstract base class for text-to-speech providers.

This module defines the interface that all TTS providers must implement,
ensuring consistent behavior across different TTS backends.
"""

from abc import ABC, abstractmethod

from ..tts.models import SynthesisOptions


class TTSProvider(ABC):
    """Abstract base class for text-to-speech providers.

    Providers always render at speaking rate 1.0. Rate changes are applied
    afterwards by stretching the audio, which keeps cached renderings valid
    for every rate.

    Voice Dictionary Structure:
        Each voice returned by list_voices() should follow this structure:
        {
            "id": str,       # Unique identifier for the voice
            "name": str,     # Human-readable name for the voice
            "provider": str  # Name of the provider (e.g., "google", "system")
        }
    """

    @abstractmethod
    async def synthesize(self, text: str, options: SynthesisOptions) -> bytes:
        """Convert text to audio bytes at speaking rate 1.0.

        Args:
            text: The text to convert to speech
            options: Voice options; speaking_rate must be ignored

        Returns:
            Audio data as bytes (see audio_format for the container)

        Raises:
            TTSError: If synthesis fails
        """
        pass

    @abstractmethod
    async def list_voices(self, language: str | None = None) -> list[dict]:
        """Return available voices for this provider.

        Args:
            language: Optional language code to filter by

        Returns:
            List of voice dictionaries, each containing:
            - id: Unique voice identifier
            - name: Human-readable voice name
            - provider: Provider name

        Raises:
            TTSError: If voice listing fails
        """
        pass

    def audio_format(self, options: SynthesisOptions) -> str:
        """File extension of the bytes synthesize() returns."""
        return options.extension
