"""ElevenLabs text-to-speech provider implementation."""

import asyncio
import os

from elevenlabs.client import ElevenLabs

from ..tts.errors import TTSAPIError, TTSAuthError
from ..tts.models import SynthesisOptions
from .base import TTSProvider

# Fixed settings; rate and timing are handled downstream
VOICE_SETTINGS = {
    "stability": 0.65,
    "similarity_boost": 0.75,
    "style": 0.4,
    "use_speaker_boost": True,
}


def _classify_error(e: Exception, action: str) -> Exception:
    if "unauthorized" in str(e).lower() or "401" in str(e):
        return TTSAuthError(f"Authentication failed: {e}", e)
    elif "429" in str(e):
        return TTSAPIError(f"Rate limit exceeded: {e}", 429, e)
    elif "5" in str(e)[:1]:  # 5xx server errors
        return TTSAPIError(f"Server error: {e}", original_error=e)
    return TTSAPIError(f"{action} failed: {e}", original_error=e)


class ElevenLabsProvider(TTSProvider):
    """ElevenLabs TTS provider implementation.

    ElevenLabs picks the language from the text itself; options.language and
    options.pitch are not used. Output is always MP3.
    """

    def __init__(
        self, api_key: str | None = None, model_id: str = "eleven_multilingual_v2"
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key. If not provided, reads from
                    ELEVENLABS_API_KEY environment variable.
            model_id: ElevenLabs model used for every request

        Raises:
            TTSAuthError: If API key is not provided or invalid.
        """
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise TTSAuthError(
                "ElevenLabs API key not found. Set ELEVENLABS_API_KEY environment "
                "variable or provide api_key parameter."
            )

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise TTSAuthError(f"Failed to initialize ElevenLabs client: {e}", e) from e

        self.model_id = model_id
        # Cache for voices to avoid repeated API calls
        self._voices_cache: list[dict] | None = None

    def audio_format(self, options: SynthesisOptions) -> str:
        return "mp3"

    async def synthesize(self, text: str, options: SynthesisOptions) -> bytes:
        """Convert text to speech audio bytes.

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        voice = options.voice
        # Use first available voice if not specified
        if not voice:
            voices = await self.list_voices()
            if not voices:
                raise TTSAPIError("No voices available")
            voice = voices[0]["id"]

        def _sync_convert() -> bytes:
            audio_generator = self._client.text_to_speech.convert(
                text=text.strip(),
                voice_id=voice,
                model_id=self.model_id,
                output_format="mp3_44100_128",
                voice_settings=VOICE_SETTINGS,
            )
            return b"".join(audio_generator)

        try:
            # Run synchronous ElevenLabs client in thread to avoid blocking event loop
            audio_bytes = await asyncio.to_thread(_sync_convert)
        except Exception as e:
            raise _classify_error(e, "API call") from e

        if not audio_bytes:
            raise TTSAPIError("No audio data received from API")

        return audio_bytes

    async def list_voices(self, language: str | None = None) -> list[dict]:
        """Get list of available voices.

        Results are cached after first call to avoid repeated API requests.
        ElevenLabs voices are multilingual, so language is ignored.

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
        """
        if self._voices_cache is not None:
            return self._voices_cache

        def _sync_get_voices() -> list[dict]:
            response = self._client.voices.get_all()
            return [
                {"id": voice.voice_id, "name": voice.name, "provider": "elevenlabs"}
                for voice in response.voices
            ]

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            raise _classify_error(e, "Voice listing") from e

        self._voices_cache = voices
        return voices
