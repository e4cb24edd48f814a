"""Google Cloud Text-to-Speech provider implementation."""

import logging

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech

from ..tts.errors import TTSAPIError, TTSAuthError
from ..tts.models import SynthesisOptions
from .base import TTSProvider

logger = logging.getLogger(__name__)

_ENCODINGS = {
    "MP3": texttospeech.AudioEncoding.MP3,
    "LINEAR16": texttospeech.AudioEncoding.LINEAR16,
    "OGG_OPUS": texttospeech.AudioEncoding.OGG_OPUS,
}


class GoogleTTSProvider(TTSProvider):
    """Google Cloud TTS provider.

    Honors every SynthesisOptions field except speaking_rate, which is
    always sent as 1.0. Credentials come from GOOGLE_APPLICATION_CREDENTIALS
    (or any other Application Default Credentials source).
    """

    def __init__(self, client: texttospeech.TextToSpeechAsyncClient | None = None) -> None:
        """Initialize the provider.

        Args:
            client: Optional pre-built async client (created lazily otherwise)
        """
        self._client = client

    def _get_client(self) -> texttospeech.TextToSpeechAsyncClient:
        if self._client is None:
            try:
                self._client = texttospeech.TextToSpeechAsyncClient()
            except auth_exceptions.DefaultCredentialsError as e:
                raise TTSAuthError(
                    "Google Cloud credentials not found. Set GOOGLE_APPLICATION_CREDENTIALS "
                    "to a service account JSON file.",
                    e,
                ) from e
        return self._client

    async def synthesize(self, text: str, options: SynthesisOptions) -> bytes:
        """Convert text to speech audio bytes.

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        client = self._get_client()
        try:
            response = await client.synthesize_speech(
                input=texttospeech.SynthesisInput(text=text.strip()),
                voice=texttospeech.VoiceSelectionParams(
                    language_code=options.language,
                    name=options.voice or None,
                ),
                audio_config=texttospeech.AudioConfig(
                    audio_encoding=_ENCODINGS[options.encoding],
                    speaking_rate=1.0,
                    pitch=options.pitch,
                ),
            )
        except (
            google_exceptions.Unauthenticated,
            google_exceptions.PermissionDenied,
        ) as e:
            raise TTSAuthError(f"Authentication failed: {e}", e) from e
        except google_exceptions.ResourceExhausted as e:
            raise TTSAPIError(f"Rate limit exceeded: {e}", 429, e) from e
        except google_exceptions.GoogleAPICallError as e:
            raise TTSAPIError(f"API call failed: {e}", e.code, e) from e

        if not response.audio_content:
            raise TTSAPIError("No audio data received from API")

        logger.debug(
            f"Google TTS returned {len(response.audio_content)} bytes "
            f"for {len(text)} chars ({options.voice})"
        )
        return response.audio_content

    async def list_voices(self, language: str | None = None) -> list[dict]:
        """List Google voices, optionally filtered by language code.

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
        """
        client = self._get_client()
        try:
            response = await client.list_voices(language_code=language or "")
        except (
            google_exceptions.Unauthenticated,
            google_exceptions.PermissionDenied,
        ) as e:
            raise TTSAuthError(f"Authentication failed: {e}", e) from e
        except google_exceptions.GoogleAPICallError as e:
            raise TTSAPIError(f"Failed to list voices: {e}", e.code, e) from e

        return [
            {
                "id": voice.name,
                "name": f"{voice.name} ({', '.join(voice.language_codes)})",
                "provider": "google",
            }
            for voice in response.voices
        ]
