"""Speech synthesis exceptions."""

from ..errors import DubsyncError


class TTSError(DubsyncError):
    """Base exception for TTS-related errors.

    A TTSError raised for any cue is fatal for the whole dubbing job.
    """

    pass


class TTSAuthError(TTSError):
    """Exception raised for authentication failures.

    This typically occurs when:
    - API key or service account credentials are missing or invalid
    - Account has insufficient quota
    - Credentials lack the required permissions
    """

    pass


class TTSAPIError(TTSError):
    """Exception raised for API communication errors.

    This typically occurs when:
    - API server is unavailable (5xx errors)
    - Rate limits are exceeded (429 error)
    - Request format is invalid (4xx errors)
    - Network connectivity issues or timeouts
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code
