"""Exception hierarchy for dubsync."""


class DubsyncError(Exception):
    """Base exception for all dubsync errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class CueError(DubsyncError):
    """Raised when a cue list is malformed.

    This typically occurs when:
    - A cue has end <= start
    - A cue is missing start, end or text
    - The cue file is not a JSON array
    """

    pass


class AudioEngineError(DubsyncError):
    """Raised when an ffmpeg/ffprobe invocation fails or times out."""

    def __init__(
        self,
        message: str,
        argv: list[str] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.argv = argv or []


class AssemblyError(DubsyncError):
    """Raised when the timeline cannot be assembled into a speech track."""

    def __init__(
        self,
        message: str,
        cue_index: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.cue_index = cue_index
