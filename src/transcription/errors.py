"""Exceptions raised by the streaming transcription stack."""


class TranscriptionError(Exception):
    """Base class for failures during a transcription session."""

    pass


class TransportError(TranscriptionError):
    """Raised when the streaming ASR connection fails or reports an error."""

    def __init__(self, message: str, *, code: object = None):
        super().__init__(message)
        self.code = code


class MessageParseError(TranscriptionError):
    """Raised when a server message cannot be decoded."""

    pass
