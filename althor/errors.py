"""
Exception hierarchy shared by every engine component.

Each user-visible failure kind has its own class so the terminal UI can
report it without inspecting messages. Vendor SDK and HTTP exceptions are
translated into these at the adapter boundary.
"""

from typing import Optional


class AlthorError(Exception):
    """Base exception for all engine errors."""
    pass


class ConfigurationError(AlthorError):
    """Raised when the environment or persisted settings are unusable."""
    pass


class UnknownProviderError(ConfigurationError):
    """Raised when a provider name has no registered adapter."""
    pass


class UnsupportedModelError(ConfigurationError):
    """Raised when a model is not advertised by the selected provider."""
    pass


class MissingCredentialError(AlthorError):
    """Raised before any network call when no API key is available."""
    pass


class NetworkFailureError(AlthorError):
    """Raised when a remote service cannot be reached or times out."""
    pass


class ProviderStatusError(NetworkFailureError):
    """Raised when a remote service answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(AlthorError):
    """Raised when a response is missing its choices or has an unexpected shape."""
    pass


class DeviceUnavailableError(AlthorError):
    """Raised when the audio capture device cannot be acquired."""
    pass


class EmptyTranscriptError(AlthorError):
    """Raised when transcription yields no speech."""
    pass


class InvalidRegenerationTargetError(AlthorError):
    """Raised when a turn cannot be regenerated."""
    pass


class RegenerationInProgressError(InvalidRegenerationTargetError):
    """Raised when the same turn is already being regenerated."""
    pass


class InvalidContentRequestError(AlthorError):
    """Raised when a content form is missing its topic."""
    pass


class PipelineStateError(AlthorError):
    """Raised on an illegal voice pipeline transition."""
    pass


class JSONParseFailure(AlthorError):
    """
    Extraction output that could not be decoded.

    Never raised: it is stored on a ``Fallback`` decoding result.
    """
    pass
