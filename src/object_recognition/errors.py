"""Error types raised by the recognition core."""

from collections.abc import Sequence

from object_recognition.domain.recognition import TierAttempt


class RecognitionError(Exception):
    """Base class for recognition errors."""


class ValidationError(RecognitionError):
    """Raised when a priority configuration is malformed."""


class BusyError(RecognitionError):
    """Raised when recognize is called while another call is in flight."""


class ProviderUnavailableError(RecognitionError):
    """Raised when no external provider has quota left."""


class TransportError(RecognitionError):
    """Raised by provider adapters on transport or protocol failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderTimeoutError(TransportError):
    """Raised when a provider call exceeds its timeout."""


class ExhaustedError(RecognitionError):
    """Raised when every enabled tier declined the image."""

    def __init__(self, attempts: Sequence[TierAttempt]) -> None:
        self.attempts = tuple(attempts)
        super().__init__(describe_attempts(self.attempts))


def describe_attempts(attempts: Sequence[TierAttempt]) -> str:
    """Render tier attempts as a single human-readable reason."""
    if not attempts:
        return "No recognition method is enabled"
    details = "; ".join(
        f"{attempt.method.value}: {attempt.reason}" for attempt in attempts
    )
    return f"Unable to recognize the object ({details})"
