"""Recognition state machine values."""

from dataclasses import dataclass

from object_recognition.domain.objects import ObjectInfo
from object_recognition.domain.priority import RecognitionMethod


@dataclass(frozen=True)
class TierAttempt:
    """Records why a tier declined an image."""

    method: RecognitionMethod
    reason: str


@dataclass(frozen=True)
class Idle:
    """Waiting for a recognition request."""


@dataclass(frozen=True)
class InProgress:
    """A recognition call is running."""


@dataclass(frozen=True)
class Succeeded:
    """The last recognition call produced a result."""

    result: ObjectInfo


@dataclass(frozen=True)
class Failed:
    """Every enabled tier declined, or the call errored."""

    reason: str
    attempts: tuple[TierAttempt, ...] = ()


RecognitionState = Idle | InProgress | Succeeded | Failed


def state_name(state: RecognitionState) -> str:
    """Return a stable lower-case name for a state."""
    match state:
        case Idle():
            return "idle"
        case InProgress():
            return "in_progress"
        case Succeeded():
            return "succeeded"
        case Failed():
            return "failed"
