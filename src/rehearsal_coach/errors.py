"""Error taxonomy for speech capture and practice persistence."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CaptureErrorKind(str, Enum):
    """Classified reasons a capture session can fail."""

    CAPABILITY_UNSUPPORTED = "capability_unsupported"
    PERMISSION_DENIED = "permission_denied"
    NO_SPEECH_DETECTED = "no_speech_detected"
    AUDIO_CAPTURE_UNAVAILABLE = "audio_capture_unavailable"
    NETWORK_ERROR = "network_error"
    INTERNAL_ABORT = "internal_abort"

    @property
    def user_visible(self) -> bool:
        return self is not CaptureErrorKind.INTERNAL_ABORT

    @property
    def retryable(self) -> bool:
        """Whether a plain ``start()`` may recover from this error."""
        return self in {
            CaptureErrorKind.NO_SPEECH_DETECTED,
            CaptureErrorKind.NETWORK_ERROR,
            CaptureErrorKind.INTERNAL_ABORT,
        }

    @property
    def blocks_recording(self) -> bool:
        """Whether recording stays disabled until permission is requested again."""
        return self in {
            CaptureErrorKind.PERMISSION_DENIED,
            CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE,
        }


_ERROR_CODES: dict[str, CaptureErrorKind] = {
    "not-allowed": CaptureErrorKind.PERMISSION_DENIED,
    "service-not-allowed": CaptureErrorKind.PERMISSION_DENIED,
    "no-speech": CaptureErrorKind.NO_SPEECH_DETECTED,
    "audio-capture": CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE,
    "network": CaptureErrorKind.NETWORK_ERROR,
    "aborted": CaptureErrorKind.INTERNAL_ABORT,
    "unsupported": CaptureErrorKind.CAPABILITY_UNSUPPORTED,
}


def classify_error_code(code: str | None) -> CaptureErrorKind:
    """Map a recognizer error code onto the capture error taxonomy."""
    normalized = (code or "").strip().lower().replace("_", "-")
    return _ERROR_CODES.get(normalized, CaptureErrorKind.INTERNAL_ABORT)


@dataclass(frozen=True, slots=True)
class CaptureError:
    """A classified capture failure attached to a session for display."""

    kind: CaptureErrorKind
    detail: str = ""

    @property
    def user_visible(self) -> bool:
        return self.kind.user_visible

    def describe(self) -> str:
        label = self.kind.value.replace("_", " ")
        return f"{label}: {self.detail}" if self.detail else label


class RehearsalError(RuntimeError):
    """Base class for rehearsal coach failures."""


class RecordingDisabledError(RehearsalError):
    """Raised when recording is blocked until microphone access is requested again."""

    def __init__(self, error: CaptureError) -> None:
        super().__init__(f"Recording is disabled ({error.describe()}). Request microphone access and try again.")
        self.error = error


class InvalidSessionStateError(RehearsalError):
    """Raised when a command is not valid in the session's current state."""


class SaveFailure(RehearsalError):
    """Raised when the record repository rejects a practice save."""


class SpeechBackendUnavailableError(RehearsalError):
    """Raised when an optional speech backend library is missing."""


class RecordNotFoundError(RehearsalError):
    """Raised when a practice record id is unknown to the repository."""
