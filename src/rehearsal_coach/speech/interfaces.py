"""Contracts for speech capture and microphone permission."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from rehearsal_coach.errors import CaptureErrorKind
from rehearsal_coach.models import ResultBatch


@dataclass(frozen=True, slots=True)
class PermissionResult:
    """Outcome of a microphone permission request."""

    granted: bool
    reason: str = ""

    @classmethod
    def grant(cls) -> PermissionResult:
        return cls(granted=True)

    @classmethod
    def deny(cls, reason: str) -> PermissionResult:
        return cls(granted=False, reason=reason)


class CaptureListener(Protocol):
    """Receives callbacks from a running capture provider."""

    def on_started(self) -> None:
        """Provider confirmed that capture is running."""

    def on_results(self, batch: ResultBatch) -> None:
        """Provider delivered a batch of recognized segments."""

    def on_error(self, kind: CaptureErrorKind, detail: str = "") -> None:
        """Provider failed with a classified reason."""

    def on_ended(self) -> None:
        """Provider stopped delivering results."""


class SpeechCaptureProvider(Protocol):
    """Streams recognized speech from a live audio source."""

    def start(self, listener: CaptureListener) -> None:
        """Begin capture and report progress through ``listener``."""

    def stop(self) -> None:
        """Stop capture. Must be safe to call when not running."""


class MicrophonePermissionProvider(Protocol):
    """Asks the environment for microphone access."""

    def request(self) -> PermissionResult:
        """Return whether the microphone may be used."""
