"""Detection of speech-capture support and microphone permission state."""

from __future__ import annotations

import asyncio
import importlib.util
import logging
from enum import Enum
from typing import Callable

from rehearsal_coach.errors import CaptureError, CaptureErrorKind

from .interfaces import MicrophonePermissionProvider, PermissionResult


class PermissionStatus(str, Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


def speech_recognition_available() -> bool:
    """True when ``speech_recognition`` and its PyAudio microphone backend are importable."""
    return all(importlib.util.find_spec(name) is not None for name in ("speech_recognition", "pyaudio"))


class CapabilityProbe:
    """Gates recording on environment support and granted microphone access."""

    def __init__(
        self,
        permissions: MicrophonePermissionProvider,
        *,
        support_check: Callable[[], bool] = speech_recognition_available,
        logger: logging.Logger | None = None,
    ) -> None:
        self._permissions = permissions
        self._support_check = support_check
        self._logger = logger or logging.getLogger("rehearsal_coach.capability")
        self._status = PermissionStatus.UNKNOWN
        self._blocking_error: CaptureError | None = None

    @property
    def permission(self) -> PermissionStatus:
        return self._status

    @property
    def blocking_error(self) -> CaptureError | None:
        """The failure that keeps recording disabled, if any."""
        return self._blocking_error

    @property
    def recording_allowed(self) -> bool:
        return self._status == PermissionStatus.GRANTED and self.check_support()

    def check_support(self) -> bool:
        return bool(self._support_check())

    async def request_microphone(self) -> PermissionResult:
        """Ask for microphone access; the answer replaces any earlier one."""
        try:
            result = await asyncio.to_thread(self._permissions.request)
        except Exception as exc:  # noqa: BLE001 - permission backends fail in environment-specific ways.
            result = PermissionResult.deny(f"{type(exc).__name__}: {exc}")

        if result.granted:
            self._status = PermissionStatus.GRANTED
            self._blocking_error = None
            self._logger.info("microphone_granted")
        else:
            self._status = PermissionStatus.DENIED
            self._blocking_error = CaptureError(CaptureErrorKind.PERMISSION_DENIED, result.reason)
            self._logger.warning("microphone_denied", extra={"reason": result.reason})
        return result

    def mark_capture_failure(self, error: CaptureError) -> None:
        """Disable recording after a permission or audio-device failure reported mid-session."""
        if not error.kind.blocks_recording:
            return
        self._status = PermissionStatus.DENIED
        self._blocking_error = error
        self._logger.warning("recording_disabled", extra={"kind": error.kind.value, "detail": error.detail})


class GrantedPermission:
    """Permission provider for environments without a permission prompt."""

    def request(self) -> PermissionResult:
        return PermissionResult.grant()
