from __future__ import annotations

import asyncio

from rehearsal_coach.errors import CaptureError, CaptureErrorKind
from rehearsal_coach.speech.capability import CapabilityProbe, PermissionStatus
from rehearsal_coach.speech.interfaces import PermissionResult


class StubPermission:
    def __init__(self, *answers: PermissionResult) -> None:
        self.answers = list(answers)
        self.calls = 0

    def request(self) -> PermissionResult:
        self.calls += 1
        return self.answers.pop(0)


class ExplodingPermission:
    def request(self) -> PermissionResult:
        raise OSError("no input device")


def test_check_support_has_no_side_effects() -> None:
    permissions = StubPermission()
    probe = CapabilityProbe(permissions, support_check=lambda: False)

    assert probe.check_support() is False
    assert probe.permission == PermissionStatus.UNKNOWN
    assert permissions.calls == 0


def test_granted_permission_allows_recording() -> None:
    probe = CapabilityProbe(StubPermission(PermissionResult.grant()), support_check=lambda: True)

    result = asyncio.run(probe.request_microphone())

    assert result.granted is True
    assert probe.permission == PermissionStatus.GRANTED
    assert probe.recording_allowed is True
    assert probe.blocking_error is None


def test_denied_permission_stays_denied_until_requested_again() -> None:
    permissions = StubPermission(PermissionResult.deny("user dismissed prompt"), PermissionResult.grant())
    probe = CapabilityProbe(permissions, support_check=lambda: True)

    denied = asyncio.run(probe.request_microphone())

    assert denied.granted is False
    assert probe.recording_allowed is False
    assert probe.blocking_error == CaptureError(CaptureErrorKind.PERMISSION_DENIED, "user dismissed prompt")
    assert probe.permission == PermissionStatus.DENIED

    asyncio.run(probe.request_microphone())

    assert permissions.calls == 2
    assert probe.recording_allowed is True
    assert probe.blocking_error is None


def test_permission_backend_failure_is_a_denial() -> None:
    probe = CapabilityProbe(ExplodingPermission(), support_check=lambda: True)

    result = asyncio.run(probe.request_microphone())

    assert result.granted is False
    assert "OSError" in result.reason


def test_audio_capture_failure_disables_recording() -> None:
    probe = CapabilityProbe(StubPermission(PermissionResult.grant()), support_check=lambda: True)
    asyncio.run(probe.request_microphone())

    probe.mark_capture_failure(CaptureError(CaptureErrorKind.NETWORK_ERROR))
    assert probe.recording_allowed is True

    probe.mark_capture_failure(CaptureError(CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE, "device unplugged"))
    assert probe.recording_allowed is False
    assert probe.blocking_error.kind == CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE
