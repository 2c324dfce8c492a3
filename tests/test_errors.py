from rehearsal_coach.errors import CaptureError, CaptureErrorKind, classify_error_code


def test_recognizer_codes_map_to_error_kinds() -> None:
    assert classify_error_code("not-allowed") == CaptureErrorKind.PERMISSION_DENIED
    assert classify_error_code("service-not-allowed") == CaptureErrorKind.PERMISSION_DENIED
    assert classify_error_code("no-speech") == CaptureErrorKind.NO_SPEECH_DETECTED
    assert classify_error_code("AUDIO_CAPTURE") == CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE
    assert classify_error_code("network") == CaptureErrorKind.NETWORK_ERROR
    assert classify_error_code("aborted") == CaptureErrorKind.INTERNAL_ABORT


def test_unknown_codes_are_treated_as_internal_aborts() -> None:
    assert classify_error_code("bad-grammar") == CaptureErrorKind.INTERNAL_ABORT
    assert classify_error_code(None) == CaptureErrorKind.INTERNAL_ABORT


def test_only_internal_abort_is_hidden_from_users() -> None:
    hidden = [kind for kind in CaptureErrorKind if not kind.user_visible]

    assert hidden == [CaptureErrorKind.INTERNAL_ABORT]
    assert CaptureError(CaptureErrorKind.NETWORK_ERROR, "timeout").describe() == "network error: timeout"
    assert CaptureError(CaptureErrorKind.NO_SPEECH_DETECTED).describe() == "no speech detected"
