"""Speech capture backend powered by ``speech_recognition``."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from rehearsal_coach.errors import CaptureErrorKind, SpeechBackendUnavailableError
from rehearsal_coach.models import ResultBatch, Segment

from .interfaces import CaptureListener, PermissionResult

_INSTALL_HINT = "Install extras with: pip install 'rehearsal-coach[voice]'"


def _import_speech_recognition() -> Any:
    try:
        import speech_recognition as sr
    except ImportError as exc:  # pragma: no cover - import guard
        raise SpeechBackendUnavailableError(f"Speech capture backend unavailable. {_INSTALL_HINT}") from exc
    return sr


def classify_exception(exc: BaseException, sr: Any | None = None) -> CaptureErrorKind:
    """Map a ``speech_recognition``/PyAudio failure onto the capture error taxonomy."""
    if sr is not None:
        if isinstance(exc, sr.RequestError):
            return CaptureErrorKind.NETWORK_ERROR
        if isinstance(exc, (sr.UnknownValueError, sr.WaitTimeoutError)):
            return CaptureErrorKind.NO_SPEECH_DETECTED
    if isinstance(exc, AttributeError):
        # speech_recognition raises AttributeError when PyAudio is missing.
        return CaptureErrorKind.CAPABILITY_UNSUPPORTED
    if isinstance(exc, OSError):
        return CaptureErrorKind.AUDIO_CAPTURE_UNAVAILABLE
    return CaptureErrorKind.INTERNAL_ABORT


class SpeechRecognitionPermission:
    """Treat a successful microphone open as granted access."""

    def __init__(self, *, device_index: int | None = None) -> None:
        self._sr = _import_speech_recognition()
        self._device_index = device_index

    def request(self) -> PermissionResult:
        try:
            with self._sr.Microphone(device_index=self._device_index):
                pass
        except (AttributeError, OSError) as exc:
            return PermissionResult.deny(f"{type(exc).__name__}: {exc}")
        return PermissionResult.grant()


class SpeechRecognitionCaptureProvider:
    """Capture phrases in the background and recognize each one as a final segment.

    ``speech_recognition`` has no interim hypotheses, so every batch holds a
    single final segment. The microphone is opened and calibrated on its own
    thread, so ``start`` returns at once; callbacks arrive on that thread or on
    the library's listener thread.
    """

    def __init__(
        self,
        *,
        language: str = "en-US",
        phrase_time_limit: float = 10.0,
        adjust_noise_seconds: float = 0.5,
        device_index: int | None = None,
        recognize: Callable[[Any, Any, str], str] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sr = _import_speech_recognition()
        self._recognizer = self._sr.Recognizer()
        self._language = language
        self._phrase_time_limit = phrase_time_limit
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)
        self._device_index = device_index
        self._recognize = recognize or self._recognize_google
        self._logger = logger or logging.getLogger("rehearsal_coach.speech")
        self._stopper: Callable[..., None] | None = None
        self._listener: CaptureListener | None = None
        self._lock = threading.Lock()
        self._opening = False
        self._cancelled = False

    def start(self, listener: CaptureListener) -> None:
        """Open the microphone on a background thread; the listener hears back from there."""
        with self._lock:
            if self._stopper is not None:
                return
            self._listener = listener
            self._cancelled = False
            if self._opening:
                # A stop/start pair while opening hands the pending open to the new listener.
                return
            self._opening = True
        threading.Thread(
            target=self._open_and_listen,
            name="speech-capture-open",
            daemon=True,
        ).start()

    def stop(self) -> None:
        with self._lock:
            stopper, self._stopper = self._stopper, None
            if self._opening:
                self._cancelled = True
        if stopper is not None:
            stopper(wait_for_stop=False)

    def _open_and_listen(self) -> None:
        try:
            microphone = self._sr.Microphone(device_index=self._device_index)
            if self._adjust_noise_seconds > 0:
                with microphone as source:
                    self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
            stopper = self._recognizer.listen_in_background(
                microphone,
                self._on_phrase,
                phrase_time_limit=self._phrase_time_limit,
            )
        except Exception as exc:  # noqa: BLE001 - classified and reported to the listener.
            with self._lock:
                self._opening = False
                listener = self._listener
            kind = classify_exception(exc, self._sr)
            self._logger.warning("capture_start_failed", extra={"kind": kind.value, "error": str(exc)})
            listener.on_error(kind, f"{type(exc).__name__}: {exc}")
            return

        with self._lock:
            self._opening = False
            cancelled = self._cancelled
            listener = self._listener
            if not cancelled:
                self._stopper = stopper
        if cancelled:
            self._logger.debug("capture_open_cancelled")
            stopper(wait_for_stop=False)
            return
        listener.on_started()

    def _on_phrase(self, recognizer: Any, audio: Any) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            text = self._recognize(recognizer, audio, self._language)
        except self._sr.UnknownValueError:
            return
        except Exception as exc:  # noqa: BLE001 - classified and reported to the listener.
            listener.on_error(classify_exception(exc, self._sr), str(exc))
            return
        if text.strip():
            listener.on_results(ResultBatch.of(Segment(text, is_final=True)))

    @staticmethod
    def _recognize_google(recognizer: Any, audio: Any, language: str) -> str:
        return recognizer.recognize_google(audio, language=language)
