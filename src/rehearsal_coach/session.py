"""Recognition session state machine for live rehearsal capture.

Every input to a session (user command, provider callback, timer tick) is an
event passed to :meth:`RecognitionSession.dispatch`. Events posted while
another event is being applied wait in a private mailbox, so session state is
only ever mutated by one event at a time.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Union

from rehearsal_coach.analysis import analyze
from rehearsal_coach.errors import (
    CaptureError,
    CaptureErrorKind,
    InvalidSessionStateError,
    RecordingDisabledError,
    RehearsalError,
)
from rehearsal_coach.models import FeedbackReport, ResultBatch, SessionState
from rehearsal_coach.speech.capability import CapabilityProbe, PermissionStatus
from rehearsal_coach.speech.interfaces import SpeechCaptureProvider
from rehearsal_coach.speech.timer import TICK_SECONDS, ElapsedTimer, ManualTicker, TickSource
from rehearsal_coach.speech.transcript import TranscriptState, apply_batch
from rehearsal_coach.telemetry.logging import NullTelemetry, Telemetry


@dataclass(frozen=True, slots=True)
class StartRequested:
    pass


@dataclass(frozen=True, slots=True)
class StopRequested:
    pass


@dataclass(frozen=True, slots=True)
class ResetRequested:
    pass


@dataclass(frozen=True, slots=True)
class CaptureStarted:
    capture_id: int


@dataclass(frozen=True, slots=True)
class ResultsReceived:
    capture_id: int
    batch: ResultBatch


@dataclass(frozen=True, slots=True)
class CaptureFailed:
    capture_id: int
    kind: CaptureErrorKind
    detail: str = ""


@dataclass(frozen=True, slots=True)
class CaptureEnded:
    capture_id: int


@dataclass(frozen=True, slots=True)
class TimerTicked:
    generation: int


SessionEvent = Union[
    StartRequested,
    StopRequested,
    ResetRequested,
    CaptureStarted,
    ResultsReceived,
    CaptureFailed,
    CaptureEnded,
    TimerTicked,
]
EventPoster = Callable[[SessionEvent], None]


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only view of a session handed to observers."""

    state: SessionState
    final_text: str
    interim_text: str
    elapsed_seconds: int
    last_error: CaptureError | None
    report: FeedbackReport | None


SnapshotListener = Callable[[SessionSnapshot], None]

_LIVE_STATES = (SessionState.STARTING, SessionState.ACTIVE)


class _SessionListener:
    """Forwards provider callbacks into the session mailbox tagged with their capture id."""

    def __init__(self, post: EventPoster, capture_id: int) -> None:
        self._post = post
        self._capture_id = capture_id

    def on_started(self) -> None:
        self._post(CaptureStarted(self._capture_id))

    def on_results(self, batch: ResultBatch) -> None:
        self._post(ResultsReceived(self._capture_id, batch))

    def on_error(self, kind: CaptureErrorKind, detail: str = "") -> None:
        self._post(CaptureFailed(self._capture_id, CaptureErrorKind(kind), detail))

    def on_ended(self) -> None:
        self._post(CaptureEnded(self._capture_id))


class RecognitionSession:
    """Finite-state controller around one speech capture provider."""

    def __init__(
        self,
        provider: SpeechCaptureProvider,
        probe: CapabilityProbe,
        *,
        ticker: TickSource | None = None,
        telemetry: Telemetry | None = None,
        clock: Callable[[], float] = time.monotonic,
        auto_restart: bool = True,
        prepared_text: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._probe = probe
        self._ticker = ticker or ManualTicker()
        self._telemetry = telemetry or NullTelemetry()
        self._clock = clock
        self._auto_restart = auto_restart
        self._prepared_text = prepared_text
        self._logger = logger or logging.getLogger("rehearsal_coach.session")

        self._post: EventPoster = self.dispatch
        self._mailbox: deque[SessionEvent] = deque()
        self._draining = False
        self._listeners: list[SnapshotListener] = []

        self._state = SessionState.IDLE
        self._transcript = TranscriptState()
        self._timer = ElapsedTimer()
        self._last_error: CaptureError | None = None
        self._report: FeedbackReport | None = None
        self._pending_practice_delta = 0
        self._capture_id = 0
        self._tick_generation = 0
        self._stop_requested_at: float | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def final_text(self) -> str:
        return self._transcript.final_text

    @property
    def interim_text(self) -> str:
        return self._transcript.interim_text

    @property
    def elapsed_seconds(self) -> int:
        return self._timer.elapsed_seconds

    @property
    def last_error(self) -> CaptureError | None:
        return self._last_error

    @property
    def report(self) -> FeedbackReport | None:
        return self._report

    @property
    def pending_practice_delta(self) -> int:
        return self._pending_practice_delta

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            final_text=self._transcript.final_text,
            interim_text=self._transcript.interim_text,
            elapsed_seconds=self._timer.elapsed_seconds,
            last_error=self._last_error,
            report=self._report,
        )

    def attach_poster(self, post: EventPoster) -> None:
        """Route provider callbacks and ticks through ``post`` instead of dispatching inline."""
        self._post = post

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> None:
        self.dispatch(StartRequested())

    def stop(self) -> None:
        self.dispatch(StopRequested())

    def reset(self) -> None:
        self.dispatch(ResetRequested())

    def close(self) -> None:
        """Tear down capture and drop observers when leaving the session context."""
        self.reset()
        self._listeners.clear()

    def attach_rating(self, rating: int) -> FeedbackReport:
        """Attach the user's self-rating to the report of a stopped session."""
        if self._state != SessionState.STOPPED or self._report is None:
            raise InvalidSessionStateError("Feedback can only be rated after a practice session is stopped")
        self._report = self._report.with_rating(rating)
        return self._report

    def mark_saved(self) -> None:
        self._pending_practice_delta = 0

    def dispatch(self, event: SessionEvent) -> None:
        """Queue ``event`` and apply queued events in order until the mailbox is empty."""
        self._mailbox.append(event)
        if self._draining:
            return

        self._draining = True
        failure: RehearsalError | None = None
        try:
            while self._mailbox:
                queued = self._mailbox.popleft()
                before = self.snapshot()
                try:
                    self._apply(queued)
                except RehearsalError as exc:
                    failure = failure or exc
                if self.snapshot() != before:
                    self._notify()
        finally:
            self._draining = False

        if failure is not None:
            raise failure

    def _apply(self, event: SessionEvent) -> None:
        if isinstance(event, StartRequested):
            self._on_start()
        elif isinstance(event, StopRequested):
            self._on_stop()
        elif isinstance(event, ResetRequested):
            self._on_reset()
        elif isinstance(event, CaptureStarted):
            self._on_capture_started(event)
        elif isinstance(event, ResultsReceived):
            self._on_results(event)
        elif isinstance(event, CaptureFailed):
            self._on_capture_failed(event)
        elif isinstance(event, CaptureEnded):
            self._on_capture_ended(event)
        elif isinstance(event, TimerTicked):
            self._on_tick(event)
        else:
            raise TypeError(f"Unsupported session event: {event!r}")

    def _on_start(self) -> None:
        if self._state in _LIVE_STATES or self._state == SessionState.STOPPING:
            self._logger.debug("start_ignored", extra={"state": self._state.value})
            return

        if not self._probe.check_support():
            self._last_error = CaptureError(
                CaptureErrorKind.CAPABILITY_UNSUPPORTED,
                "No speech capture backend is available in this environment",
            )
            self._set_state(SessionState.ERRORED)
            return

        if self._probe.permission != PermissionStatus.GRANTED:
            blocking = self._probe.blocking_error or CaptureError(
                CaptureErrorKind.PERMISSION_DENIED,
                "Microphone access has not been granted",
            )
            self._logger.warning("start_blocked", extra={"kind": blocking.kind.value})
            raise RecordingDisabledError(blocking)

        self._report = None
        self._pending_practice_delta = 0
        self._last_error = None
        self._stop_requested_at = None
        self._capture_id += 1
        self._set_state(SessionState.STARTING)
        self._start_provider()

    def _start_provider(self) -> None:
        capture_id = self._capture_id
        try:
            self._provider.start(_SessionListener(self._post, capture_id))
        except Exception as exc:  # noqa: BLE001 - provider failures become classified session errors.
            self._logger.exception("provider_start_failed", extra={"capture_id": capture_id})
            self._mailbox.append(CaptureFailed(capture_id, CaptureErrorKind.INTERNAL_ABORT, f"{type(exc).__name__}: {exc}"))

    def _on_capture_started(self, event: CaptureStarted) -> None:
        if event.capture_id != self._capture_id or self._state != SessionState.STARTING:
            self._logger.debug("capture_started_ignored", extra={"capture_id": event.capture_id})
            return

        self._set_state(SessionState.ACTIVE)
        self._timer.start()
        self._tick_generation += 1
        generation = self._tick_generation
        self._ticker.start(lambda: self._post(TimerTicked(generation)))

    def _on_results(self, event: ResultsReceived) -> None:
        if event.capture_id != self._capture_id or self._state != SessionState.ACTIVE:
            self._logger.debug("results_dropped", extra={"capture_id": event.capture_id, "state": self._state.value})
            return
        self._transcript = apply_batch(event.batch, self._transcript)

    def _on_tick(self, event: TimerTicked) -> None:
        if event.generation != self._tick_generation or self._state != SessionState.ACTIVE:
            return
        self._timer.tick()

    def _on_stop(self) -> None:
        if self._state not in _LIVE_STATES:
            self._logger.debug("stop_ignored", extra={"state": self._state.value})
            return

        self._set_state(SessionState.STOPPING)
        self._stop_requested_at = self._clock()
        self._halt_capture()
        self._transcript = TranscriptState(final_text=self._transcript.final_text)
        self._report = analyze(self._transcript.final_text, self._timer.elapsed_seconds, self._prepared_text)
        self._pending_practice_delta = 1
        self._set_state(SessionState.STOPPED)
        self._telemetry.emit(
            "practice_session_completed",
            {
                "elapsed_seconds": self._timer.elapsed_seconds,
                "word_count": self._report.content.word_count,
                "narrative_score": self._report.narrative.score,
            },
        )

    def _on_capture_failed(self, event: CaptureFailed) -> None:
        error = CaptureError(event.kind, event.detail)
        if event.capture_id != self._capture_id:
            self._logger.debug("stale_capture_error", extra={"capture_id": event.capture_id, "kind": event.kind.value})
            return

        if self._state not in _LIVE_STATES:
            if self._aborted_by_stop(error):
                self._logger.debug("abort_after_stop_suppressed", extra={"capture_id": event.capture_id})
            else:
                self._logger.info("late_capture_error_ignored", extra={"kind": error.kind.value, "state": self._state.value})
            return

        self._halt_capture()
        self._last_error = error
        self._probe.mark_capture_failure(error)
        self._set_state(SessionState.ERRORED)
        if error.user_visible:
            self._logger.warning("capture_error", extra={"kind": error.kind.value, "detail": error.detail})
        else:
            self._logger.info("capture_aborted", extra={"detail": error.detail})

    def _on_capture_ended(self, event: CaptureEnded) -> None:
        if event.capture_id != self._capture_id or self._state != SessionState.ACTIVE:
            return

        if not self._auto_restart:
            self._logger.info("capture_ended", extra={"capture_id": event.capture_id})
            self._on_stop()
            return

        self._logger.info("capture_restarting", extra={"capture_id": event.capture_id})
        self._start_provider()

    def _on_reset(self) -> None:
        self._halt_capture()
        self._capture_id += 1
        self._tick_generation += 1
        self._timer.reset()
        self._transcript = TranscriptState()
        self._last_error = None
        self._report = None
        self._pending_practice_delta = 0
        self._stop_requested_at = None
        self._set_state(SessionState.IDLE)

    def _aborted_by_stop(self, error: CaptureError) -> bool:
        if error.kind != CaptureErrorKind.INTERNAL_ABORT or self._stop_requested_at is None:
            return False
        return self._clock() - self._stop_requested_at <= TICK_SECONDS

    def _halt_capture(self) -> None:
        self._ticker.stop()
        self._timer.stop()
        try:
            self._provider.stop()
        except Exception:  # noqa: BLE001 - a failing stop must not block teardown.
            self._logger.exception("provider_stop_failed", extra={"capture_id": self._capture_id})

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._logger.debug("session_state_changed", extra={"from": self._state.value, "to": state.value})
        self._state = state

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001 - one bad observer must not stall the mailbox.
                self._logger.exception("snapshot_listener_failed", extra={"state": snapshot.state.value})
