"""Asynchronous orchestration of a practice session against a story record."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from rehearsal_coach.errors import InvalidSessionStateError, SaveFailure
from rehearsal_coach.models import FeedbackReport, PracticeRecord, SessionState
from rehearsal_coach.repository import PracticeRecordRepository
from rehearsal_coach.session import RecognitionSession, SessionEvent
from rehearsal_coach.speech.capability import CapabilityProbe, PermissionStatus
from rehearsal_coach.speech.interfaces import SpeechCaptureProvider
from rehearsal_coach.speech.timer import AsyncioTicker, TickSource
from rehearsal_coach.telemetry.logging import NullTelemetry, Telemetry


class PracticeOrchestrator:
    """Runs one practice session for a stored record and saves its feedback.

    Provider callbacks may arrive on any thread; they are queued onto the
    event loop and applied to the session one at a time by a worker task.
    User commands run on the loop thread between those events.
    """

    def __init__(
        self,
        *,
        record_id: str,
        repository: PracticeRecordRepository,
        provider: SpeechCaptureProvider,
        probe: CapabilityProbe,
        ticker: TickSource | None = None,
        telemetry: Telemetry | None = None,
        auto_restart: bool = True,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._record_id = record_id
        self._repository = repository
        self._probe = probe
        self._telemetry = telemetry or NullTelemetry()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = logger or logging.getLogger("rehearsal_coach.orchestrator")
        self._record = repository.load(record_id)
        self._session = RecognitionSession(
            provider,
            probe,
            ticker=ticker or AsyncioTicker(),
            telemetry=self._telemetry,
            auto_restart=auto_restart,
            prepared_text=self._record.content,
        )

        self._queue: asyncio.Queue[SessionEvent] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread_id: int | None = None
        self._worker_task: asyncio.Task[None] | None = None
        self._saved_record: PracticeRecord | None = None
        self._closed = False

    @property
    def session(self) -> RecognitionSession:
        return self._session

    @property
    def record(self) -> PracticeRecord:
        return self._record

    @property
    def saved_record(self) -> PracticeRecord | None:
        return self._saved_record

    async def open(self) -> None:
        """Start the event worker once and route session callbacks through it."""
        if self._worker_task and not self._worker_task.done():
            return

        self._loop = asyncio.get_running_loop()
        self._loop_thread_id = threading.get_ident()
        self._queue = asyncio.Queue()
        self._session.attach_poster(self.post)
        self._worker_task = asyncio.create_task(self._worker_loop(self._queue), name="practice-session-worker")
        self._logger.info("practice_opened", extra={"record_id": self._record_id})

    async def close(self) -> None:
        """Tear down capture, timer and worker so no orphaned callback touches the session."""
        self._session.close()
        self._closed = True
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            finally:
                self._worker_task = None
        self._queue = None
        self._logger.info("practice_closed", extra={"record_id": self._record_id})

    def post(self, event: SessionEvent) -> None:
        """Queue an event for the worker; safe to call from any thread."""
        if self._closed:
            self._logger.debug("event_after_close_dropped", extra={"event": type(event).__name__})
            return
        if self._queue is None or self._loop is None:
            self._session.dispatch(event)
            return
        if threading.get_ident() == self._loop_thread_id:
            self._queue.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        if self._queue is not None:
            await self._queue.join()

    async def start_recording(self) -> SessionState:
        """Ask for the microphone on first use, then start capture."""
        if self._probe.permission == PermissionStatus.UNKNOWN:
            await self._probe.request_microphone()
        self._session.start()
        return self._session.state

    async def request_microphone(self) -> bool:
        result = await self._probe.request_microphone()
        return result.granted

    def stop_recording(self) -> FeedbackReport | None:
        self._session.stop()
        return self._session.report

    def reset(self) -> None:
        self._session.reset()
        self._saved_record = None

    def save(self, rating: int) -> PracticeRecord:
        """Rate the stopped session and persist transcript, feedback and practice count."""
        if self._session.state == SessionState.STOPPED and self._session.pending_practice_delta == 0:
            raise InvalidSessionStateError("This practice session has already been saved")

        report = self._session.attach_rating(rating)
        try:
            current = self._repository.load(self._record_id)
            record = replace(
                current,
                transcript=self._session.final_text.strip(),
                feedback=report.to_dict(),
                practice_count=current.practice_count + self._session.pending_practice_delta,
                last_practiced_at=self._clock(),
            )
            self._repository.save(record)
        except Exception as exc:  # noqa: BLE001 - any repository failure is surfaced for manual retry.
            self._logger.warning("practice_save_failed", extra={"record_id": self._record_id, "error": str(exc)})
            raise SaveFailure(f"Could not save practice for record {self._record_id}: {exc}") from exc

        self._session.mark_saved()
        self._record = record
        self._saved_record = record
        self._telemetry.emit(
            "practice_session_saved",
            {"record_id": record.id, "practice_count": record.practice_count, "self_rating": rating},
        )
        return record

    async def _worker_loop(self, queue: asyncio.Queue[SessionEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                self._session.dispatch(event)
            except Exception:  # noqa: BLE001 - worker must keep serving the session.
                self._logger.exception("session_event_failed", extra={"event": type(event).__name__})
            finally:
                queue.task_done()
