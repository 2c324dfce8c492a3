"""Deterministic capture provider for tests, demos and transcript replay."""

from __future__ import annotations

from pathlib import Path

from rehearsal_coach.errors import CaptureErrorKind
from rehearsal_coach.models import ResultBatch, Segment

from .interfaces import CaptureListener


class ScriptedCaptureProvider:
    """Capture provider whose events are pushed explicitly by the caller.

    ``start`` confirms immediately unless ``fail_start_with`` is set, and
    ``confirm_on_start=False`` leaves the session waiting in its starting
    state until :meth:`confirm` is called.
    """

    def __init__(
        self,
        *,
        confirm_on_start: bool = True,
        fail_start_with: CaptureErrorKind | None = None,
        script: list[ResultBatch] | None = None,
    ) -> None:
        self.confirm_on_start = confirm_on_start
        self.fail_start_with = fail_start_with
        self.script = list(script or [])
        self.start_calls = 0
        self.stop_calls = 0
        self._listener: CaptureListener | None = None
        self._running = False

    @property
    def active(self) -> bool:
        return self._running

    def start(self, listener: CaptureListener) -> None:
        self.start_calls += 1
        if self.fail_start_with is not None:
            listener.on_error(self.fail_start_with, "scripted start failure")
            return
        self._listener = listener
        self._running = True
        if self.confirm_on_start:
            listener.on_started()

    def stop(self) -> None:
        self.stop_calls += 1
        self._running = False

    def confirm(self) -> None:
        self._require_listener().on_started()

    def emit(self, *segments: Segment) -> None:
        self._require_listener().on_results(ResultBatch.of(*segments))

    def say(self, text: str, *, interim: str | None = None) -> None:
        """Emit ``text`` as a final segment, optionally followed by an interim guess."""
        segments = [Segment(text, is_final=True)]
        if interim is not None:
            segments.append(Segment(interim))
        self.emit(*segments)

    def play(self) -> int:
        """Emit every scripted batch in order; return how many were delivered."""
        listener = self._require_listener()
        delivered = 0
        while self.script and self._running and self._listener is listener:
            listener.on_results(self.script.pop(0))
            delivered += 1
        return delivered

    def fail(self, kind: CaptureErrorKind, detail: str = "") -> None:
        self._require_listener().on_error(kind, detail)

    def end(self) -> None:
        self._require_listener().on_ended()

    def _require_listener(self) -> CaptureListener:
        # Stopped providers keep their listener so late callbacks can be simulated.
        if self._listener is None:
            raise RuntimeError("Scripted capture provider was never started")
        return self._listener


def load_script(path: str | Path) -> list[ResultBatch]:
    """Read a transcript file into one final-segment batch per non-blank line."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [ResultBatch.of(Segment(line.strip(), is_final=True)) for line in lines if line.strip()]
