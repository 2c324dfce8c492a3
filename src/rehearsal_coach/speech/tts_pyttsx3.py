"""Spoken feedback readout powered by ``pyttsx3``."""

from __future__ import annotations

from rehearsal_coach.errors import SpeechBackendUnavailableError
from rehearsal_coach.models import FeedbackReport


def feedback_summary(report: FeedbackReport) -> str:
    """Condense a feedback report into a few sentences suitable for speech."""
    parts = [
        f"Your story covered {report.narrative.score} of 3 narrative parts.",
        f"You used {report.content.word_count} words in {report.content.sentence_count} sentences.",
        report.timing.message,
    ]
    if report.comparison is not None:
        parts.append(f"You matched {report.comparison.similarity} percent of your prepared story.")
    parts.extend(report.narrative.suggestions[:1])
    parts.extend(report.content.suggestions[:1])
    return " ".join(parts)


class Pyttsx3FeedbackSpeaker:
    """Speaks text through a local pyttsx3 engine instance."""

    def __init__(self, *, voice_id: str | None = None, rate: int | None = None, volume: float | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise SpeechBackendUnavailableError(
                "Feedback voice unavailable. Install extras with: pip install 'rehearsal-coach[voice]'"
            ) from exc

        self._engine = pyttsx3.init()
        if voice_id:
            self._engine.setProperty("voice", voice_id)
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            self._engine.setProperty("volume", max(0.0, min(1.0, volume)))

    def speak(self, text: str) -> None:
        normalized = " ".join(text.split())
        if not normalized:
            return
        self._engine.say(normalized)
        self._engine.runAndWait()

    def speak_report(self, report: FeedbackReport) -> None:
        self.speak(feedback_summary(report))
