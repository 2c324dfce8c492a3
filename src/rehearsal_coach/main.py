"""CLI startup entrypoint for Rehearsal Coach."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable
from uuid import uuid4

import typer
from rich import print

from rehearsal_coach.analysis import analyze as analyze_transcript
from rehearsal_coach.config import settings
from rehearsal_coach.errors import RehearsalError
from rehearsal_coach.models import FeedbackReport, PracticeRecord, SessionState
from rehearsal_coach.orchestrator import PracticeOrchestrator
from rehearsal_coach.repository import JsonPracticeRepository
from rehearsal_coach.session import SessionSnapshot
from rehearsal_coach.speech.capability import CapabilityProbe, GrantedPermission
from rehearsal_coach.speech.scripted import ScriptedCaptureProvider, load_script
from rehearsal_coach.speech.timer import ManualTicker, format_elapsed
from rehearsal_coach.telemetry.logging import LoggingTelemetry, configure_logging

app = typer.Typer(help="Rehearsal Coach: practice spoken stories and get structured feedback")


def _build_repository() -> JsonPracticeRepository:
    return JsonPracticeRepository(settings.records_path)


def _report_view(report: FeedbackReport) -> dict:
    payload = report.to_dict()
    payload["timing"]["formatted"] = format_elapsed(report.timing.duration_seconds)
    return payload


def _record_view(record: PracticeRecord) -> dict:
    return {
        "id": record.id,
        "title": record.title,
        "category": record.category,
        "practice_count": record.practice_count,
        "last_practiced_at": record.last_practiced_at.isoformat() if record.last_practiced_at else None,
    }


@app.callback()
def main(log_level: str = typer.Option(None, help="Override REHEARSAL_COACH_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


@app.command()
def info() -> None:
    """Show runtime backend configuration."""
    print(
        {
            "app_name": settings.app_name,
            "records_path": settings.records_path,
            "speech_backend": settings.speech_backend,
            "language": settings.language,
            "auto_restart": settings.auto_restart,
        }
    )


@app.command("add-story")
def add_story(
    title: str = typer.Option(..., help="Story title"),
    content: str = typer.Option("", help="Prepared story text"),
    category: str = typer.Option("achievement", help="Story category, e.g. achievement or leadership"),
) -> None:
    if not title.strip():
        raise typer.BadParameter("Story title must not be empty")
    record = PracticeRecord(id=uuid4().hex, title=title.strip(), content=content, category=category)
    _build_repository().save(record)
    print({"added": _record_view(record)})


@app.command()
def stories(category: str = typer.Option(None, help="Only show stories in this category")) -> None:
    records = _build_repository().list_records()
    if category:
        records = [record for record in records if record.category == category]
    print({"stories": [_record_view(record) for record in records]})


@app.command()
def analyze(
    transcript_file: Path = typer.Option(None, help="Transcript text file"),
    text: str = typer.Option(None, help="Transcript text"),
    duration: int = typer.Option(0, min=0, help="Spoken duration in seconds"),
    prepared: str = typer.Option(None, help="Prepared story text to compare the transcript against"),
) -> None:
    """Analyze a transcript without recording."""
    if transcript_file is None and text is None:
        raise typer.BadParameter("Provide --transcript-file or --text")
    transcript = transcript_file.read_text(encoding="utf-8") if transcript_file else text
    print(_report_view(analyze_transcript(transcript, duration, prepared)))


def _build_capture(script_file: Path | None):
    if script_file is not None or settings.speech_backend.lower() == "scripted":
        script = load_script(script_file) if script_file else []
        probe = CapabilityProbe(GrantedPermission(), support_check=lambda: True)
        return ScriptedCaptureProvider(script=script), probe, ManualTicker()

    from rehearsal_coach.speech.stt_speechrecognition import (
        SpeechRecognitionCaptureProvider,
        SpeechRecognitionPermission,
    )

    provider = SpeechRecognitionCaptureProvider(
        language=settings.language,
        phrase_time_limit=settings.phrase_time_limit,
    )
    return provider, CapabilityProbe(SpeechRecognitionPermission()), None


def _progress_printer() -> Callable[[SessionSnapshot], None]:
    last_heard = ""

    def _print(snapshot: SessionSnapshot) -> None:
        nonlocal last_heard
        heard = snapshot.final_text.strip()
        if snapshot.state == SessionState.ACTIVE and heard != last_heard:
            last_heard = heard
            print({"elapsed": format_elapsed(snapshot.elapsed_seconds), "heard": heard})

    return _print


@app.command()
def practice(
    record_id: str = typer.Argument(..., help="Story id from `rehearsal-coach stories`"),
    script_file: Path = typer.Option(None, help="Replay a transcript file instead of using the microphone"),
    duration: int = typer.Option(90, min=0, help="Seconds to simulate when replaying a script"),
    rating: int = typer.Option(None, min=1, max=5, help="Self-rating 1-5; prompted when omitted"),
    speak_feedback: bool = typer.Option(None, help="Read the feedback summary aloud"),
) -> None:
    """Record a spoken rehearsal of a story, show feedback and save it."""
    try:
        provider, probe, ticker = _build_capture(script_file)
        orchestrator = PracticeOrchestrator(
            record_id=record_id,
            repository=_build_repository(),
            provider=provider,
            probe=probe,
            ticker=ticker,
            telemetry=LoggingTelemetry(),
            auto_restart=settings.auto_restart,
        )
    except RehearsalError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    async def _rehearse() -> PracticeRecord:
        unsubscribe = orchestrator.session.subscribe(_progress_printer())
        try:
            await orchestrator.start_recording()
            await orchestrator.drain()
            if orchestrator.session.state == SessionState.ERRORED:
                error = orchestrator.session.last_error
                raise RehearsalError(error.describe() if error else "Recording did not start")

            if isinstance(provider, ScriptedCaptureProvider):
                provider.play()
                ticker.fire(duration)
            else:
                print({"practice": "recording", "story": orchestrator.record.title})
                await asyncio.to_thread(input, "Press Enter to stop recording ...")
            await orchestrator.drain()
            report = orchestrator.stop_recording()
            if report is None:
                error = orchestrator.session.last_error
                raise RehearsalError(error.describe() if error else "Recording stopped before feedback was ready")
        finally:
            unsubscribe()

        print({"transcript": orchestrator.session.final_text.strip(), "feedback": _report_view(report)})
        if speak_feedback if speak_feedback is not None else settings.speak_feedback:
            _speak(report)

        chosen = rating if rating is not None else typer.prompt("Rate this attempt (1-5)", type=int)
        return orchestrator.save(chosen)

    async def _run() -> PracticeRecord:
        await orchestrator.open()
        try:
            return await _rehearse()
        finally:
            await orchestrator.close()

    try:
        record = asyncio.run(_run())
    except (RehearsalError, ValueError) as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)
    print({"saved": _record_view(record), "self_rating": record.feedback["self_rating"]})


def _speak(report: FeedbackReport) -> None:
    try:
        from rehearsal_coach.speech.tts_pyttsx3 import Pyttsx3FeedbackSpeaker

        Pyttsx3FeedbackSpeaker().speak_report(report)
    except RehearsalError as exc:
        print({"warning": str(exc)})


if __name__ == "__main__":
    app()
