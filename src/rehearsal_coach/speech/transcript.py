"""Merging of streamed recognizer output into final and interim transcript text."""

from __future__ import annotations

from dataclasses import dataclass

from rehearsal_coach.models import ResultBatch

SEGMENT_SEPARATOR = " "


@dataclass(frozen=True, slots=True)
class TranscriptState:
    final_text: str = ""
    interim_text: str = ""
    # Segments finalized by the most recent batch that finalized anything.
    last_finalized: tuple[str, ...] = ()

    @property
    def display_text(self) -> str:
        """Final text followed by the current interim guess."""
        return f"{self.final_text}{self.interim_text}".strip()


def apply_batch(batch: ResultBatch, prior: TranscriptState | None = None) -> TranscriptState:
    """Return the transcript state after applying one result batch.

    Final segments are appended to ``final_text`` with a trailing separator.
    The last non-final segment in the batch replaces ``interim_text``; a batch
    that finalizes text without offering a new guess clears it. An interim
    guess that repeats recently finalized text, in this batch or a later one,
    is trimmed of the repeated part.
    """
    state = prior or TranscriptState()
    final_text = state.final_text
    finalized: list[str] = []
    interim: str | None = None

    for segment in batch.segments:
        text = (segment.text or "").strip()
        if segment.is_final:
            if text:
                final_text += text + SEGMENT_SEPARATOR
                finalized.append(text)
            interim = None
        else:
            interim = text

    if interim is None:
        interim_text = "" if finalized else state.interim_text
    else:
        interim_text = _without_finalized(interim, [*state.last_finalized, *finalized])

    return TranscriptState(
        final_text=final_text,
        interim_text=interim_text,
        last_finalized=tuple(finalized) if finalized else state.last_finalized,
    )


def apply_batches(batches: list[ResultBatch], prior: TranscriptState | None = None) -> TranscriptState:
    state = prior or TranscriptState()
    for batch in batches:
        state = apply_batch(batch, state)
    return state


def _without_finalized(interim: str, finalized: list[str]) -> str:
    # Recognizers sometimes echo the segment they just finalized as the next guess.
    for text in finalized:
        if interim == text:
            return ""
        if interim.startswith(text + SEGMENT_SEPARATOR):
            interim = interim[len(text) :].strip()
    return interim
