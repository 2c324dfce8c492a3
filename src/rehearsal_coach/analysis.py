"""Narrative, content and timing feedback for a finished practice transcript."""

from __future__ import annotations

import math
import re
import string

from rehearsal_coach.models import (
    ComparisonAnalysis,
    ContentAnalysis,
    FeedbackReport,
    NarrativeAnalysis,
    NarrativePart,
    TimingAnalysis,
)

NARRATIVE_MARKERS: dict[NarrativePart, tuple[str, ...]] = {
    NarrativePart.SETUP: (
        "and",
        "initially",
        "at first",
        "to begin with",
        "starting",
        "beginning",
        "in the beginning",
        "situation was",
    ),
    NarrativePart.COMPLICATION: (
        "but",
        "however",
        "yet",
        "although",
        "despite",
        "unfortunately",
        "suddenly",
        "unexpectedly",
        "challenge",
        "problem",
        "issue",
        "difficulty",
    ),
    NarrativePart.RESOLUTION: (
        "therefore",
        "thus",
        "so",
        "consequently",
        "as a result",
        "this led to",
        "in the end",
        "finally",
        "ultimately",
        "eventually",
        "learned",
        "realized",
        "solution",
        "resolved",
    ),
}

MISSING_PART_SUGGESTIONS: dict[NarrativePart, str] = {
    NarrativePart.SETUP: (
        "Your story is missing the setup. Start by establishing the normal situation or context."
    ),
    NarrativePart.COMPLICATION: (
        "Your story is missing the complication. Include a challenge, problem, or twist that creates tension."
    ),
    NarrativePart.RESOLUTION: (
        "Your story is missing the resolution. Conclude with how the situation was resolved or what was learned."
    ),
}

BRIEF_SUGGESTION = "Your story is quite brief. Consider adding more details to engage your audience."
LONG_SENTENCES_SUGGESTION = "Your sentences are quite long. Consider breaking them up for better clarity."
SHORT_SENTENCES_SUGGESTION = "Your sentences are very short. Consider combining some for better flow."

OPTIMAL_MIN_SECONDS = 60
OPTIMAL_MAX_SECONDS = 120

TIMING_OPTIMAL_MESSAGE = "Great job! Your story length is optimal (1-2 minutes)."
TIMING_TOO_SHORT_MESSAGE = "Your story is a bit short. Aim for 1-2 minutes to fully develop your narrative."
TIMING_TOO_LONG_MESSAGE = "Your story is longer than optimal. Try to condense it to 1-2 minutes for maximum impact."

MIN_WORD_COUNT = 100
MAX_AVG_WORDS_PER_SENTENCE = 25
MIN_AVG_WORDS_PER_SENTENCE = 8
SHORT_SENTENCE_MIN_COUNT = 3

LOW_SIMILARITY_SUGGESTION = (
    "Your practice version differs significantly from the original story. "
    "Try to include more key elements from your prepared story."
)
PARTIAL_SIMILARITY_SUGGESTION = (
    "Your practice version captures some elements of the original story, "
    "but could be more consistent. Focus on including key details."
)
CONSISTENT_SUGGESTION = "Great job maintaining consistency with your original story!"
MISSING_ELEMENTS_SUGGESTION = "Consider including these key elements that were missing: {elements}."

LOW_SIMILARITY_BELOW = 50
PARTIAL_SIMILARITY_BELOW = 80
MIN_KEY_WORD_LENGTH = 4
MAX_LISTED_ELEMENTS = 5


def _compile_markers(markers: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(r"\s+".join(map(re.escape, marker.split())) for marker in markers)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_MARKER_PATTERNS: dict[NarrativePart, re.Pattern[str]] = {
    part: _compile_markers(markers) for part, markers in NARRATIVE_MARKERS.items()
}
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def detect_parts(transcript: str) -> dict[NarrativePart, bool]:
    """Return which narrative parts have at least one marker in the transcript."""
    return {part: bool(pattern.search(transcript)) for part, pattern in _MARKER_PATTERNS.items()}


def analyze_narrative(transcript: str) -> NarrativeAnalysis:
    found = detect_parts(transcript)
    score = sum(found.values())
    suggestions = tuple(MISSING_PART_SUGGESTIONS[part] for part in NarrativePart if not found[part])
    return NarrativeAnalysis(
        has_setup=found[NarrativePart.SETUP],
        has_complication=found[NarrativePart.COMPLICATION],
        has_resolution=found[NarrativePart.RESOLUTION],
        score=score,
        percentage=round_half_up(score / len(NarrativePart) * 100),
        suggestions=suggestions,
    )


def analyze_content(transcript: str) -> ContentAnalysis:
    word_count = len(transcript.split())
    sentence_count = sum(1 for sentence in _SENTENCE_SPLIT_RE.split(transcript) if sentence.strip())
    avg_words = round_half_up(word_count / sentence_count) if sentence_count else 0

    suggestions: list[str] = []
    if word_count < MIN_WORD_COUNT:
        suggestions.append(BRIEF_SUGGESTION)
    if avg_words > MAX_AVG_WORDS_PER_SENTENCE:
        suggestions.append(LONG_SENTENCES_SUGGESTION)
    if avg_words < MIN_AVG_WORDS_PER_SENTENCE and sentence_count > SHORT_SENTENCE_MIN_COUNT:
        suggestions.append(SHORT_SENTENCES_SUGGESTION)

    return ContentAnalysis(
        word_count=word_count,
        sentence_count=sentence_count,
        avg_words_per_sentence=avg_words,
        suggestions=tuple(suggestions),
    )


def analyze_timing(duration_seconds: int) -> TimingAnalysis:
    duration = max(0, int(duration_seconds))
    if duration < OPTIMAL_MIN_SECONDS:
        message = TIMING_TOO_SHORT_MESSAGE
    elif duration > OPTIMAL_MAX_SECONDS:
        message = TIMING_TOO_LONG_MESSAGE
    else:
        message = TIMING_OPTIMAL_MESSAGE
    return TimingAnalysis(
        duration_seconds=duration,
        optimal=message == TIMING_OPTIMAL_MESSAGE,
        message=message,
    )


def _key_words(text: str) -> list[str]:
    """Distinct lowercased words long enough to carry meaning, in first-seen order."""
    words = (token.strip(string.punctuation).lower() for token in text.split())
    return list(dict.fromkeys(word for word in words if len(word) >= MIN_KEY_WORD_LENGTH))


def _label(word: str) -> str:
    return word[:1].upper() + word[1:]


def compare_to_prepared(transcript: str, prepared: str) -> ComparisonAnalysis:
    """Measure key-word overlap between a rehearsal and the prepared story."""
    prepared_words = _key_words(prepared)
    spoken_words = _key_words(transcript)
    spoken = set(spoken_words)
    expected = set(prepared_words)

    common = [word for word in prepared_words if word in spoken]
    missing = [_label(word) for word in prepared_words if word not in spoken][:MAX_LISTED_ELEMENTS]
    additional = [_label(word) for word in spoken_words if word not in expected][:MAX_LISTED_ELEMENTS]
    similarity = round_half_up(len(common) / len(prepared_words) * 100) if prepared_words else 0

    if similarity < LOW_SIMILARITY_BELOW:
        suggestions = [LOW_SIMILARITY_SUGGESTION]
    elif similarity < PARTIAL_SIMILARITY_BELOW:
        suggestions = [PARTIAL_SIMILARITY_SUGGESTION]
    else:
        suggestions = [CONSISTENT_SUGGESTION]
    if missing:
        suggestions.append(MISSING_ELEMENTS_SUGGESTION.format(elements=", ".join(missing)))

    return ComparisonAnalysis(
        similarity=similarity,
        missing_key_elements=tuple(missing),
        additional_elements=tuple(additional),
        suggestions=tuple(suggestions),
    )


def analyze(transcript: str | None, duration_seconds: int, prepared: str | None = None) -> FeedbackReport:
    """Build the feedback report for a frozen transcript and its elapsed duration.

    When ``prepared`` holds the story text the user wrote beforehand, the
    report also carries a comparison of the rehearsal against it.
    """
    text = transcript or ""
    return FeedbackReport(
        narrative=analyze_narrative(text),
        content=analyze_content(text),
        timing=analyze_timing(duration_seconds),
        comparison=compare_to_prepared(text, prepared) if prepared and prepared.strip() else None,
    )
