from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Lifecycle states of a recognition session."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERRORED = "errored"


class NarrativePart(str, Enum):
    SETUP = "setup"
    COMPLICATION = "complication"
    RESOLUTION = "resolution"


@dataclass(frozen=True, slots=True)
class Segment:
    """One piece of recognized speech inside a result batch."""

    text: str
    is_final: bool = False


@dataclass(frozen=True, slots=True)
class ResultBatch:
    """Ordered recognizer output delivered in a single provider callback."""

    segments: tuple[Segment, ...] = ()

    @classmethod
    def of(cls, *segments: Segment) -> ResultBatch:
        return cls(segments=tuple(segments))


@dataclass(frozen=True, slots=True)
class NarrativeAnalysis:
    has_setup: bool
    has_complication: bool
    has_resolution: bool
    score: int
    percentage: int
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ContentAnalysis:
    word_count: int
    sentence_count: int
    avg_words_per_sentence: int
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TimingAnalysis:
    duration_seconds: int
    optimal: bool
    message: str


@dataclass(frozen=True, slots=True)
class ComparisonAnalysis:
    """How closely a rehearsal follows the prepared story text."""

    similarity: int
    missing_key_elements: tuple[str, ...] = ()
    additional_elements: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FeedbackReport:
    """Structured result of analyzing one completed practice session."""

    narrative: NarrativeAnalysis
    content: ContentAnalysis
    timing: TimingAnalysis
    self_rating: int | None = None
    comparison: ComparisonAnalysis | None = None

    def with_rating(self, rating: int) -> FeedbackReport:
        """Return a copy carrying the user's self-rating."""
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValueError(f"Self-rating must be an integer from 1 to 5, got {rating!r}")
        if self.self_rating is not None:
            if self.self_rating == rating:
                return self
            raise ValueError(f"Feedback report is already rated {self.self_rating}")
        return replace(self, self_rating=rating)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for section in ("narrative", "content"):
            payload[section]["suggestions"] = list(payload[section]["suggestions"])
        if payload["comparison"] is not None:
            for key in ("missing_key_elements", "additional_elements", "suggestions"):
                payload["comparison"][key] = list(payload["comparison"][key])
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> FeedbackReport:
        narrative = dict(payload["narrative"])
        content = dict(payload["content"])
        narrative["suggestions"] = tuple(narrative.get("suggestions", ()))
        content["suggestions"] = tuple(content.get("suggestions", ()))
        return cls(
            narrative=NarrativeAnalysis(**narrative),
            content=ContentAnalysis(**content),
            timing=TimingAnalysis(**payload["timing"]),
            self_rating=payload.get("self_rating"),
            comparison=_comparison_from_dict(payload.get("comparison")),
        )


def _comparison_from_dict(payload: dict[str, Any] | None) -> ComparisonAnalysis | None:
    if payload is None:
        return None
    return ComparisonAnalysis(
        similarity=payload["similarity"],
        missing_key_elements=tuple(payload.get("missing_key_elements", ())),
        additional_elements=tuple(payload.get("additional_elements", ())),
        suggestions=tuple(payload.get("suggestions", ())),
    )


@dataclass(slots=True)
class PracticeRecord:
    """A rehearsable story as stored by the record repository."""

    id: str
    title: str
    content: str = ""
    category: str = "achievement"
    transcript: str = ""
    feedback: dict[str, Any] | None = None
    practice_count: int = 0
    last_practiced_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        payload["last_practiced_at"] = self.last_practiced_at.isoformat() if self.last_practiced_at else None
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PracticeRecord:
        last_practiced = payload.get("last_practiced_at")
        created = payload.get("created_at")
        return cls(
            id=str(payload["id"]),
            title=payload["title"],
            content=payload.get("content") or "",
            category=payload.get("category") or "achievement",
            transcript=payload.get("transcript") or "",
            feedback=payload.get("feedback"),
            practice_count=int(payload.get("practice_count") or 0),
            last_practiced_at=datetime.fromisoformat(last_practiced) if last_practiced else None,
            created_at=datetime.fromisoformat(created) if created else datetime.now(timezone.utc),
        )
