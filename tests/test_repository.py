from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from rehearsal_coach.analysis import analyze
from rehearsal_coach.errors import RecordNotFoundError
from rehearsal_coach.models import FeedbackReport, PracticeRecord
from rehearsal_coach.repository import InMemoryPracticeRepository, JsonPracticeRepository


def test_json_repository_round_trips_practiced_record(tmp_path: Path) -> None:
    repository = JsonPracticeRepository(tmp_path / "nested" / "stories.json")
    report = analyze("At first it was quiet. But then it rained. So we left.", 80).with_rating(3)
    record = PracticeRecord(
        id="abc",
        title="Rainy offsite",
        content="prepared notes",
        category="leadership",
        transcript="At first it was quiet. But then it rained. So we left.",
        feedback=report.to_dict(),
        practice_count=4,
        last_practiced_at=datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc),
    )

    repository.save(record)
    reloaded = JsonPracticeRepository(tmp_path / "nested" / "stories.json").load("abc")

    assert reloaded == record
    assert FeedbackReport.from_dict(reloaded.feedback) == report
    assert not (tmp_path / "nested" / "stories.json.tmp").exists()


def test_json_repository_upserts_by_id(tmp_path: Path) -> None:
    path = tmp_path / "stories.json"
    repository = JsonPracticeRepository(path)
    repository.save(PracticeRecord(id="a", title="First"))
    repository.save(PracticeRecord(id="b", title="Second"))
    repository.save(PracticeRecord(id="a", title="First, revised", practice_count=1))

    titles = [record.title for record in repository.list_records()]
    payload = json.loads(path.read_text(encoding="utf-8"))

    assert titles == ["First, revised", "Second"]
    assert len(payload["records"]) == 2


def test_missing_records_raise(tmp_path: Path) -> None:
    with pytest.raises(RecordNotFoundError):
        JsonPracticeRepository(tmp_path / "stories.json").load("nope")
    with pytest.raises(RecordNotFoundError):
        InMemoryPracticeRepository().load("nope")


def test_record_defaults_survive_sparse_payloads() -> None:
    record = PracticeRecord.from_dict({"id": 7, "title": "Legacy"})

    assert record.id == "7"
    assert record.category == "achievement"
    assert record.practice_count == 0
    assert record.feedback is None
    assert record.last_practiced_at is None


def test_subscribers_are_notified_until_unsubscribed() -> None:
    repository = InMemoryPracticeRepository()
    seen: list[str] = []
    unsubscribe = repository.subscribe(lambda record: seen.append(record.id))

    repository.save(PracticeRecord(id="a", title="A"))
    unsubscribe()
    repository.save(PracticeRecord(id="b", title="B"))

    assert seen == ["a"]


def test_failing_subscriber_does_not_break_save() -> None:
    repository = InMemoryPracticeRepository()
    seen: list[str] = []

    def _explode(record: PracticeRecord) -> None:
        raise RuntimeError("observer bug")

    repository.subscribe(_explode)
    repository.subscribe(lambda record: seen.append(record.id))

    repository.save(PracticeRecord(id="a", title="A"))

    assert repository.load("a").title == "A"
    assert seen == ["a"]
