"""Practice record persistence contracts and simple local stores."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Protocol

from rehearsal_coach.errors import RecordNotFoundError
from rehearsal_coach.models import PracticeRecord

RecordListener = Callable[[PracticeRecord], None]


class PracticeRecordRepository(Protocol):
    """Persistence contract for rehearsable story records."""

    def load(self, record_id: str) -> PracticeRecord:
        """Return the record with ``record_id`` or raise ``RecordNotFoundError``."""

    def save(self, record: PracticeRecord) -> PracticeRecord:
        """Insert or replace a record and notify subscribers."""

    def list_records(self) -> list[PracticeRecord]:
        """Return every stored record, oldest first."""

    def subscribe(self, listener: RecordListener) -> Callable[[], None]:
        """Register a change listener; return a callable that unsubscribes it."""


class _ObservableStore:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._listeners: list[RecordListener] = []
        self._logger = logger or logging.getLogger("rehearsal_coach.repository")

    def subscribe(self, listener: RecordListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, record: PracticeRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:  # noqa: BLE001 - one bad observer must not fail the save.
                self._logger.exception("record_listener_failed", extra={"record_id": record.id})


class InMemoryPracticeRepository(_ObservableStore):
    """Dictionary-backed repository for tests and scripted demos."""

    def __init__(self, records: list[PracticeRecord] | None = None) -> None:
        super().__init__()
        self._records: dict[str, PracticeRecord] = {record.id: record for record in records or []}

    def load(self, record_id: str) -> PracticeRecord:
        if record_id not in self._records:
            raise RecordNotFoundError(f"Unknown practice record id: {record_id}")
        return self._records[record_id]

    def save(self, record: PracticeRecord) -> PracticeRecord:
        self._records[record.id] = record
        self._notify(record)
        return record

    def list_records(self) -> list[PracticeRecord]:
        return list(self._records.values())


class JsonPracticeRepository(_ObservableStore):
    """Stores all records in a single JSON document."""

    def __init__(self, file_path: str | Path, logger: logging.Logger | None = None) -> None:
        super().__init__(logger=logger)
        self._path = Path(file_path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, record_id: str) -> PracticeRecord:
        for record in self._read():
            if record.id == record_id:
                return record
        raise RecordNotFoundError(f"Unknown practice record id: {record_id}")

    def save(self, record: PracticeRecord) -> PracticeRecord:
        records = self._read()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                break
        else:
            records.append(record)
        self._write(records)
        self._logger.info("record_saved", extra={"record_id": record.id, "path": str(self._path)})
        self._notify(record)
        return record

    def list_records(self) -> list[PracticeRecord]:
        return self._read()

    def _read(self) -> list[PracticeRecord]:
        if not self._path.exists():
            return []
        with self._path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return [PracticeRecord.from_dict(item) for item in payload.get("records", [])]

    def _write(self, records: list[PracticeRecord]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump({"records": [record.to_dict() for record in records]}, handle, indent=2)
        tmp_path.replace(self._path)
