"""database.py — the contact store vCards are imported into.

The importer only needs four operations (see `ContactDatabase`). The shipped
implementation keeps every record in memory and persists them as one JSON
document:

  {"version": 1, "saved_at": "...", "records": [ {record}, ... ]}

Queries are regular expressions, searched case-insensitively. `query` narrows
the list it is given, so chained calls combine predicates by successive
narrowing rather than by one compound query.
"""
from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from .errors import ContactDatabaseError
from .model import ContactRecord

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class ContactDatabase(Protocol):
    def all_records(self) -> list[ContactRecord]: ...

    def query(
        self,
        records: list[ContactRecord],
        *,
        name: str | None = None,
        company: str | None = None,
        net: str | None = None,
    ) -> list[ContactRecord]: ...

    def create_blank_record(self) -> ContactRecord: ...

    def commit(self, record: ContactRecord, is_update: bool) -> None: ...


def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise ContactDatabaseError(f"Invalid query pattern {pattern!r}: {exc}") from exc


class JsonContactDatabase:
    def __init__(
        self,
        path: Path | None = None,
        records: list[ContactRecord] | None = None,
        autosave: bool = True,
    ):
        self.path = path
        self.autosave = autosave and path is not None
        self._records: list[ContactRecord] = list(records or [])

    # ── Persistence ────────────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: Path, autosave: bool = True) -> JsonContactDatabase:
        """Open the database at *path*; a missing file is an empty database."""
        if not path.exists():
            logger.info("%s does not exist yet, starting empty", path)
            return cls(path, autosave=autosave)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            records = [ContactRecord.from_dict(r) for r in data.get("records", [])]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise ContactDatabaseError(f"Cannot load contact database {path}: {exc}") from exc
        logger.debug("loaded %d record(s) from %s", len(records), path)
        return cls(path, records, autosave=autosave)

    def save(self) -> None:
        self._write(self._records)

    def _write(self, records: list[ContactRecord]) -> None:
        if self.path is None:
            return
        doc = {
            "version": FORMAT_VERSION,
            "saved_at": datetime.now(UTC).isoformat(),
            "records": [r.to_dict() for r in records],
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise ContactDatabaseError(f"Cannot write contact database {self.path}: {exc}") from exc

    # ── Contact database operations ────────────────────────────────────────────

    def all_records(self) -> list[ContactRecord]:
        return list(self._records)

    def get(self, record_id: str) -> ContactRecord | None:
        return next((r for r in self._records if r.id == record_id), None)

    def query(
        self,
        records: list[ContactRecord],
        *,
        name: str | None = None,
        company: str | None = None,
        net: str | None = None,
    ) -> list[ContactRecord]:
        result = list(records)
        if company is not None:
            rx = _compile(company)
            result = [r for r in result if r.company and rx.search(r.company)]
        if net is not None:
            rx = _compile(net)
            result = [r for r in result if any(rx.search(a) for a in r.net)]
        if name is not None:
            rx = _compile(name)
            result = [
                r for r in result
                if rx.search(r.fullname) or any(rx.search(a) for a in r.aka)
            ]
        return result

    def create_blank_record(self) -> ContactRecord:
        return ContactRecord(id=uuid.uuid4().hex)

    def commit(self, record: ContactRecord, is_update: bool) -> None:
        """Store *record*; the in-memory list only changes once the save succeeds."""
        records = list(self._records)
        for i, existing in enumerate(records):
            if existing.id == record.id:
                records[i] = record
                break
        else:
            if is_update:
                raise ContactDatabaseError(f"Cannot update unknown record {record.id}")
            records.append(record)
        if self.autosave:
            self._write(records)
        self._records = records

    def __len__(self) -> int:
        return len(self._records)
