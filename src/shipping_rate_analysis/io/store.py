# src/shipping_rate_analysis/io/store.py
"""Persistence collaborator for finalized analyses.

The core only needs four calls (`find_recent_duplicate`, `get`, `insert`,
`update`). Two reference stores are provided: an in-process dict and a
directory holding one JSON document per analysis.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Union

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_analysis_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class AnalysisRecord:
    analysis_id: str
    file_name: str
    total_shipments: int
    status: str = STATUS_PROCESSING
    user_id: Optional[str] = None
    created_at: dt.datetime = field(default_factory=_utcnow)
    updated_at: dt.datetime = field(default_factory=_utcnow)
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.status == STATUS_COMPLETED

    def to_json(self) -> dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "file_name": self.file_name,
            "total_shipments": self.total_shipments,
            "status": self.status,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "payload": self.payload,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AnalysisRecord":
        return cls(
            analysis_id=str(data["analysis_id"]),
            file_name=str(data.get("file_name", "")),
            total_shipments=int(data.get("total_shipments", 0)),
            status=str(data.get("status", STATUS_PROCESSING)),
            user_id=data.get("user_id"),
            created_at=dt.datetime.fromisoformat(data["created_at"]),
            updated_at=dt.datetime.fromisoformat(data.get("updated_at") or data["created_at"]),
            payload=dict(data.get("payload") or {}),
        )


class AnalysisStore(Protocol):
    def find_recent_duplicate(
        self,
        file_name: str,
        total_shipments: int,
        since: dt.datetime,
        user_id: Optional[str] = None,
    ) -> Optional[AnalysisRecord]:
        ...

    def get(self, analysis_id: str) -> Optional[AnalysisRecord]:
        ...

    def insert(self, record: AnalysisRecord) -> str:
        ...

    def update(self, analysis_id: str, **changes: Any) -> AnalysisRecord:
        ...


def _newest_match(
    records: Iterable[AnalysisRecord],
    file_name: str,
    total_shipments: int,
    since: dt.datetime,
    user_id: Optional[str],
) -> Optional[AnalysisRecord]:
    best: Optional[AnalysisRecord] = None
    for r in records:
        if r.file_name != file_name or r.total_shipments != total_shipments:
            continue
        if user_id is not None and r.user_id != user_id:
            continue
        if r.created_at < since:
            continue
        if best is None or r.created_at > best.created_at:
            best = r
    return best


class InMemoryAnalysisStore:
    def __init__(self) -> None:
        self._records: dict[str, AnalysisRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def find_recent_duplicate(self, file_name, total_shipments, since, user_id=None):
        with self._lock:
            records = list(self._records.values())
        return _newest_match(records, file_name, total_shipments, since, user_id)

    def get(self, analysis_id: str) -> Optional[AnalysisRecord]:
        return self._records.get(analysis_id)

    def insert(self, record: AnalysisRecord) -> str:
        with self._lock:
            if record.analysis_id in self._records:
                raise KeyError(f"Analysis already exists: {record.analysis_id}")
            self._records[record.analysis_id] = record
        return record.analysis_id

    def update(self, analysis_id: str, **changes: Any) -> AnalysisRecord:
        with self._lock:
            current = self._records[analysis_id]
            changes.setdefault("updated_at", _utcnow())
            updated = replace(current, **changes)
            self._records[analysis_id] = updated
        return updated


class JsonAnalysisStore:
    """One `<analysis_id>.json` document per analysis under `root`."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _path(self, analysis_id: str) -> Path:
        return self.root / f"{analysis_id}.json"

    def _write(self, record: AnalysisRecord) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(record.analysis_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(record.to_json(), indent=2, default=str), encoding="utf-8")
        tmp.replace(path)

    def _iter_records(self) -> Iterable[AnalysisRecord]:
        if not self.root.is_dir():
            return
        for p in sorted(self.root.glob("*.json")):
            try:
                yield AnalysisRecord.from_json(json.loads(p.read_text(encoding="utf-8")))
            except (ValueError, KeyError) as ex:
                logger.warning("Skipping unreadable analysis file %s: %s", p.name, ex)

    def find_recent_duplicate(self, file_name, total_shipments, since, user_id=None):
        return _newest_match(self._iter_records(), file_name, total_shipments, since, user_id)

    def get(self, analysis_id: str) -> Optional[AnalysisRecord]:
        path = self._path(analysis_id)
        if not path.exists():
            return None
        return AnalysisRecord.from_json(json.loads(path.read_text(encoding="utf-8")))

    def insert(self, record: AnalysisRecord) -> str:
        if self._path(record.analysis_id).exists():
            raise KeyError(f"Analysis already exists: {record.analysis_id}")
        self._write(record)
        return record.analysis_id

    def update(self, analysis_id: str, **changes: Any) -> AnalysisRecord:
        current = self.get(analysis_id)
        if current is None:
            raise KeyError(analysis_id)
        changes.setdefault("updated_at", _utcnow())
        updated = replace(current, **changes)
        self._write(updated)
        return updated


__all__ = [
    "STATUS_PROCESSING",
    "STATUS_COMPLETED",
    "new_analysis_id",
    "AnalysisRecord",
    "AnalysisStore",
    "InMemoryAnalysisStore",
    "JsonAnalysisStore",
]
