# src/shipping_rate_analysis/pipelines/finalizer.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from shipping_rate_analysis.io.store import (
    STATUS_COMPLETED,
    STATUS_PROCESSING,
    AnalysisRecord,
    AnalysisStore,
    new_analysis_id,
)

DEFAULT_DUPLICATE_WINDOW_SECONDS = 300

Clock = Callable[[], dt.datetime]


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class FinalizeResult:
    analysis_id: str
    created: bool = False
    updated: bool = False
    duplicate: bool = False


class Finalizer:
    """Idempotent persistence of a finished analysis.

    A recent analysis with the same file name and shipment count (and user,
    when given) is reused: a completed one is returned as-is, an incomplete
    one is completed in place. Otherwise a new record is inserted.
    """

    def __init__(
        self,
        store: AnalysisStore,
        *,
        window_seconds: int = DEFAULT_DUPLICATE_WINDOW_SECONDS,
        clock: Clock = _utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.window = dt.timedelta(seconds=int(window_seconds))
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def _recent(self, file_name: str, total_shipments: int, user_id: Optional[str]) -> Optional[AnalysisRecord]:
        since = self.clock() - self.window
        return self.store.find_recent_duplicate(file_name, total_shipments, since, user_id)

    def begin(self, file_name: str, total_shipments: int, *, user_id: Optional[str] = None) -> FinalizeResult:
        """Register a processing analysis (or reuse a recent one)."""
        dup = self._recent(file_name, total_shipments, user_id)
        if dup is not None:
            return FinalizeResult(dup.analysis_id, duplicate=True)
        now = self.clock()
        rec = AnalysisRecord(
            analysis_id=new_analysis_id(),
            file_name=file_name,
            total_shipments=int(total_shipments),
            status=STATUS_PROCESSING,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        return FinalizeResult(self.store.insert(rec), created=True)

    def finalize(
        self,
        file_name: str,
        total_shipments: int,
        payload: dict[str, Any],
        *,
        user_id: Optional[str] = None,
    ) -> FinalizeResult:
        dup = self._recent(file_name, total_shipments, user_id)
        if dup is not None and dup.is_complete:
            self.logger.info(
                "Duplicate finalize for %s (%d shipments) within %ss; reusing analysis %s",
                file_name, total_shipments, int(self.window.total_seconds()), dup.analysis_id,
            )
            return FinalizeResult(dup.analysis_id, duplicate=True)

        if dup is not None:
            self.store.update(dup.analysis_id, status=STATUS_COMPLETED, payload=payload,
                              updated_at=self.clock())
            self.logger.info("Completed analysis %s in place", dup.analysis_id)
            return FinalizeResult(dup.analysis_id, updated=True, duplicate=True)

        now = self.clock()
        rec = AnalysisRecord(
            analysis_id=new_analysis_id(),
            file_name=file_name,
            total_shipments=int(total_shipments),
            status=STATUS_COMPLETED,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            payload=payload,
        )
        analysis_id = self.store.insert(rec)
        self.logger.info("Saved analysis %s (%s, %d shipments)", analysis_id, file_name, total_shipments)
        return FinalizeResult(analysis_id, created=True)


def finalize_analysis(
    store: AnalysisStore,
    file_name: str,
    total_shipments: int,
    payload: dict[str, Any],
    *,
    user_id: Optional[str] = None,
    window_seconds: int = DEFAULT_DUPLICATE_WINDOW_SECONDS,
    clock: Clock = _utcnow,
) -> FinalizeResult:
    return Finalizer(store, window_seconds=window_seconds, clock=clock).finalize(
        file_name, total_shipments, payload, user_id=user_id)


__all__ = [
    "DEFAULT_DUPLICATE_WINDOW_SECONDS",
    "FinalizeResult",
    "Finalizer",
    "finalize_analysis",
]
