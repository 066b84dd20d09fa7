# src/shipping_rate_analysis/pipelines/quoter.py
"""Quoting stage: one request per (shipment, enabled account).

Account calls for a shipment run concurrently on a thread pool. Every
account's outcome is recorded on its own; an error from one account never
cancels or hides the others.
"""
from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from shipping_rate_analysis.api.client import QuoteClient
from shipping_rate_analysis.errors import (
    AUTH,
    ERROR_CATEGORIES,
    OTHER,
    RATE_LIMIT,
    TIMEOUT,
    QuoteError,
)
from shipping_rate_analysis.models import (
    CarrierAccount,
    CarrierOutcome,
    OutcomeStatus,
    QuoteRequest,
    ShipmentRecord,
)
from shipping_rate_analysis.rules.carrier_registry import CarrierRegistry

NO_ENABLED_SERVICES = "No enabled services for this carrier"
NO_RATES_RETURNED = "No rates returned"


def categorize_error(message: Optional[str], status_code: Optional[int] = None) -> str:
    if status_code == 429:
        return RATE_LIMIT
    if status_code in (401, 403):
        return AUTH
    m = (message or "").lower()
    if "rate limit" in m or "429" in m:
        return RATE_LIMIT
    if "timeout" in m or "timed out" in m or "econnreset" in m:
        return TIMEOUT
    if "auth" in m or "401" in m or "403" in m:
        return AUTH
    return OTHER


@dataclass(frozen=True)
class QuoteJob:
    shipment: ShipmentRecord
    category: Optional[str]
    is_residential: bool = False


@dataclass
class FailureReport:
    """Per-account request counts and categorized errors."""
    requests: int = 0
    successes: int = 0
    empty: int = 0
    skipped: int = 0
    errors: int = 0
    by_category: dict[str, int] = field(default_factory=lambda: {c: 0 for c in ERROR_CATEGORIES})
    by_account: dict[str, dict[str, int]] = field(default_factory=dict)

    def record(self, outcome: CarrierOutcome) -> None:
        acct = self.by_account.setdefault(
            outcome.account.carrier_id,
            {"success": 0, "empty": 0, "skipped": 0, "error": 0, **{c: 0 for c in ERROR_CATEGORIES}},
        )
        acct[outcome.status.value] += 1
        if outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
            return
        self.requests += 1
        if outcome.status == OutcomeStatus.SUCCESS:
            self.successes += 1
        elif outcome.status == OutcomeStatus.EMPTY:
            self.empty += 1
        else:
            self.errors += 1
            cat = outcome.error_category or OTHER
            self.by_category[cat] = self.by_category.get(cat, 0) + 1
            acct[cat] = acct.get(cat, 0) + 1

    def extend(self, outcomes: Iterable[CarrierOutcome]) -> "FailureReport":
        for o in outcomes:
            self.record(o)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "successes": self.successes,
            "empty": self.empty,
            "skipped": self.skipped,
            "errors": self.errors,
            "success_rate": round(self.successes / self.requests * 100, 1) if self.requests else 0.0,
            "by_category": dict(self.by_category),
            "by_account": {k: dict(v) for k, v in self.by_account.items()},
        }


class Quoter:
    def __init__(
        self,
        client: QuoteClient,
        registry: CarrierRegistry,
        *,
        max_workers: int = 4,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.max_workers = max(1, int(max_workers))
        self.logger = logger or logging.getLogger(__name__)

    def codes_for(self, account: CarrierAccount, category: Optional[str]) -> tuple[str, ...]:
        codes = self.registry.codes_to_request(account.carrier_type, category)
        if account.enabled_services:
            codes = [c for c in codes if c in account.enabled_services]
        return tuple(codes)

    def _call(self, request: QuoteRequest) -> CarrierOutcome:
        acct = request.account
        try:
            resp = self.client.quote(request)
        except QuoteError as e:
            cat = e.category or categorize_error(str(e), e.status_code)
            self.logger.warning("Quote failed (%s) for %s shipment %s: %s",
                                cat, acct.carrier_id, request.shipment_id, e)
            return CarrierOutcome(request.shipment_id, acct, OutcomeStatus.ERROR,
                                  error=str(e), error_category=cat)
        except Exception as e:
            cat = categorize_error(str(e))
            self.logger.warning("Quote failed (%s) for %s shipment %s: %s: %s",
                                cat, acct.carrier_id, request.shipment_id, type(e).__name__, e)
            return CarrierOutcome(request.shipment_id, acct, OutcomeStatus.ERROR,
                                  error=str(e) or type(e).__name__, error_category=cat)

        if not resp.success:
            cat = categorize_error(resp.error)
            return CarrierOutcome(request.shipment_id, acct, OutcomeStatus.ERROR,
                                  error=resp.error or "Unknown error", error_category=cat)
        if not resp.rates:
            return CarrierOutcome(request.shipment_id, acct, OutcomeStatus.EMPTY, error=NO_RATES_RETURNED)
        return CarrierOutcome(request.shipment_id, acct, OutcomeStatus.SUCCESS, rates=tuple(resp.rates))

    def _request_for(self, job: QuoteJob, account: CarrierAccount, codes: tuple[str, ...]) -> QuoteRequest:
        s = job.shipment
        return QuoteRequest(
            shipment_id=s.shipment_id,
            tracking_id=s.tracking_id,
            account=account,
            origin_zip=s.origin_zip,
            dest_zip=s.dest_zip,
            weight=s.weight,
            length=s.length,
            width=s.width,
            height=s.height,
            requested_service_codes=codes,
            is_residential=job.is_residential,
        )

    def quote_shipment(
        self,
        job: QuoteJob,
        accounts: Sequence[CarrierAccount],
        *,
        pool: Optional[Executor] = None,
    ) -> list[CarrierOutcome]:
        """Outcomes in `accounts` order, one per active account."""
        slots: list[Any] = []
        own_pool = pool is None
        executor = pool or ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            for account in accounts:
                if not account.is_active:
                    continue
                codes = self.codes_for(account, job.category)
                if not codes:
                    self.logger.debug("Skipping %s: %s", account.account_name, NO_ENABLED_SERVICES)
                    slots.append(CarrierOutcome(job.shipment.shipment_id, account,
                                                OutcomeStatus.SKIPPED, error=NO_ENABLED_SERVICES))
                    continue
                slots.append(executor.submit(self._call, self._request_for(job, account, codes)))
            return [s if isinstance(s, CarrierOutcome) else s.result() for s in slots]
        finally:
            if own_pool:
                executor.shutdown(wait=True)

    def quote_all(
        self,
        jobs: Sequence[QuoteJob],
        accounts: Sequence[CarrierAccount],
    ) -> dict[int, list[CarrierOutcome]]:
        out: dict[int, list[CarrierOutcome]] = {}
        if not jobs:
            return out
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for job in jobs:
                out[job.shipment.shipment_id] = self.quote_shipment(job, accounts, pool=pool)
        return out


__all__ = [
    "NO_ENABLED_SERVICES",
    "NO_RATES_RETURNED",
    "ERROR_CATEGORIES",
    "categorize_error",
    "QuoteJob",
    "FailureReport",
    "Quoter",
]
