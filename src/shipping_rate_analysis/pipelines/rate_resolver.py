# src/shipping_rate_analysis/pipelines/rate_resolver.py
"""Rate aggregation, account-level selection and markup.

Two views are computed from the same filtered quote set:

- `find_best_rates`: per service identity (registry category, else service
  name, else code) the cheapest quote and how many quotes it beat.
- account-level resolution: per shipment, each account offers its cheapest
  quote in the shipment's category, or failing that the nearest service in
  the fallback chain, or failing that its closest remaining service. Offers
  are summed per account; one winning account is chosen for the whole batch
  and every shipment is priced from that account's offer. Offers outside the
  shipment's category carry a ServiceSubstitution.

Shipments with no usable quote from any account go to the orphan ledger as
`no_rates`; shipments the winning account could not price go as
`no_account_rate`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import pandas as pd

from shipping_rate_analysis.io.schema import ORPHAN_COLUMNS, RESULT_COLUMNS
from shipping_rate_analysis.models import (
    BestRate,
    CarrierAccount,
    CarrierOutcome,
    CarrierRateQuote,
    OrphanReason,
    OrphanedShipment,
    OutcomeStatus,
    RateResolution,
    ResidentialDecision,
    ServiceMappingResult,
    ServiceSubstitution,
    ShipmentRecord,
)
from shipping_rate_analysis.models.taxonomy import display_name_for
from shipping_rate_analysis.pipelines.quoter import FailureReport
from shipping_rate_analysis.rules.carrier_registry import DEFAULT_REGISTRY, CarrierRegistry
from shipping_rate_analysis.rules.service_fallbacks import (
    categories_to_try,
    is_significant_substitution,
    same_region,
    speed_rank,
)
from shipping_rate_analysis.rules.markup import (
    NO_MARKUP,
    MarkupConfig,
    MarkupTotals,
    apply_markup,
    savings_for,
    summarize,
)

logger = logging.getLogger(__name__)

_MONEY_COLUMNS = ("chosen_rate", "markup_percent", "final_price", "current_cost", "savings", "savings_percent")


@dataclass(frozen=True)
class ClassifiedShipment:
    """A validated shipment with its service and residential annotations."""
    shipment: ShipmentRecord
    mapping: ServiceMappingResult
    residential: ResidentialDecision

    @property
    def shipment_id(self) -> int:
        return self.shipment.shipment_id

    @property
    def category(self) -> str:
        return self.mapping.category


@dataclass(frozen=True)
class AccountSelection:
    winner: Optional[CarrierAccount]
    totals: dict[str, Decimal]
    coverage: dict[str, int]


def quote_sort_key(q: CarrierRateQuote) -> tuple[Decimal, str, str]:
    return (q.total_charge, q.carrier_id, q.service_code)


def service_key(q: CarrierRateQuote, registry: CarrierRegistry = DEFAULT_REGISTRY) -> str:
    return registry.category_for(q.carrier_type, q.service_code) or q.service_name or q.service_code or "Unknown"


def find_best_rates(
    quotes: Iterable[CarrierRateQuote],
    registry: CarrierRegistry = DEFAULT_REGISTRY,
) -> dict[str, BestRate]:
    """Cheapest quote per service identity, cheapest group first."""
    groups: dict[str, list[CarrierRateQuote]] = {}
    for q in quotes:
        groups.setdefault(service_key(q, registry), []).append(q)

    best: list[BestRate] = []
    for key, group in groups.items():
        ranked = sorted(group, key=quote_sort_key)
        best.append(BestRate(key=key, quote=ranked[0], competitor_count=len(ranked) - 1))
    best.sort(key=lambda b: (b.quote.total_charge, b.key))
    return {b.key: b for b in best}


def select_best_account(
    candidates: Mapping[int, Mapping[str, CarrierRateQuote]],
    accounts: Union[Mapping[str, CarrierAccount], Sequence[CarrierAccount]],
) -> AccountSelection:
    """Pick one account for the whole batch.

    `candidates` maps shipment id -> {carrier_id: that account's quote}.
    The account pricing the most shipments wins; among those the lowest
    total wins; remaining ties go to the earlier account.
    """
    if isinstance(accounts, Mapping):
        ordered = list(accounts.values())
    else:
        ordered = list(accounts)
    order = {a.carrier_id: i for i, a in enumerate(ordered)}
    by_id = {a.carrier_id: a for a in ordered}

    totals: dict[str, Decimal] = {}
    coverage: dict[str, int] = {}
    for per_account in candidates.values():
        for carrier_id, q in per_account.items():
            totals[carrier_id] = totals.get(carrier_id, Decimal("0")) + q.total_charge
            coverage[carrier_id] = coverage.get(carrier_id, 0) + 1

    ranked = sorted(
        (cid for cid in totals if cid in by_id),
        key=lambda cid: (-coverage[cid], totals[cid], order[cid]),
    )
    winner = by_id[ranked[0]] if ranked else None
    return AccountSelection(winner=winner, totals=totals, coverage=coverage)


@dataclass
class Resolution:
    best_rates: dict[str, BestRate] = field(default_factory=dict)
    per_shipment: list[RateResolution] = field(default_factory=list)
    orphans: list[OrphanedShipment] = field(default_factory=list)
    best_account: Optional[CarrierAccount] = None
    account_totals: dict[str, Decimal] = field(default_factory=dict)
    account_coverage: dict[str, int] = field(default_factory=dict)
    failure_report: FailureReport = field(default_factory=FailureReport)
    rate_snapshots: list[dict[str, Any]] = field(default_factory=list)
    result_rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def totals(self) -> MarkupTotals:
        return summarize(self.per_shipment)

    def results_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.result_rows, columns=RESULT_COLUMNS)
        for col in _MONEY_COLUMNS:
            df[col] = pd.to_numeric(
                df[col].map(lambda v: None if v is None else float(v)), errors="coerce")
        return df

    def orphans_frame(self) -> pd.DataFrame:
        rows = [{k: o.to_dict().get(k) for k in ORPHAN_COLUMNS} for o in self.orphans]
        return pd.DataFrame(rows, columns=ORPHAN_COLUMNS)


def orphan_for(cs: ClassifiedShipment, reason: OrphanReason, error: str) -> OrphanedShipment:
    s = cs.shipment
    return OrphanedShipment(
        shipment_id=s.shipment_id,
        tracking_id=s.tracking_id,
        origin_zip=s.origin_zip,
        dest_zip=s.dest_zip,
        weight=s.weight,
        service=s.service,
        reason=reason,
        error=error,
        raw=dict(s.raw),
    )


class RateResolver:
    def __init__(
        self,
        registry: CarrierRegistry = DEFAULT_REGISTRY,
        markup: MarkupConfig = NO_MARKUP,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.markup = markup
        self.logger = logger or logging.getLogger(__name__)

    def usable_quotes(self, quotes: Iterable[CarrierRateQuote], account: CarrierAccount) -> list[CarrierRateQuote]:
        """Drop quotes for services the account has not enabled or the registry marks unavailable."""
        out = []
        for q in quotes:
            if not account.allows(q.service_code):
                continue
            if self.registry.is_code_available(q.carrier_type, q.service_code) is False:
                continue
            out.append(q)
        return out

    def category_of(self, q: CarrierRateQuote) -> Optional[str]:
        return self.registry.category_for(q.carrier_type, q.service_code)

    def _substitution(self, category: str, q: CarrierRateQuote, reason: str) -> ServiceSubstitution:
        actual = self.category_of(q)
        return ServiceSubstitution(
            original_category=category,
            original_display_name=display_name_for(category),
            actual_category=actual,
            actual_code=q.service_code,
            actual_service_name=q.service_name,
            actual_display_name=display_name_for(actual) if actual else (q.service_name or q.service_code),
            significant=is_significant_substitution(category, actual),
            reason=reason,
        )

    def pick_quote(
        self,
        category: str,
        usable: Sequence[CarrierRateQuote],
    ) -> tuple[Optional[CarrierRateQuote], Optional[ServiceSubstitution]]:
        """One account's offer for a shipment in `category`.

        The cheapest quote of the first category in the fallback chain that
        was quoted wins. Otherwise the closest remaining service is used:
        same region first, then nearest speed tier, then price.
        """
        if not usable:
            return None, None
        by_category: dict[Optional[str], list[CarrierRateQuote]] = {}
        for q in usable:
            by_category.setdefault(self.category_of(q), []).append(q)

        for i, cat in enumerate(categories_to_try(category)):
            group = by_category.get(cat)
            if not group:
                continue
            best = min(group, key=quote_sort_key)
            if i == 0:
                return best, None
            return best, self._substitution(
                category, best, f"No {display_name_for(category)} rate; used fallback service")

        rank = speed_rank(category)

        def closeness(q: CarrierRateQuote) -> tuple:
            actual = self.category_of(q)
            return (not same_region(category, actual), abs(speed_rank(actual) - rank), quote_sort_key(q))

        best = min(usable, key=closeness)
        return best, self._substitution(
            category, best, f"No {display_name_for(category)} rate or fallback; used closest available service")

    def _price(
        self,
        cs: ClassifiedShipment,
        account: CarrierAccount,
        quote: CarrierRateQuote,
        substitution: Optional[ServiceSubstitution] = None,
    ) -> RateResolution:
        pct = self.markup.percentage_for(cs.category, cs.mapping.display_name)
        m = apply_markup(quote.total_charge, pct)
        savings, savings_pct = savings_for(cs.shipment.cost, m.final_price)
        return RateResolution(
            shipment_id=cs.shipment_id,
            tracking_id=cs.shipment.tracking_id,
            category=cs.category,
            best_account=account,
            quote=quote,
            chosen_rate=quote.total_charge,
            markup_percent=m.percentage,
            markup_amount=m.markup_amount,
            final_price=m.final_price,
            current_cost=cs.shipment.cost,
            savings=savings,
            savings_percent=savings_pct,
            substitution=substitution,
        )

    @staticmethod
    def _row(cs: ClassifiedShipment, r: RateResolution) -> dict[str, Any]:
        return {
            "shipment_id": cs.shipment_id,
            "tracking_id": cs.shipment.tracking_id,
            "original_service": cs.shipment.service,
            "category": cs.category,
            "service_confidence": cs.mapping.confidence,
            "is_residential": cs.residential.is_residential,
            "residential_source": cs.residential.source.value,
            "carrier_type": r.best_account.carrier_type.value,
            "account_name": r.best_account.account_name,
            "service_code": r.quote.service_code,
            "category_used": r.category_used,
            "is_substitution": r.substitution is not None,
            "significant_substitution": bool(r.substitution and r.substitution.significant),
            "chosen_rate": r.chosen_rate,
            "markup_percent": r.markup_percent,
            "final_price": r.final_price,
            "current_cost": r.current_cost,
            "savings": r.savings,
            "savings_percent": r.savings_percent,
        }

    def resolve(
        self,
        shipments: Sequence[ClassifiedShipment],
        outcomes: Mapping[int, Sequence[CarrierOutcome]],
    ) -> Resolution:
        res = Resolution()
        accounts: dict[str, CarrierAccount] = {}
        candidates: dict[int, dict[str, CarrierRateQuote]] = {}
        substitutions: dict[tuple[int, str], ServiceSubstitution] = {}
        all_quotes: list[CarrierRateQuote] = []

        for cs in shipments:
            outs = outcomes.get(cs.shipment_id, ())
            res.failure_report.extend(outs)
            per_account: dict[str, CarrierRateQuote] = {}
            problems: list[str] = []

            for o in outs:
                accounts.setdefault(o.account.carrier_id, o.account)
                if o.status != OutcomeStatus.SUCCESS:
                    if o.error:
                        problems.append(f"{o.account.display_name}: {o.error}")
                    continue
                usable = self.usable_quotes(o.rates, o.account)
                all_quotes.extend(usable)
                res.rate_snapshots.extend({"shipment_id": cs.shipment_id, **q.to_dict()} for q in usable)
                quote, sub = self.pick_quote(cs.category, usable)
                if quote is None:
                    continue
                per_account[o.account.carrier_id] = quote
                if sub is not None:
                    substitutions[(cs.shipment_id, o.account.carrier_id)] = sub

            if per_account:
                candidates[cs.shipment_id] = per_account
            else:
                detail = "; ".join(problems) or f"No usable rates returned by any account for {cs.category}"
                res.orphans.append(orphan_for(cs, OrphanReason.NO_RATES, detail))

        res.best_rates = find_best_rates(all_quotes, self.registry)

        selection = select_best_account(candidates, accounts)
        res.best_account = selection.winner
        res.account_totals = selection.totals
        res.account_coverage = selection.coverage

        for cs in shipments:
            per_account = candidates.get(cs.shipment_id)
            if per_account is None:
                continue
            quote = per_account.get(selection.winner.carrier_id) if selection.winner else None
            if quote is None:
                res.orphans.append(orphan_for(
                    cs, OrphanReason.NO_ACCOUNT_RATE,
                    f"Selected account {selection.winner.display_name if selection.winner else '?'} "
                    f"returned no rate for {cs.category}"))
                continue
            sub = substitutions.get((cs.shipment_id, selection.winner.carrier_id))
            if sub is not None:
                self.logger.info(
                    "Shipment %s: %s priced as %s (%s)%s",
                    cs.shipment_id, sub.original_display_name, sub.actual_display_name,
                    sub.actual_code, " [significant downgrade]" if sub.significant else "",
                )
            r = self._price(cs, selection.winner, quote, sub)
            res.per_shipment.append(r)
            res.result_rows.append(self._row(cs, r))

        res.orphans.sort(key=lambda o: o.shipment_id)
        if selection.winner:
            self.logger.info(
                "Best account: %s (total=%s over %d shipments)",
                selection.winner.display_name,
                selection.totals[selection.winner.carrier_id],
                selection.coverage[selection.winner.carrier_id],
            )
        return res


__all__ = [
    "ClassifiedShipment",
    "AccountSelection",
    "quote_sort_key",
    "service_key",
    "find_best_rates",
    "select_best_account",
    "Resolution",
    "orphan_for",
    "RateResolver",
]
