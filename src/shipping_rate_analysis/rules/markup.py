# src/shipping_rate_analysis/rules/markup.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from shipping_rate_analysis.models import RateResolution
from shipping_rate_analysis.models.rates import round_money, to_money

GLOBAL = "global"
PER_SERVICE = "per_service"

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

Number = Union[int, float, str, Decimal]


def _pct(value: Optional[Number]) -> Decimal:
    d = to_money(value) if value is not None else None
    return _ZERO if d is None else d


@dataclass(frozen=True)
class MarkupConfig:
    """Global percentage, or a percentage per service category.

    Per-service keys are category values (``GROUND``) or display names
    (``Ground``); an unlisted category gets no markup.
    """
    kind: str = GLOBAL
    global_percentage: Decimal = _ZERO
    service_markups: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        kind = str(self.kind).strip().lower().replace("-", "_")
        if kind not in (GLOBAL, PER_SERVICE):
            raise ValueError(f"Unknown markup kind: {self.kind!r}")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "global_percentage", _pct(self.global_percentage))
        object.__setattr__(self, "service_markups",
                           {str(k): _pct(v) for k, v in dict(self.service_markups).items()})

    @classmethod
    def global_markup(cls, percentage: Number) -> "MarkupConfig":
        return cls(GLOBAL, _pct(percentage))

    @classmethod
    def per_service(cls, markups: Mapping[str, Number]) -> "MarkupConfig":
        return cls(PER_SERVICE, _ZERO, {k: _pct(v) for k, v in markups.items()})

    def percentage_for(self, category: str, display_name: Optional[str] = None) -> Decimal:
        if self.kind == GLOBAL:
            return self.global_percentage
        for key in (category, display_name):
            if key and key in self.service_markups:
                return self.service_markups[key]
        return _ZERO


NO_MARKUP = MarkupConfig()


@dataclass(frozen=True)
class MarkupResult:
    percentage: Decimal
    markup_amount: Decimal
    final_price: Decimal


def apply_markup(chosen_rate: Decimal, percentage: Decimal) -> MarkupResult:
    """final = chosen * (1 + pct/100), rounded half-up to cents."""
    amount = round_money(chosen_rate * percentage / _HUNDRED)
    return MarkupResult(percentage, amount, round_money(chosen_rate + amount))


def savings_for(current_cost: Optional[Decimal], final_price: Decimal) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """(savings, savings_percent); both None without a current cost."""
    if current_cost is None:
        return None, None
    savings = round_money(current_cost - final_price)
    if current_cost <= 0:
        return savings, None
    return savings, round_money(savings / current_cost * _HUNDRED)


@dataclass(frozen=True)
class MarkupTotals:
    total_current_cost: Decimal
    total_base_rate: Decimal
    total_markup: Decimal
    total_final: Decimal
    total_savings: Decimal
    savings_percent: Decimal
    margin_percent: Decimal

    def to_dict(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.__dict__.items()}


def summarize(resolutions: Iterable[RateResolution]) -> MarkupTotals:
    """Batch totals; shipments without a current cost count as zero current cost."""
    current = base = markup = final = savings = _ZERO
    for r in resolutions:
        base += r.chosen_rate
        markup += r.markup_amount
        final += r.final_price
        if r.current_cost is not None:
            current += r.current_cost
            savings += r.current_cost - r.final_price
    savings_pct = round_money(savings / current * _HUNDRED) if current > 0 else _ZERO
    margin_pct = round_money(markup / final * _HUNDRED) if final > 0 else _ZERO
    return MarkupTotals(
        total_current_cost=round_money(current),
        total_base_rate=round_money(base),
        total_markup=round_money(markup),
        total_final=round_money(final),
        total_savings=round_money(savings),
        savings_percent=savings_pct,
        margin_percent=margin_pct,
    )


__all__ = [
    "GLOBAL",
    "PER_SERVICE",
    "MarkupConfig",
    "NO_MARKUP",
    "MarkupResult",
    "apply_markup",
    "savings_for",
    "MarkupTotals",
    "summarize",
]
