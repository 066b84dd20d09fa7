from __future__ import annotations

from dataclasses import dataclass, field, asdict
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Union

from shipping_rate_analysis.models.carrier import CarrierAccount, CarrierType

_CENT = Decimal("0.01")


def to_money(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Parse '$1,234.50', 12.3, Decimal(...) into a Decimal; None/blank -> None."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    s = str(value).strip().replace("$", "").replace(",", "")
    if not s:
        return None
    return Decimal(s)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CarrierRateQuote:
    carrier_id: str
    carrier_type: CarrierType
    service_code: str
    service_name: str
    total_charge: Decimal
    currency: str = "USD"
    transit_days: Optional[int] = None
    is_negotiated: bool = False
    published_rate: Optional[Decimal] = None
    account_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["carrier_type"] = self.carrier_type.value
        out["total_charge"] = str(self.total_charge)
        out["published_rate"] = None if self.published_rate is None else str(self.published_rate)
        return out


@dataclass(frozen=True)
class QuoteRequest:
    shipment_id: int
    tracking_id: Optional[str]
    account: CarrierAccount
    origin_zip: str
    dest_zip: str
    weight: float
    length: float
    width: float
    height: float
    requested_service_codes: tuple[str, ...]
    is_residential: bool = False


@dataclass(frozen=True)
class QuoteResponse:
    success: bool
    rates: tuple[CarrierRateQuote, ...] = ()
    error: Optional[str] = None


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CarrierOutcome:
    """Result of quoting one shipment against one account."""
    shipment_id: int
    account: CarrierAccount
    status: OutcomeStatus
    rates: tuple[CarrierRateQuote, ...] = ()
    error: Optional[str] = None
    error_category: Optional[str] = None   # rate_limit | timeout | auth | other


class OrphanReason(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    UNCLASSIFIED_SERVICE = "unclassified_service"
    NO_RATES = "no_rates"
    NO_ACCOUNT_RATE = "no_account_rate"


@dataclass(frozen=True)
class OrphanedShipment:
    shipment_id: int
    tracking_id: Optional[str]
    origin_zip: str
    dest_zip: str
    weight: Optional[float]
    service: str
    reason: OrphanReason
    error: str
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["reason"] = self.reason.value
        return out


@dataclass(frozen=True)
class BestRate:
    key: str                       # category value, or service name/code when unresolved
    quote: CarrierRateQuote
    competitor_count: int


@dataclass(frozen=True)
class ServiceSubstitution:
    """A shipment priced with a different service than the one it shipped with."""
    original_category: str
    original_display_name: str
    actual_category: Optional[str]        # None when the code has no known category
    actual_code: str
    actual_service_name: str
    actual_display_name: str
    significant: bool                     # more than one speed tier slower
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RateResolution:
    shipment_id: int
    tracking_id: Optional[str]
    category: str
    best_account: CarrierAccount
    quote: CarrierRateQuote
    chosen_rate: Decimal
    markup_percent: Decimal
    markup_amount: Decimal
    final_price: Decimal
    current_cost: Optional[Decimal]
    savings: Optional[Decimal]
    savings_percent: Optional[Decimal]
    substitution: Optional[ServiceSubstitution] = None

    @property
    def category_used(self) -> str:
        if self.substitution is None:
            return self.category
        return self.substitution.actual_category or self.substitution.actual_code

    def to_dict(self) -> dict[str, Any]:
        def _s(v: Optional[Decimal]) -> Optional[str]:
            return None if v is None else str(v)

        return {
            "shipment_id": self.shipment_id,
            "tracking_id": self.tracking_id,
            "category": self.category,
            "carrier_id": self.best_account.carrier_id,
            "account_name": self.best_account.account_name,
            "carrier_type": self.best_account.carrier_type.value,
            "service_code": self.quote.service_code,
            "service_name": self.quote.service_name,
            "chosen_rate": _s(self.chosen_rate),
            "markup_percent": _s(self.markup_percent),
            "markup_amount": _s(self.markup_amount),
            "final_price": _s(self.final_price),
            "current_cost": _s(self.current_cost),
            "savings": _s(self.savings),
            "savings_percent": _s(self.savings_percent),
            "category_used": self.category_used,
            "substitution": None if self.substitution is None else self.substitution.to_dict(),
        }
