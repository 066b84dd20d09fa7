from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class FieldMapping:
    field_name: str        # canonical field, e.g. "origin_zip"
    source_header: str     # header as it appears in the upload
    confidence: float      # 0..1
    is_auto_detected: bool = True


class ResidentialSource(str, Enum):
    SERVICE_NAME = "service_name"
    ADDRESS_PATTERN = "address_pattern"
    CSV_DATA = "csv_data"
    MANUAL = "manual"
    FALLBACK_MAPPING = "fallback_mapping"
    DEFAULT = "default"


@dataclass(frozen=True)
class ServiceMappingResult:
    """Outcome of normalizing one free-text service name.

    Derived data: callers may replace the residential fields (for example a
    user's manual correction) via `with_residential`.
    """
    original: str
    category: str
    display_name: str
    confidence: float
    is_residential: Optional[bool] = None
    residential_source: Optional[ResidentialSource] = None
    matched_rule: str = ""

    def with_residential(self, value: Optional[bool], source: Optional[ResidentialSource]) -> "ServiceMappingResult":
        return replace(self, is_residential=value, residential_source=source)

    @property
    def needs_review(self) -> bool:
        return self.confidence < 0.5


@dataclass(frozen=True)
class ResidentialDecision:
    is_residential: bool
    source: ResidentialSource
    confidence: float


@dataclass(frozen=True)
class ShipmentRecord:
    # identity
    shipment_id: int                  # 1-based position in the upload
    tracking_id: Optional[str]

    # service/carrier as written in the upload
    service: str
    carrier: Optional[str]

    # package (lbs / inches)
    weight: float
    length: float
    width: float
    height: float

    # lanes
    origin_zip: str
    dest_zip: str

    cost: Optional[Decimal] = None

    shipper_name: Optional[str] = None
    shipper_address: Optional[str] = None
    shipper_city: Optional[str] = None
    shipper_state: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_address: Optional[str] = None
    recipient_city: Optional[str] = None
    recipient_state: Optional[str] = None

    is_residential: Optional[bool] = None   # tri-state: True / False / unknown
    zone: Optional[str] = None
    ship_date: Optional[str] = None
    delivery_date: Optional[str] = None

    raw: dict[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    @property
    def display_id(self) -> str:
        return self.tracking_id or f"Shipment-{self.shipment_id}"

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["cost"] = None if self.cost is None else str(self.cost)
        out["warnings"] = list(self.warnings)
        return out
