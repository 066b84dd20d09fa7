from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class CarrierType(str, Enum):
    UPS = "UPS"
    FEDEX = "FEDEX"
    DHL = "DHL"

    @classmethod
    def parse(cls, value: Union[str, "CarrierType"]) -> "CarrierType":
        """Case-insensitive lookup ('ups', 'FedEx', 'FEDEX' ...)."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().upper().replace(" ", "")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown carrier type: {value!r}") from None


@dataclass(frozen=True)
class CarrierServiceMapping:
    carrier_type: CarrierType
    universal_category: str
    carrier_code: str
    carrier_service_name: str
    is_available: bool = True


@dataclass(frozen=True)
class CustomCarrierServiceCode:
    """User-owned override keyed by (user_id, carrier_type, service_code)."""
    user_id: str
    carrier_type: CarrierType
    service_code: str
    service_name: str
    universal_category: str
    is_available: bool = True
    is_active: bool = True

    @property
    def key(self) -> tuple[str, CarrierType, str]:
        return (self.user_id, self.carrier_type, self.service_code)

    def as_mapping(self) -> CarrierServiceMapping:
        return CarrierServiceMapping(
            carrier_type=self.carrier_type,
            universal_category=self.universal_category,
            carrier_code=self.service_code,
            carrier_service_name=self.service_name,
            is_available=self.is_available,
        )


@dataclass(frozen=True)
class CustomServiceMapping:
    """User-owned mapping from a free-text service name to a category."""
    user_id: str
    service_name: str
    universal_category: str
    confidence: float = 0.9
    is_residential: Optional[bool] = None
    is_active: bool = True

    @property
    def normalized_name(self) -> str:
        return normalize_service_name(self.service_name)


@dataclass(frozen=True)
class CarrierAccount:
    """An enabled carrier account the quoting collaborator can rate against."""
    carrier_id: str
    account_name: str
    carrier_type: CarrierType
    enabled_services: tuple[str, ...] = ()   # empty -> every available code
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.carrier_type.value} – {self.account_name}"

    def allows(self, code: str) -> bool:
        return not self.enabled_services or code in self.enabled_services


def normalize_service_name(text: str) -> str:
    return " ".join(str(text or "").lower().split())
