# src/shipping_rate_analysis/models/taxonomy.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union


class UniversalServiceCategory(str, Enum):
    """Carrier-agnostic shipping speed classification."""

    OVERNIGHT = "OVERNIGHT"
    OVERNIGHT_SAVER = "OVERNIGHT_SAVER"
    OVERNIGHT_EARLY = "OVERNIGHT_EARLY"
    TWO_DAY = "TWO_DAY"
    TWO_DAY_MORNING = "TWO_DAY_MORNING"
    THREE_DAY = "THREE_DAY"
    GROUND = "GROUND"
    INTERNATIONAL_EXPRESS = "INTERNATIONAL_EXPRESS"
    INTERNATIONAL_EXPEDITED = "INTERNATIONAL_EXPEDITED"
    INTERNATIONAL_STANDARD = "INTERNATIONAL_STANDARD"
    INTERNATIONAL_SAVER = "INTERNATIONAL_SAVER"

    @classmethod
    def parse(cls, value: Union[str, "UniversalServiceCategory"]) -> "UniversalServiceCategory":
        """Accept enum members, values, or loose spellings like 'two-day'."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown service category: {value!r}") from None


@dataclass(frozen=True)
class UniversalServiceInfo:
    category: str
    display_name: str
    description: str
    is_international: bool
    typical_transit_days: str  # "1", "1-5", ...


def _info(cat: UniversalServiceCategory, name: str, desc: str, intl: bool, days: str) -> UniversalServiceInfo:
    return UniversalServiceInfo(cat.value, name, desc, intl, days)


_C = UniversalServiceCategory

UNIVERSAL_SERVICES: Mapping[str, UniversalServiceInfo] = MappingProxyType({
    _C.OVERNIGHT.value: _info(_C.OVERNIGHT, "Overnight",
                              "Next business day delivery by end of day", False, "1"),
    _C.OVERNIGHT_SAVER.value: _info(_C.OVERNIGHT_SAVER, "Overnight Saver",
                                    "Next business day delivery, typically by 3:00 PM", False, "1"),
    _C.OVERNIGHT_EARLY.value: _info(_C.OVERNIGHT_EARLY, "Overnight Early",
                                    "Next business day delivery by 8:00-10:30 AM", False, "1"),
    _C.TWO_DAY.value: _info(_C.TWO_DAY, "2-Day",
                            "Delivery in 2 business days by end of day", False, "2"),
    _C.TWO_DAY_MORNING.value: _info(_C.TWO_DAY_MORNING, "2-Day Morning",
                                    "Delivery in 2 business days by 12:00 PM", False, "2"),
    _C.THREE_DAY.value: _info(_C.THREE_DAY, "3-Day Select",
                              "Delivery in 3 business days", False, "3"),
    _C.GROUND.value: _info(_C.GROUND, "Ground",
                           "Standard ground delivery, 1-5 business days", False, "1-5"),
    _C.INTERNATIONAL_EXPRESS.value: _info(_C.INTERNATIONAL_EXPRESS, "International Express",
                                          "Express international delivery", True, "1-3"),
    _C.INTERNATIONAL_EXPEDITED.value: _info(_C.INTERNATIONAL_EXPEDITED, "International Expedited",
                                            "Expedited international delivery", True, "2-5"),
    _C.INTERNATIONAL_STANDARD.value: _info(_C.INTERNATIONAL_STANDARD, "International Standard",
                                           "Standard international delivery", True, "5-10"),
    _C.INTERNATIONAL_SAVER.value: _info(_C.INTERNATIONAL_SAVER, "International Saver",
                                        "Economy international delivery", True, "1-3"),
})


@dataclass(frozen=True)
class CustomServiceCategory:
    """User-defined category layered on top of the built-in taxonomy."""
    key: str
    display_name: str
    description: str = ""
    is_international: bool = False
    typical_transit_days: str = ""


class ServiceTaxonomy:
    """Read-only view over the built-in categories plus custom extensions.

    The built-in table is never modified; custom categories live in a
    separate layer and may not reuse a built-in key.
    """

    def __init__(self, custom: Iterable[CustomServiceCategory] = ()) -> None:
        layer: dict[str, UniversalServiceInfo] = {}
        for c in custom:
            key = c.key.strip().upper()
            if key in UNIVERSAL_SERVICES:
                raise ValueError(
                    f"Custom category {key!r} collides with a built-in category")
            layer[key] = UniversalServiceInfo(
                key, c.display_name, c.description, c.is_international, c.typical_transit_days)
        self._custom: Mapping[str, UniversalServiceInfo] = MappingProxyType(layer)

    def info(self, category: Union[str, UniversalServiceCategory]) -> Optional[UniversalServiceInfo]:
        key = category.value if isinstance(category, UniversalServiceCategory) else str(category).strip().upper()
        return UNIVERSAL_SERVICES.get(key) or self._custom.get(key)

    def display_name(self, category: Union[str, UniversalServiceCategory]) -> str:
        found = self.info(category)
        return found.display_name if found else str(category)

    def is_international(self, category: Union[str, UniversalServiceCategory]) -> bool:
        found = self.info(category)
        return bool(found and found.is_international)

    def categories(self) -> list[str]:
        return list(UNIVERSAL_SERVICES) + list(self._custom)

    def __contains__(self, category: object) -> bool:
        if isinstance(category, (str, UniversalServiceCategory)):
            return self.info(category) is not None
        return False


DEFAULT_TAXONOMY = ServiceTaxonomy()


def display_name_for(category: Union[str, UniversalServiceCategory]) -> str:
    return DEFAULT_TAXONOMY.display_name(category)


__all__ = [
    "UniversalServiceCategory",
    "UniversalServiceInfo",
    "UNIVERSAL_SERVICES",
    "CustomServiceCategory",
    "ServiceTaxonomy",
    "DEFAULT_TAXONOMY",
    "display_name_for",
]
