# src/shipping_rate_analysis/rules/carrier_registry.py
"""Universal category <-> carrier service code lookups.

Two layers: caller-supplied overrides are consulted first, then the static
table. An override with the same (carrier, code) as a static entry shadows
that static entry for every lookup. Neither layer is mutated after
construction; `with_overrides` returns a new registry.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from shipping_rate_analysis.models import (
    CarrierServiceMapping,
    CarrierType,
    CustomCarrierServiceCode,
    UniversalServiceCategory as C,
)

CarrierLike = Union[str, CarrierType]
CategoryLike = Union[str, C]


def _m(carrier: CarrierType, category: C, code: str, name: str) -> CarrierServiceMapping:
    return CarrierServiceMapping(carrier, category.value, code, name, True)


_UPS = CarrierType.UPS
_FEDEX = CarrierType.FEDEX
_DHL = CarrierType.DHL

STATIC_SERVICE_MAPPINGS: Mapping[CarrierType, tuple[CarrierServiceMapping, ...]] = MappingProxyType({
    _UPS: (
        _m(_UPS, C.OVERNIGHT, "01", "UPS Next Day Air"),
        _m(_UPS, C.OVERNIGHT_SAVER, "13", "UPS Next Day Air Saver"),
        _m(_UPS, C.OVERNIGHT_EARLY, "14", "UPS Next Day Air Early"),
        _m(_UPS, C.TWO_DAY, "02", "UPS 2nd Day Air"),
        _m(_UPS, C.TWO_DAY_MORNING, "59", "UPS 2nd Day Air A.M."),
        _m(_UPS, C.THREE_DAY, "12", "UPS 3 Day Select"),
        _m(_UPS, C.GROUND, "03", "UPS Ground"),
        _m(_UPS, C.INTERNATIONAL_EXPRESS, "07", "UPS Worldwide Express"),
        _m(_UPS, C.INTERNATIONAL_EXPEDITED, "08", "UPS Worldwide Expedited"),
        _m(_UPS, C.INTERNATIONAL_STANDARD, "11", "UPS Standard"),
        _m(_UPS, C.INTERNATIONAL_SAVER, "65", "UPS Worldwide Saver"),
    ),
    _FEDEX: (
        _m(_FEDEX, C.OVERNIGHT, "PRIORITY_OVERNIGHT", "FedEx Priority Overnight"),
        _m(_FEDEX, C.OVERNIGHT_SAVER, "STANDARD_OVERNIGHT", "FedEx Standard Overnight"),
        _m(_FEDEX, C.OVERNIGHT_EARLY, "FIRST_OVERNIGHT", "FedEx First Overnight"),
        _m(_FEDEX, C.TWO_DAY, "FEDEX_2_DAY", "FedEx 2Day"),
        _m(_FEDEX, C.TWO_DAY_MORNING, "FEDEX_2_DAY_AM", "FedEx 2Day A.M."),
        _m(_FEDEX, C.GROUND, "FEDEX_GROUND", "FedEx Ground"),
        _m(_FEDEX, C.INTERNATIONAL_EXPRESS, "INTERNATIONAL_PRIORITY", "FedEx International Priority"),
        _m(_FEDEX, C.INTERNATIONAL_EXPEDITED, "INTERNATIONAL_ECONOMY", "FedEx International Economy"),
    ),
    _DHL: (
        _m(_DHL, C.OVERNIGHT, "EXPRESS_10_30", "DHL Express 10:30"),
        _m(_DHL, C.OVERNIGHT_EARLY, "EXPRESS_9_00", "DHL Express 9:00"),
        _m(_DHL, C.TWO_DAY, "EXPRESS_12_00", "DHL Express 12:00"),
        _m(_DHL, C.INTERNATIONAL_EXPRESS, "EXPRESS_WORLDWIDE", "DHL Express Worldwide"),
        _m(_DHL, C.INTERNATIONAL_EXPEDITED, "EXPRESS_EASY", "DHL Express Easy"),
    ),
})


def _category_key(category: CategoryLike) -> str:
    if isinstance(category, C):
        return category.value
    return str(category).strip().upper()


class CarrierRegistry:
    def __init__(
        self,
        static_entries: Mapping[CarrierType, Iterable[CarrierServiceMapping]] = STATIC_SERVICE_MAPPINGS,
        overrides: Iterable[CustomCarrierServiceCode] = (),
    ) -> None:
        self._static = MappingProxyType({ct: tuple(rows) for ct, rows in static_entries.items()})
        self._overrides_src: tuple[CustomCarrierServiceCode, ...] = tuple(
            o for o in overrides if o.is_active)

        layer: dict[CarrierType, list[CarrierServiceMapping]] = {}
        seen: set[tuple[CarrierType, str]] = set()
        # Later duplicates of the same (carrier, code) lose to the first one.
        for o in self._overrides_src:
            k = (o.carrier_type, o.service_code)
            if k in seen:
                continue
            seen.add(k)
            layer.setdefault(o.carrier_type, []).append(o.as_mapping())
        self._override = MappingProxyType({ct: tuple(rows) for ct, rows in layer.items()})
        self._shadowed = frozenset(seen)

    # ---- construction ----

    def with_overrides(self, overrides: Iterable[CustomCarrierServiceCode]) -> "CarrierRegistry":
        return CarrierRegistry(self._static, overrides)

    @property
    def overrides(self) -> tuple[CustomCarrierServiceCode, ...]:
        return self._overrides_src

    # ---- internals ----

    def _layers(self, carrier: CarrierType) -> tuple[tuple[CarrierServiceMapping, ...], tuple[CarrierServiceMapping, ...]]:
        static = tuple(
            m for m in self._static.get(carrier, ())
            if (carrier, m.carrier_code) not in self._shadowed
        )
        return self._override.get(carrier, ()), static

    def entries(self, carrier: CarrierLike) -> list[CarrierServiceMapping]:
        """Effective mappings for `carrier`, overrides first."""
        ct = CarrierType.parse(carrier)
        over, static = self._layers(ct)
        return [*over, *static]

    def _find_available(self, carrier: CarrierLike, category: CategoryLike) -> Optional[CarrierServiceMapping]:
        key = _category_key(category)
        for m in self.entries(carrier):
            if m.universal_category == key and m.is_available:
                return m
        return None

    # ---- lookups ----

    def code_for(self, carrier: CarrierLike, category: CategoryLike) -> Optional[str]:
        m = self._find_available(carrier, category)
        return m.carrier_code if m else None

    def name_for(self, carrier: CarrierLike, category: CategoryLike) -> Optional[str]:
        m = self._find_available(carrier, category)
        return m.carrier_service_name if m else None

    def entry_for_code(self, carrier: CarrierLike, code: str) -> Optional[CarrierServiceMapping]:
        """Reverse lookup; disabled entries stay decodable."""
        code = str(code).strip()
        for m in self.entries(carrier):
            if m.carrier_code == code:
                return m
        return None

    def category_for(self, carrier: CarrierLike, code: str) -> Optional[str]:
        m = self.entry_for_code(carrier, code)
        return m.universal_category if m else None

    def is_code_available(self, carrier: CarrierLike, code: str) -> Optional[bool]:
        """True/False for a known code, None when the registry does not know it."""
        m = self.entry_for_code(carrier, code)
        return None if m is None else m.is_available

    def available_codes(self, carrier: CarrierLike) -> list[str]:
        out: list[str] = []
        for m in self.entries(carrier):
            if m.is_available and m.carrier_code not in out:
                out.append(m.carrier_code)
        return out

    def codes_to_request(self, carrier: CarrierLike, primary_category: Optional[CategoryLike]) -> list[str]:
        """Primary category's code first, then every other available code."""
        all_codes = self.available_codes(carrier)
        primary = self.code_for(carrier, primary_category) if primary_category is not None else None
        if not primary:
            return all_codes
        return [primary, *(c for c in all_codes if c != primary)]


DEFAULT_REGISTRY = CarrierRegistry()


__all__ = [
    "STATIC_SERVICE_MAPPINGS",
    "CarrierRegistry",
    "DEFAULT_REGISTRY",
]
