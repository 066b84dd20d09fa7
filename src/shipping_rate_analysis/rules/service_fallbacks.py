# src/shipping_rate_analysis/rules/service_fallbacks.py
"""Category fallbacks used when no account returned the shipment's own service.

Each category lists the categories to try next, nearest in speed first.
Downgrading more than one speed tier is flagged as significant.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from shipping_rate_analysis.models.taxonomy import DEFAULT_TAXONOMY, UniversalServiceCategory

_C = UniversalServiceCategory

FALLBACK_HIERARCHY: Mapping[str, tuple[str, ...]] = MappingProxyType({
    _C.OVERNIGHT_SAVER.value: (_C.OVERNIGHT.value, _C.TWO_DAY.value),
    _C.OVERNIGHT_EARLY.value: (_C.OVERNIGHT.value, _C.OVERNIGHT_SAVER.value),
    _C.OVERNIGHT.value: (_C.OVERNIGHT_SAVER.value, _C.TWO_DAY.value),
    _C.TWO_DAY_MORNING.value: (_C.TWO_DAY.value, _C.THREE_DAY.value),
    _C.TWO_DAY.value: (_C.TWO_DAY_MORNING.value, _C.THREE_DAY.value),
    _C.THREE_DAY.value: (_C.GROUND.value, _C.TWO_DAY.value),
    _C.GROUND.value: (_C.THREE_DAY.value, _C.TWO_DAY.value),
    _C.INTERNATIONAL_EXPRESS.value: (_C.INTERNATIONAL_SAVER.value, _C.INTERNATIONAL_STANDARD.value),
    _C.INTERNATIONAL_SAVER.value: (_C.INTERNATIONAL_EXPRESS.value, _C.INTERNATIONAL_STANDARD.value),
    _C.INTERNATIONAL_EXPEDITED.value: (_C.INTERNATIONAL_STANDARD.value, _C.INTERNATIONAL_SAVER.value),
    _C.INTERNATIONAL_STANDARD.value: (_C.INTERNATIONAL_SAVER.value, _C.GROUND.value),
})

# lower is faster
SPEED_RANK: Mapping[str, int] = MappingProxyType({
    _C.OVERNIGHT_EARLY.value: 1,
    _C.OVERNIGHT.value: 2,
    _C.OVERNIGHT_SAVER.value: 3,
    _C.TWO_DAY_MORNING.value: 4,
    _C.TWO_DAY.value: 5,
    _C.THREE_DAY.value: 6,
    _C.GROUND.value: 7,
    _C.INTERNATIONAL_EXPRESS.value: 2,
    _C.INTERNATIONAL_EXPEDITED.value: 5,
    _C.INTERNATIONAL_SAVER.value: 6,
    _C.INTERNATIONAL_STANDARD.value: 7,
})

UNRANKED = 999


def speed_rank(category: Optional[str]) -> int:
    return SPEED_RANK.get(category or "", UNRANKED)


def categories_to_try(category: str) -> tuple[str, ...]:
    """The category itself, then its fallbacks in order."""
    return (category, *FALLBACK_HIERARCHY.get(category, ()))


def is_significant_substitution(original: str, actual: Optional[str]) -> bool:
    """True when `actual` is more than one speed tier slower than `original`."""
    return speed_rank(actual) > speed_rank(original) + 1


def same_region(original: str, actual: Optional[str]) -> bool:
    """Whether two categories are both domestic or both international."""
    if actual is None:
        return False
    return DEFAULT_TAXONOMY.is_international(original) == DEFAULT_TAXONOMY.is_international(actual)


__all__ = [
    "FALLBACK_HIERARCHY",
    "SPEED_RANK",
    "UNRANKED",
    "speed_rank",
    "categories_to_try",
    "is_significant_substitution",
    "same_region",
]
