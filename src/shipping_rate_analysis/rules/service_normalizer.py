# src/shipping_rate_analysis/rules/service_normalizer.py
"""Free-text carrier service name -> universal service category.

Classification is an ordered cascade: ``SERVICE_RULES`` is evaluated top to
bottom and the first matching rule wins. Rule order is part of the contract:

  1. carrier-specific overrides ("fedex standard overnight", "ups saver", ...)
  2. next-day family (saver / early sub-tokens before plain overnight)
  3. two-day family (morning sub-token before plain two-day)
  4. ground family, before three-day so "parcel select ground" stays ground
  5. three-day / select family, never when "ground" is present
  6. international tiers, then bare express / priority
  7. fallback: ground at low confidence (needs manual review)

Confidences are fixed per rule; they reflect how specific the matched tokens
are, not a computed probability.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from shipping_rate_analysis.models import (
    CustomServiceMapping,
    ResidentialSource,
    ServiceMappingResult,
    ServiceTaxonomy,
    UniversalServiceCategory as C,
)
from shipping_rate_analysis.models.carrier import normalize_service_name
from shipping_rate_analysis.models.taxonomy import DEFAULT_TAXONOMY

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]

FALLBACK_CONFIDENCE = 0.3
EMPTY_CONFIDENCE = 0.0


@dataclass(frozen=True)
class ServiceRule:
    name: str
    predicate: Predicate
    category: C
    confidence: float


# -------- token helpers (input is already lowercased) --------

def _any(*phrases: str) -> Predicate:
    return lambda t: any(p in t for p in phrases)


def _word(*words: str) -> re.Pattern:
    alt = "|".join(re.escape(w) for w in words)
    return re.compile(rf"(?<![a-z0-9])(?:{alt})(?![a-z0-9])")


def _all(*preds: Predicate) -> Predicate:
    return lambda t: all(p(t) for p in preds)


def _not(pred: Predicate) -> Predicate:
    return lambda t: not pred(t)


_UPS_RE = _word("ups")
_DHL_RE = _word("dhl")
_AM_RE = re.compile(r"(?<![a-z])(?:early|am|a\.m\.?)(?![a-z])")
_INTL_RE = _word("international", "worldwide", "world wide", "intl", "global")

is_fedex: Predicate = _any("fedex", "fed ex", "fdx")
is_ups: Predicate = lambda t: bool(_UPS_RE.search(t))
is_dhl: Predicate = lambda t: bool(_DHL_RE.search(t))
is_usps: Predicate = _any("usps", "postal", "priority mail", "first-class", "first class",
                          "media mail", "parcel select", "ground advantage")

next_day: Predicate = _any("next day", "nextday", "next-day",
                           "overnight", "1 day", "1-day", "one day")
two_day: Predicate = _any("2nd day", "2 day", "2-day", "2day", "second day", "two day", "two-day")
three_day: Predicate = _any("3 day", "3-day", "3day", "three day", "select")
ground: Predicate = _any("ground", "home delivery", "smartpost", "surepost", "regular", "standard")
saver: Predicate = _any("saver", "save")
early: Predicate = lambda t: bool(_AM_RE.search(t))
morning: Predicate = lambda t: bool(_AM_RE.search(t)) or "morning" in t
international: Predicate = lambda t: bool(_INTL_RE.search(t))
has_ground: Predicate = _any("ground")


SERVICE_RULES: tuple[ServiceRule, ...] = (
    # 1. carrier-specific overrides
    ServiceRule("fedex_home_delivery", _all(is_fedex, _any("home delivery", "fedex home")),
                C.GROUND, 0.95),
    ServiceRule("fedex_ground_economy", _all(is_fedex, _any("smartpost", "ground economy")),
                C.GROUND, 0.9),
    ServiceRule("fedex_first_overnight", _all(is_fedex, _any("first overnight")),
                C.OVERNIGHT_EARLY, 0.95),
    ServiceRule("fedex_priority_overnight", _all(is_fedex, _any("priority overnight")),
                C.OVERNIGHT, 0.95),
    ServiceRule("fedex_standard_overnight", _all(is_fedex, _any("standard overnight")),
                C.OVERNIGHT_SAVER, 0.95),
    ServiceRule("fedex_express_saver", _all(is_fedex, _any("express saver"), _not(international)),
                C.THREE_DAY, 0.9),
    ServiceRule("ups_ground_saver", _all(is_ups, _any("ground saver", "surepost")),
                C.GROUND, 0.9),
    ServiceRule("ups_saver", _all(is_ups, saver, _not(next_day)),
                C.INTERNATIONAL_SAVER, 0.9),
    ServiceRule("ups_standard", _all(is_ups, _any("standard"), _not(has_ground), _not(next_day)),
                C.INTERNATIONAL_STANDARD, 0.85),
    ServiceRule("usps_priority_express",
                _all(is_usps, _any("priority mail express", "express mail"), _not(international)),
                C.OVERNIGHT, 0.85),
    ServiceRule("usps_priority_mail", _all(is_usps, _any("priority mail"), _not(international)),
                C.TWO_DAY, 0.8),
    ServiceRule("usps_ground", _all(is_usps, _any("ground advantage", "parcel select", "first-class",
                                                  "first class", "media mail", "retail ground")),
                C.GROUND, 0.85),
    ServiceRule("dhl_express_9", _all(is_dhl, _any("9:00", "0900")), C.OVERNIGHT_EARLY, 0.9),
    ServiceRule("dhl_express_1030", _all(is_dhl, _any("10:30", "1030")), C.OVERNIGHT, 0.9),
    ServiceRule("dhl_express_12", _all(is_dhl, _any("12:00", "1200")), C.TWO_DAY, 0.85),
    ServiceRule("dhl_express_worldwide", _all(is_dhl, _any("express worldwide")),
                C.INTERNATIONAL_EXPRESS, 0.9),
    ServiceRule("dhl_express_easy", _all(is_dhl, _any("express easy")),
                C.INTERNATIONAL_EXPEDITED, 0.85),

    # 2. next day / overnight
    ServiceRule("next_day_saver", _all(next_day, saver), C.OVERNIGHT_SAVER, 0.95),
    ServiceRule("next_day_early", _all(next_day, early), C.OVERNIGHT_EARLY, 0.95),
    ServiceRule("next_day", next_day, C.OVERNIGHT, 0.9),

    # 3. two day
    ServiceRule("two_day_morning", _all(two_day, morning), C.TWO_DAY_MORNING, 0.95),
    ServiceRule("two_day", two_day, C.TWO_DAY, 0.9),

    # 4. ground (before three day)
    ServiceRule("ground", _all(ground, _not(international)), C.GROUND, 0.9),

    # 5. three day / select
    ServiceRule("three_day", _all(three_day, _not(has_ground)), C.THREE_DAY, 0.9),

    # 6. international tiers, then bare express / priority
    ServiceRule("international_saver", _all(international, saver),
                C.INTERNATIONAL_SAVER, 0.85),
    ServiceRule("international_expedited", _all(international, _any("expedited", "economy")),
                C.INTERNATIONAL_EXPEDITED, 0.85),
    ServiceRule("international_express", _all(international, _any("express", "priority", "first", "plus")),
                C.INTERNATIONAL_EXPRESS, 0.85),
    ServiceRule("international_standard", international, C.INTERNATIONAL_STANDARD, 0.8),
    ServiceRule("express", _any("express"), C.OVERNIGHT, 0.7),
    ServiceRule("priority", _any("priority"), C.OVERNIGHT, 0.7),
)


# -------- residential hints (disjoint from the category tokens) --------

@dataclass(frozen=True)
class ResidentialRule:
    name: str
    predicate: Predicate
    is_residential: bool


_RESI_RE = _word("resi", "residential", "residence", "home")

RESIDENTIAL_RULES: tuple[ResidentialRule, ...] = (
    ResidentialRule("fedex_ground_commercial",
                    _all(is_fedex, _any("fedex ground"), _not(_any("home"))), False),
    ResidentialRule("commercial_token", lambda t: bool(_word("commercial", "business").search(t)), False),
    ResidentialRule("home_token", lambda t: bool(_RESI_RE.search(t)) or "home delivery" in t, True),
    ResidentialRule("usps_residential",
                    _all(_any("usps", "postal", "mail"),
                         _any("priority mail", "first-class", "first class", "media mail", "parcel select")),
                    True),
)


def detect_residential_from_service(text: str) -> Optional[bool]:
    t = normalize_service_name(text)
    for rule in RESIDENTIAL_RULES:
        if rule.predicate(t):
            return rule.is_residential
    return None


class ServiceNormalizer:
    """Apply user custom mappings, then ``SERVICE_RULES`` in order."""

    def __init__(
        self,
        custom_mappings: Iterable[CustomServiceMapping] = (),
        *,
        rules: tuple[ServiceRule, ...] = SERVICE_RULES,
        taxonomy: ServiceTaxonomy = DEFAULT_TAXONOMY,
    ) -> None:
        self.rules = rules
        self.taxonomy = taxonomy
        self._custom: dict[str, CustomServiceMapping] = {}
        for m in custom_mappings:
            if m.is_active:
                self._custom[m.normalized_name] = m

    def _result(
        self,
        original: str,
        category: str,
        confidence: float,
        rule: str,
        is_residential: Optional[bool],
        source: Optional[ResidentialSource],
    ) -> ServiceMappingResult:
        return ServiceMappingResult(
            original=original,
            category=category,
            display_name=self.taxonomy.display_name(category),
            confidence=max(0.0, min(1.0, float(confidence))),
            is_residential=is_residential,
            residential_source=source,
            matched_rule=rule,
        )

    def normalize(self, service_text: Optional[str]) -> ServiceMappingResult:
        original = "" if service_text is None else str(service_text)
        t = normalize_service_name(original)
        if not t:
            return self._result(original, C.GROUND.value, EMPTY_CONFIDENCE, "empty", None, None)

        resi = detect_residential_from_service(t)
        resi_source = ResidentialSource.SERVICE_NAME if resi is not None else None

        custom = self._custom.get(t)
        if custom is not None:
            if custom.is_residential is not None:
                resi, resi_source = custom.is_residential, ResidentialSource.MANUAL
            return self._result(original, custom.universal_category, custom.confidence,
                                "custom_mapping", resi, resi_source)

        for rule in self.rules:
            if rule.predicate(t):
                return self._result(original, rule.category.value, rule.confidence,
                                    rule.name, resi, resi_source)

        logger.debug("No service rule matched %r; falling back to ground", original)
        return self._result(original, C.GROUND.value, FALLBACK_CONFIDENCE, "fallback", resi, resi_source)

    def detect_service_types(self, values: Iterable[object]) -> list[ServiceMappingResult]:
        """Normalize each distinct non-blank value once, in first-seen order."""
        seen: set[str] = set()
        out: list[ServiceMappingResult] = []
        for v in values:
            if v is None:
                continue
            s = str(v).strip()
            if not s or s in seen:
                continue
            seen.add(s)
            out.append(self.normalize(s))
        return out


_DEFAULT = ServiceNormalizer()


def normalize_service(service_text: Optional[str]) -> ServiceMappingResult:
    return _DEFAULT.normalize(service_text)


__all__ = [
    "ServiceRule",
    "SERVICE_RULES",
    "ResidentialRule",
    "RESIDENTIAL_RULES",
    "FALLBACK_CONFIDENCE",
    "detect_residential_from_service",
    "ServiceNormalizer",
    "normalize_service",
]
