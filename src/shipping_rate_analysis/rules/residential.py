# src/shipping_rate_analysis/rules/residential.py
"""Residential vs. commercial resolution.

`resolve_residential` is a strict precedence cascade; each tier is consulted
only when every earlier tier produced no answer:

  1. explicit per-row value (mapped upload column)        0.95  csv_data
  2. manual setting on the service mapping                0.90  manual
  3. flag inferred from the service name                  0.80  service_name
  4. recipient address pattern, trusted only above 0.6    0.8/0.7  address_pattern
  5. any other flag carried by the mapping                0.50  fallback_mapping
  6. commercial                                           0.10  default
"""
from __future__ import annotations

import logging
import re
from typing import Any, Optional

import numpy as np

from shipping_rate_analysis.models import (
    ResidentialDecision,
    ResidentialSource,
    ServiceMappingResult,
    ShipmentRecord,
)
from shipping_rate_analysis.rules.validation import is_blank

logger = logging.getLogger(__name__)

CSV_CONFIDENCE = 0.95
MANUAL_CONFIDENCE = 0.9
SERVICE_NAME_CONFIDENCE = 0.8
ADDRESS_TRUST_THRESHOLD = 0.6
FALLBACK_MAPPING_CONFIDENCE = 0.5
DEFAULT_CONFIDENCE = 0.1

COMMERCIAL_ADDRESS_CONFIDENCE = 0.8
RESIDENTIAL_ADDRESS_CONFIDENCE = 0.7
UNCLEAR_ADDRESS_CONFIDENCE = 0.2

# Commercial indicators are checked first
COMMERCIAL_ADDRESS_PATTERNS = (
    re.compile(r"\b(llc|inc|corp|ltd|company|co\.|corporation|incorporated)(?!\w)"),
    re.compile(r"\b(office|building|plaza|center|centre|tower|floor|fl\s*\d+)\b"),
    re.compile(r"\b(warehouse|distribution|fulfillment|dock|bay\s*\d+)\b"),
    re.compile(r"\b(business|store|shop|retail|mall)\b"),
)

RESIDENTIAL_ADDRESS_PATTERNS = (
    re.compile(r"apt\s*\d+"),
    re.compile(r"apartment\s*\d+"),
    re.compile(r"unit\s*\d+"),
    re.compile(r"suite\s*\d+"),
    re.compile(r"#\s*\d+"),
    re.compile(r"\d+[a-z]\s*$"),
    re.compile(r"house|home|residence"),
)

_TRUE_VALUES = frozenset({"yes", "y", "true", "1", "residential", "home"})


def parse_residential_value(value: Any) -> bool:
    """Interpret an upload cell as a residential flag ('Y', 'true', 1, 'home' ...)."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return bool(value == 1)
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return False


def detect_residential_from_address(address: Optional[str]) -> tuple[bool, float]:
    """(is_residential, confidence) from recipient address tokens."""
    if not isinstance(address, str) or not address.strip():
        return False, 0.0
    a = address.lower().strip()
    for pattern in COMMERCIAL_ADDRESS_PATTERNS:
        if pattern.search(a):
            return False, COMMERCIAL_ADDRESS_CONFIDENCE
    for pattern in RESIDENTIAL_ADDRESS_PATTERNS:
        if pattern.search(a):
            return True, RESIDENTIAL_ADDRESS_CONFIDENCE
    return False, UNCLEAR_ADDRESS_CONFIDENCE


def _explicit_value(shipment: ShipmentRecord, explicit_field: Optional[str]) -> Optional[bool]:
    if explicit_field:
        raw = shipment.raw.get(explicit_field)
        return None if is_blank(raw) else parse_residential_value(raw)
    return shipment.is_residential


def resolve_residential(
    shipment: ShipmentRecord,
    mapping: ServiceMappingResult,
    explicit_field: Optional[str] = None,
) -> ResidentialDecision:
    explicit = _explicit_value(shipment, explicit_field)
    if explicit is not None:
        return ResidentialDecision(explicit, ResidentialSource.CSV_DATA, CSV_CONFIDENCE)

    flag = mapping.is_residential
    source = mapping.residential_source

    if flag is not None and source == ResidentialSource.MANUAL:
        return ResidentialDecision(flag, ResidentialSource.MANUAL, MANUAL_CONFIDENCE)

    if flag is not None and source == ResidentialSource.SERVICE_NAME:
        return ResidentialDecision(flag, ResidentialSource.SERVICE_NAME, SERVICE_NAME_CONFIDENCE)

    if shipment.recipient_address:
        is_resi, conf = detect_residential_from_address(shipment.recipient_address)
        if conf > ADDRESS_TRUST_THRESHOLD:
            return ResidentialDecision(is_resi, ResidentialSource.ADDRESS_PATTERN, conf)

    # Reached when the mapping carries a flag from some other source
    # (e.g. a user correction applied without the manual tag)
    if flag is not None:
        return ResidentialDecision(flag, ResidentialSource.FALLBACK_MAPPING, FALLBACK_MAPPING_CONFIDENCE)

    logger.debug("Shipment %s: no residential signal, defaulting to commercial", shipment.display_id)
    return ResidentialDecision(False, ResidentialSource.DEFAULT, DEFAULT_CONFIDENCE)


__all__ = [
    "parse_residential_value",
    "detect_residential_from_address",
    "resolve_residential",
]
