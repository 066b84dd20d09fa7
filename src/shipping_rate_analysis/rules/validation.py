# src/shipping_rate_analysis/rules/validation.py
"""Field-level checks for projected upload rows.

Each validator returns a `FieldCheck`: `ok`, an error message when not ok,
and the cleaned value. Whether a failed check rejects the row or only adds a
warning is decided by the shipment builder.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import numpy as np

MAX_WEIGHT_LBS = 150.0
MAX_DIMENSION_IN = 108.0
DEFAULT_DIMENSIONS = {"length": 12.0, "width": 12.0, "height": 6.0}

_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
_NUM_RE = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "VI", "GU", "AS", "MP",
})


@dataclass(frozen=True)
class FieldCheck:
    ok: bool
    value: Any = None
    error: Optional[str] = None


def is_blank(value: Any) -> bool:
    """None, NaN, or whitespace-only text."""
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _text(value: Any) -> str:
    return "" if is_blank(value) else str(value).strip()


def _leading_number(s: str) -> Optional[float]:
    m = _NUM_RE.search(s.replace(",", ""))
    if not m:
        return None
    try:
        return float(m.group(0))
    except ValueError:
        return None


def validate_zip(value: Any) -> FieldCheck:
    s = re.sub(r"\s+", "", _text(value))
    # Spreadsheets turn 02134 into 2134 and 12345 into 12345.0
    if s.endswith(".0") and s[:-2].isdigit():
        s = s[:-2]
    if s.isdigit() and 3 <= len(s) < 5:
        s = s.zfill(5)
    if not s:
        return FieldCheck(False, None, "ZIP code is required")
    if not _ZIP_RE.match(s):
        return FieldCheck(False, None,
                          "ZIP code must be 5 digits or 5+4 format (e.g., 12345 or 12345-6789)")
    return FieldCheck(True, s)


def validate_weight(value: Any, unit: Optional[str] = None) -> FieldCheck:
    """Positive pounds; '8 oz' (or unit='oz') is converted to pounds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        num: Optional[float] = float(value)
        raw = ""
        if num != num:
            return FieldCheck(False, None, "Weight is required")
    else:
        raw = _text(value)
        if not raw:
            return FieldCheck(False, None, "Weight is required")
        num = _leading_number(raw)
    if num is None or num != num or num <= 0:
        return FieldCheck(False, None, "Weight must be a positive number")
    if "oz" in (unit or "").lower() or "oz" in raw.lower():
        num = num / 16.0
    if num > MAX_WEIGHT_LBS:
        return FieldCheck(False, None, f"Weight exceeds standard package limit ({MAX_WEIGHT_LBS:g} lbs)")
    return FieldCheck(True, num)


def validate_dimension(value: Any, name: str, *, required: bool = False) -> FieldCheck:
    """Blank -> default (12/12/6) unless required; otherwise positive and <= 108in."""
    label = name.capitalize()
    raw = _text(value)
    if not raw:
        if required:
            return FieldCheck(False, None, f"{label} is required")
        return FieldCheck(True, DEFAULT_DIMENSIONS.get(name.lower(), 6.0))
    num = _leading_number(raw)
    if num is None or num <= 0:
        return FieldCheck(False, None, f"{label} must be a positive number")
    if num > MAX_DIMENSION_IN:
        return FieldCheck(False, None, f"{label} exceeds maximum ({MAX_DIMENSION_IN:g} inches)")
    return FieldCheck(True, num)


def validate_cost(value: Any) -> FieldCheck:
    raw = _text(value).replace("$", "").replace(",", "")
    if not raw:
        return FieldCheck(False, None, "Cost is required")
    try:
        d = Decimal(raw)
    except InvalidOperation:
        return FieldCheck(False, None, "Cost must be a valid positive number")
    if not d.is_finite() or d < 0:
        return FieldCheck(False, None, "Cost must be a valid positive number")
    return FieldCheck(True, d)


def validate_state(value: Any) -> FieldCheck:
    """Optional: blank passes."""
    s = _text(value).upper()
    if not s:
        return FieldCheck(True, None)
    if len(s) == 2 and s in US_STATE_CODES:
        return FieldCheck(True, s)
    return FieldCheck(False, None, "Invalid state code (use 2-letter abbreviation like CA, NY, TX)")


__all__ = [
    "MAX_WEIGHT_LBS",
    "MAX_DIMENSION_IN",
    "DEFAULT_DIMENSIONS",
    "US_STATE_CODES",
    "FieldCheck",
    "is_blank",
    "validate_zip",
    "validate_weight",
    "validate_dimension",
    "validate_cost",
    "validate_state",
]
