# src/shipping_rate_analysis/api/normalize.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from shipping_rate_analysis.models import CarrierAccount, CarrierRateQuote

UNKNOWN_SERVICE_CODE = "UNKNOWN"


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        v = payload.get(k)
        if v is not None and v != "":
            return v
    return None


def _money(value: Any) -> Optional[Decimal]:
    """Accept 25.1, '25.10', '$1,025.10' or {'monetaryValue': '25.10'}."""
    if isinstance(value, dict):
        value = _first(value, "monetaryValue", "amount", "value")
    if value is None or isinstance(value, bool):
        return None
    s = str(value).strip().replace("$", "").replace(",", "")
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return None


def normalize_quote(payload: Dict[str, Any], account: CarrierAccount) -> Optional[CarrierRateQuote]:
    """
    Build a CarrierRateQuote from one raw rate entry.

    Accepts the key spellings quoting services emit (camelCase and
    snake_case). The charge is read from totalCharges / totalCharge /
    total_charge / rate_amount / cost; entries without a usable charge
    return None. A positive `negotiatedRate` marks the quote negotiated.
    """
    if not isinstance(payload, dict):
        return None

    charge = _money(_first(payload, "totalCharges", "totalCharge", "total_charge", "rate_amount", "cost"))
    if charge is None or charge < 0:
        return None

    negotiated = _money(_first(payload, "negotiatedRate", "negotiated_rate"))
    is_negotiated = bool(payload.get("is_negotiated") or payload.get("hasNegotiatedRates")) or bool(
        negotiated and negotiated > 0)

    code = _first(payload, "serviceCode", "service_code", "code")
    name = _first(payload, "serviceName", "service_name", "description")
    currency = _first(payload, "currency", "currencyCode")
    if currency is None and isinstance(payload.get("totalCharges"), dict):
        currency = payload["totalCharges"].get("currencyCode")

    return CarrierRateQuote(
        carrier_id=account.carrier_id,
        carrier_type=account.carrier_type,
        service_code=str(code).strip() if code is not None else UNKNOWN_SERVICE_CODE,
        service_name=str(name).strip() if name is not None else "",
        total_charge=charge,
        currency=str(currency or "USD"),
        transit_days=_int_or_none(_first(payload, "transitDays", "transit_days")),
        is_negotiated=is_negotiated,
        published_rate=_money(_first(payload, "publishedRate", "published_rate")),
        account_name=account.account_name,
    )


def normalize_quotes(payloads: Any, account: CarrierAccount) -> tuple[CarrierRateQuote, ...]:
    if not isinstance(payloads, list):
        return ()
    out = []
    for p in payloads:
        q = normalize_quote(p, account)
        if q is not None:
            out.append(q)
    return tuple(out)


__all__ = ["UNKNOWN_SERVICE_CODE", "normalize_quote", "normalize_quotes"]
