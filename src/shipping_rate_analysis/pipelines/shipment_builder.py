# src/shipping_rate_analysis/pipelines/shipment_builder.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from shipping_rate_analysis.models import OrphanReason, OrphanedShipment, ShipmentRecord
from shipping_rate_analysis.rules.residential import parse_residential_value
from shipping_rate_analysis.rules.validation import (
    is_blank,
    validate_cost,
    validate_dimension,
    validate_state,
    validate_weight,
    validate_zip,
)

_TRAILING_ZERO_RE = re.compile(r"^\d+\.0+$")
_SCIENTIFIC_RE = re.compile(r"^\d+(\.\d+)?[eE]\+?\d+$")


def _clean_tracking_id(v: Any) -> Optional[str]:
    """Return a clean string tracking id (no decimals/scientific)."""
    if is_blank(v):
        return None
    s = str(v).strip()
    if s.lower() in ("nan", "none"):
        return None
    # Spreadsheet numerics: 123456789012.0, 1.2345E+11
    if _TRAILING_ZERO_RE.match(s):
        return s.split(".", 1)[0]
    if _SCIENTIFIC_RE.match(s):
        return str(int(Decimal(s)))
    return s


def _text(v: Any) -> Optional[str]:
    return None if is_blank(v) else str(v).strip()


@dataclass
class BuildResult:
    shipments: list[ShipmentRecord] = field(default_factory=list)
    orphans: list[OrphanedShipment] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.shipments) + len(self.orphans)


class ShipmentBuilder:
    """Project upload rows through a header map into validated ShipmentRecords.

    Required failures (zips, weight, oversize dimensions, malformed cost)
    reject the row into the orphan ledger. Optional failures become warnings
    on the record with defaults substituted.
    """

    def __init__(
        self,
        header_map: Mapping[str, str],
        *,
        origin_zip_override: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.header_map = dict(header_map)
        self.origin_zip_override = origin_zip_override
        self.logger = logger or logging.getLogger(__name__)

    def _get(self, row: Mapping[str, Any], field_name: str) -> Any:
        header = self.header_map.get(field_name)
        if not header:
            return None
        return row.get(header)

    def build_one(self, shipment_id: int, row: Mapping[str, Any]) -> ShipmentRecord | OrphanedShipment:
        errors: list[str] = []
        warnings: list[str] = []

        tracking_id = _clean_tracking_id(self._get(row, "tracking_id"))
        service = _text(self._get(row, "service")) or ""

        origin_raw = self.origin_zip_override if self.origin_zip_override else self._get(row, "origin_zip")
        origin = validate_zip(origin_raw)
        if not origin.ok:
            errors.append(f"origin_zip: {origin.error}")
        dest = validate_zip(self._get(row, "dest_zip"))
        if not dest.ok:
            errors.append(f"dest_zip: {dest.error}")

        weight = validate_weight(self._get(row, "weight"))
        if not weight.ok:
            errors.append(f"weight: {weight.error}")

        dims: dict[str, float] = {}
        for name in ("length", "width", "height"):
            raw = self._get(row, name)
            check = validate_dimension(raw, name)
            if not check.ok:
                errors.append(f"{name}: {check.error}")
                continue
            if is_blank(raw):
                warnings.append(f"{name}: missing, defaulted to {check.value:g}in")
            dims[name] = check.value

        cost = None
        cost_raw = self._get(row, "cost")
        if is_blank(cost_raw):
            warnings.append("cost: missing cost data, savings cannot be calculated")
        else:
            c = validate_cost(cost_raw)
            if c.ok:
                cost = c.value
            else:
                errors.append(f"cost: {c.error}")

        states: dict[str, Optional[str]] = {}
        for name in ("shipper_state", "recipient_state"):
            raw = _text(self._get(row, name))
            check = validate_state(raw)
            if not check.ok:
                warnings.append(f"{name}: {check.error}")
                states[name] = raw
            else:
                states[name] = check.value

        shipper_city = _text(self._get(row, "shipper_city"))
        recipient_city = _text(self._get(row, "recipient_city"))
        if not shipper_city and not recipient_city:
            warnings.append("addresses: city information missing, may affect rate accuracy")

        resi_raw = self._get(row, "is_residential")
        is_residential = None if is_blank(resi_raw) else parse_residential_value(resi_raw)

        if errors:
            self.logger.debug("Row %d rejected: %s", shipment_id, "; ".join(errors))
            return OrphanedShipment(
                shipment_id=shipment_id,
                tracking_id=tracking_id,
                origin_zip=_text(origin_raw) or "",
                dest_zip=_text(self._get(row, "dest_zip")) or "",
                weight=weight.value if weight.ok else None,
                service=service,
                reason=OrphanReason.VALIDATION_FAILED,
                error="; ".join(errors),
                raw=dict(row),
            )

        return ShipmentRecord(
            shipment_id=shipment_id,
            tracking_id=tracking_id,
            service=service,
            carrier=_text(self._get(row, "carrier")),
            weight=weight.value,
            length=dims["length"],
            width=dims["width"],
            height=dims["height"],
            origin_zip=origin.value,
            dest_zip=dest.value,
            cost=cost,
            shipper_name=_text(self._get(row, "shipper_name")),
            shipper_address=_text(self._get(row, "shipper_address")),
            shipper_city=shipper_city,
            shipper_state=states["shipper_state"],
            recipient_name=_text(self._get(row, "recipient_name")),
            recipient_address=_text(self._get(row, "recipient_address")),
            recipient_city=recipient_city,
            recipient_state=states["recipient_state"],
            is_residential=is_residential,
            zone=_text(self._get(row, "zone")),
            ship_date=_text(self._get(row, "ship_date")),
            delivery_date=_text(self._get(row, "delivery_date")),
            raw=dict(row),
            warnings=tuple(warnings),
        )

    def build(self, rows: Sequence[Mapping[str, Any]], *, start: int = 1) -> BuildResult:
        """`start` is the 1-based id of rows[0], so batches keep upload positions."""
        result = BuildResult()
        for offset, row in enumerate(rows):
            built = self.build_one(start + offset, row)
            if isinstance(built, OrphanedShipment):
                result.orphans.append(built)
            else:
                result.shipments.append(built)
        return result


__all__ = ["BuildResult", "ShipmentBuilder"]
