# src/shipping_rate_analysis/io/overrides.py
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Union

from shipping_rate_analysis.models import (
    CarrierType,
    CustomCarrierServiceCode,
    CustomServiceMapping,
)
from shipping_rate_analysis.models.carrier import normalize_service_name
from shipping_rate_analysis.rules.carrier_registry import DEFAULT_REGISTRY, CarrierRegistry
from shipping_rate_analysis.rules.service_normalizer import ServiceNormalizer

logger = logging.getLogger(__name__)


class OverrideStore:
    """Per-user carrier code overrides and custom service-name mappings.

    Readers get snapshots: `registry_for` / `normalizer_for` build immutable
    objects, so later edits never leak into a run already in progress.
    """

    def __init__(self) -> None:
        self._codes: dict[tuple[str, CarrierType, str], CustomCarrierServiceCode] = {}
        self._mappings: dict[tuple[str, str], CustomServiceMapping] = {}
        self._lock = threading.Lock()

    # ---- carrier service codes ----

    def put_carrier_code(self, override: CustomCarrierServiceCode) -> None:
        with self._lock:
            self._codes[override.key] = override

    def remove_carrier_code(self, user_id: str, carrier_type: Union[str, CarrierType], service_code: str) -> bool:
        key = (user_id, CarrierType.parse(carrier_type), service_code)
        with self._lock:
            return self._codes.pop(key, None) is not None

    def carrier_codes(self, user_id: str, *, active_only: bool = True) -> list[CustomCarrierServiceCode]:
        with self._lock:
            rows = [o for k, o in self._codes.items() if k[0] == user_id]
        return [o for o in rows if o.is_active or not active_only]

    # ---- service mappings ----

    def put_service_mapping(self, mapping: CustomServiceMapping) -> None:
        with self._lock:
            self._mappings[(mapping.user_id, mapping.normalized_name)] = mapping

    def remove_service_mapping(self, user_id: str, service_name: str) -> bool:
        key = (user_id, normalize_service_name(service_name))
        with self._lock:
            return self._mappings.pop(key, None) is not None

    def service_mappings(self, user_id: str, *, active_only: bool = True) -> list[CustomServiceMapping]:
        with self._lock:
            rows = [m for k, m in self._mappings.items() if k[0] == user_id]
        return [m for m in rows if m.is_active or not active_only]

    # ---- consumers ----

    def registry_for(self, user_id: Optional[str], base: CarrierRegistry = DEFAULT_REGISTRY) -> CarrierRegistry:
        if not user_id:
            return base
        return base.with_overrides(self.carrier_codes(user_id))

    def normalizer_for(self, user_id: Optional[str], **kwargs: Any) -> ServiceNormalizer:
        mappings = self.service_mappings(user_id) if user_id else []
        return ServiceNormalizer(mappings, **kwargs)

    # ---- JSON persistence ----

    def to_json(self) -> dict[str, Any]:
        with self._lock:
            codes = list(self._codes.values())
            mappings = list(self._mappings.values())
        return {
            "carrier_service_codes": [
                {
                    "user_id": o.user_id,
                    "carrier_type": o.carrier_type.value,
                    "service_code": o.service_code,
                    "service_name": o.service_name,
                    "universal_category": o.universal_category,
                    "is_available": o.is_available,
                    "is_active": o.is_active,
                }
                for o in codes
            ],
            "service_mappings": [
                {
                    "user_id": m.user_id,
                    "service_name": m.service_name,
                    "universal_category": m.universal_category,
                    "confidence": m.confidence,
                    "is_residential": m.is_residential,
                    "is_active": m.is_active,
                }
                for m in mappings
            ],
        }

    def save(self, path: Union[str, Path]) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_json(), indent=2), encoding="utf-8")
        return p

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "OverrideStore":
        store = cls()
        for row in data.get("carrier_service_codes", []) or []:
            store.put_carrier_code(CustomCarrierServiceCode(
                user_id=str(row["user_id"]),
                carrier_type=CarrierType.parse(row["carrier_type"]),
                service_code=str(row["service_code"]),
                service_name=str(row.get("service_name", "")),
                universal_category=str(row["universal_category"]).strip().upper(),
                is_available=bool(row.get("is_available", True)),
                is_active=bool(row.get("is_active", True)),
            ))
        for row in data.get("service_mappings", []) or []:
            store.put_service_mapping(CustomServiceMapping(
                user_id=str(row["user_id"]),
                service_name=str(row["service_name"]),
                universal_category=str(row["universal_category"]).strip().upper(),
                confidence=float(row.get("confidence", 0.9)),
                is_residential=row.get("is_residential"),
                is_active=bool(row.get("is_active", True)),
            ))
        return store

    @classmethod
    def load(cls, path: Union[str, Path]) -> "OverrideStore":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(p)
        store = cls.from_json(json.loads(p.read_text(encoding="utf-8")))
        logger.debug("Loaded overrides from %s", p)
        return store


__all__ = ["OverrideStore"]
