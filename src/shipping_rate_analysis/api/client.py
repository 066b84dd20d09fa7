# src/shipping_rate_analysis/api/client.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Protocol

from shipping_rate_analysis.api.normalize import normalize_quotes
from shipping_rate_analysis.models import QuoteRequest, QuoteResponse


class QuoteClient(Protocol):
    def quote(self, request: QuoteRequest) -> QuoteResponse:
        ...


@dataclass
class ReplayQuoteClient:
    """Replay client serving recorded quote responses from a single JSON file.

    The file holds one object or a list of objects shaped like::

        {"carrier_id": "ups-main", "tracking_id": "1Z...", "shipment_id": 3,
         "success": true, "rates": [{"serviceCode": "03", "totalCharges": 25.10}],
         "error": null}

    Entries are indexed by (carrier_id, tracking_id) and (carrier_id,
    shipment_id); either key may be omitted. A request with no recorded entry
    gets a successful, empty response.
    """

    replay_file: Path
    _index: dict[tuple[str, str], Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")
        if not self.replay_file.is_file():
            raise ValueError(
                "ReplayQuoteClient requires a single JSON file containing one or more recorded responses."
            )

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        entries: List[Any] = raw if isinstance(raw, list) else [raw]

        idx: dict[tuple[str, str], Any] = {}
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("carrier_id"):
                continue
            for key in self._keys_for(entry):
                idx[key] = entry
        self._index = idx

    @staticmethod
    def _keys_for(entry: dict[str, Any]) -> List[tuple[str, str]]:
        carrier_id = str(entry["carrier_id"])
        keys: List[tuple[str, str]] = []
        tn = entry.get("tracking_id")
        if tn:
            keys.append((carrier_id, f"tn:{tn}"))
        sid = entry.get("shipment_id")
        if sid is not None:
            keys.append((carrier_id, f"id:{int(sid)}"))
        return keys

    def _lookup(self, request: QuoteRequest) -> Optional[dict[str, Any]]:
        cid = request.account.carrier_id
        if request.tracking_id:
            hit = self._index.get((cid, f"tn:{request.tracking_id}"))
            if hit is not None:
                return hit
        return self._index.get((cid, f"id:{request.shipment_id}"))

    def __len__(self) -> int:
        return len({id(v) for v in self._index.values()})

    def quote(self, request: QuoteRequest) -> QuoteResponse:
        entry = self._lookup(request)
        if entry is None:
            return QuoteResponse(success=True, rates=())
        if entry.get("success") is False:
            return QuoteResponse(success=False, rates=(), error=str(entry.get("error") or "Unknown error"))
        return QuoteResponse(success=True, rates=normalize_quotes(entry.get("rates") or [], request.account))


__all__ = ["QuoteClient", "ReplayQuoteClient"]
