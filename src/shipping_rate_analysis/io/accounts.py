# src/shipping_rate_analysis/io/accounts.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Union

from shipping_rate_analysis.models import CarrierAccount, CarrierType

logger = logging.getLogger(__name__)


def account_from_json(row: dict[str, Any]) -> CarrierAccount:
    """One account object: carrier_id, account_name, carrier_type,
    optional enabled_services (list of codes) and is_active."""
    try:
        carrier_id = str(row["carrier_id"]).strip()
        carrier_type = CarrierType.parse(row["carrier_type"])
    except KeyError as e:
        raise ValueError(f"Carrier account is missing {e.args[0]!r}: {row!r}") from None
    if not carrier_id:
        raise ValueError(f"Carrier account has an empty carrier_id: {row!r}")
    services = row.get("enabled_services") or ()
    return CarrierAccount(
        carrier_id=carrier_id,
        account_name=str(row.get("account_name") or carrier_id),
        carrier_type=carrier_type,
        enabled_services=tuple(str(c).strip() for c in services if str(c).strip()),
        is_active=bool(row.get("is_active", True)),
    )


def accounts_from_json(data: Union[dict[str, Any], Iterable[dict[str, Any]]]) -> list[CarrierAccount]:
    """Accepts a list of accounts or `{"accounts": [...]}`; carrier ids must be unique."""
    rows = data.get("accounts", []) if isinstance(data, dict) else data
    out: list[CarrierAccount] = []
    seen: set[str] = set()
    for row in rows or []:
        acct = account_from_json(row)
        if acct.carrier_id in seen:
            raise ValueError(f"Duplicate carrier_id in accounts: {acct.carrier_id}")
        seen.add(acct.carrier_id)
        out.append(acct)
    return out


def load_accounts(path: Union[str, Path]) -> list[CarrierAccount]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    accounts = accounts_from_json(json.loads(p.read_text(encoding="utf-8")))
    logger.debug("Loaded %d carrier account(s) from %s", len(accounts), p)
    return accounts


__all__ = ["account_from_json", "accounts_from_json", "load_accounts"]
