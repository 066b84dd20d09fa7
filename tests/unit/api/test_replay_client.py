import json
from decimal import Decimal
from pathlib import Path

import pytest

from shipping_rate_analysis.api.client import ReplayQuoteClient
from shipping_rate_analysis.models import CarrierAccount, CarrierType, QuoteRequest

UPS = CarrierAccount("ups-main", "UPS Main", CarrierType.UPS)


def _req(shipment_id=1, tracking_id="1Z001", account=UPS):
    return QuoteRequest(
        shipment_id=shipment_id,
        tracking_id=tracking_id,
        account=account,
        origin_zip="10001",
        dest_zip="94105",
        weight=5.0,
        length=12.0,
        width=12.0,
        height=6.0,
        requested_service_codes=("03",),
    )


def _write(tmp_path: Path, data) -> Path:
    p = tmp_path / "quotes.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


def test_lookup_by_tracking_then_shipment_id(tmp_path: Path):
    p = _write(tmp_path, [
        {"carrier_id": "ups-main", "tracking_id": "1Z001",
         "rates": [{"serviceCode": "03", "totalCharges": 25.10}]},
        {"carrier_id": "ups-main", "shipment_id": 2,
         "rates": [{"serviceCode": "03", "totalCharges": 9.00}]},
    ])
    client = ReplayQuoteClient(p)

    assert len(client) == 2
    assert client.quote(_req()).rates[0].total_charge == Decimal("25.1")
    assert client.quote(_req(2, None)).rates[0].total_charge == Decimal("9.0")


def test_unrecorded_request_is_empty_success(tmp_path: Path):
    client = ReplayQuoteClient(_write(tmp_path, {"carrier_id": "other", "shipment_id": 1, "rates": []}))
    resp = client.quote(_req())
    assert resp.success is True
    assert resp.rates == ()


def test_recorded_failure(tmp_path: Path):
    client = ReplayQuoteClient(_write(tmp_path, [
        {"carrier_id": "ups-main", "shipment_id": 1, "success": False, "error": "rate limit exceeded"},
    ]))
    resp = client.quote(_req(tracking_id=None))
    assert resp.success is False
    assert resp.error == "rate limit exceeded"


def test_rejects_missing_or_directory(tmp_path: Path):
    with pytest.raises(ValueError):
        ReplayQuoteClient(tmp_path / "nope.json")
    with pytest.raises(ValueError):
        ReplayQuoteClient(tmp_path)
