from __future__ import annotations

from decimal import Decimal
from pathlib import Path
import json

from shipping_rate_analysis import AnalysisProcessor
from shipping_rate_analysis.api.client import ReplayQuoteClient
from shipping_rate_analysis.io.accounts import load_accounts
from shipping_rate_analysis.io.overrides import OverrideStore
from shipping_rate_analysis.io.store import JsonAnalysisStore
from shipping_rate_analysis.models import CustomServiceMapping, OrphanReason
from shipping_rate_analysis.rules.markup import MarkupConfig

CSV = (
    "Tracking Number,Service,Weight,Origin Zip,Destination Zip,Cost\n"
    "1Z001,UPS Ground,5,10001,94105,30.00\n"
    "1Z002,Pallet Freight,5,10001,94105,30.00\n"
)


def _files(tmp_path: Path):
    src = tmp_path / "history.csv"
    src.write_text(CSV, encoding="utf-8")

    accounts = tmp_path / "accounts.json"
    accounts.write_text(json.dumps({"accounts": [
        {"carrier_id": "ups-main", "account_name": "UPS Main", "carrier_type": "UPS"},
        {"carrier_id": "fx-main", "account_name": "FedEx Main", "carrier_type": "FEDEX"},
    ]}), encoding="utf-8")

    quotes = tmp_path / "quotes.json"
    quotes.write_text(json.dumps([
        {"carrier_id": cid, "shipment_id": sid, "rates": [{"serviceCode": code, "totalCharges": price}]}
        for sid in (1, 2)
        for cid, code, price in (("ups-main", "03", 25.10), ("fx-main", "FEDEX_GROUND", 23.40))
    ]), encoding="utf-8")
    return src, load_accounts(accounts), ReplayQuoteClient(quotes)


def test_low_confidence_service_is_orphaned_without_user_mapping(tmp_path: Path):
    src, accounts, client = _files(tmp_path)
    proc = AnalysisProcessor(client=client, accounts=accounts, min_service_confidence=0.5,
                             markup=MarkupConfig.global_markup(10))

    result = proc.process(src)

    assert result.processed_count == 1
    assert [(o.shipment_id, o.reason) for o in result.orphans] == [(2, OrphanReason.UNCLASSIFIED_SERVICE)]
    row = result.resolution.per_shipment[0]
    assert row.final_price == Decimal("25.74")
    assert result.resolution.best_account.carrier_id == "fx-main"


def test_user_mapping_and_service_markup_flow_into_saved_analysis(tmp_path: Path):
    src, accounts, client = _files(tmp_path)
    overrides = OverrideStore()
    overrides.put_service_mapping(CustomServiceMapping("u1", "Pallet Freight", "GROUND"))
    overrides_file = overrides.save(tmp_path / "overrides.json")

    loaded = OverrideStore.load(overrides_file)
    store = JsonAnalysisStore(tmp_path / "analyses")
    proc = AnalysisProcessor(
        client=client,
        accounts=accounts,
        registry=loaded.registry_for("u1"),
        normalizer=loaded.normalizer_for("u1"),
        markup=MarkupConfig.per_service({"GROUND": 5}),
        min_service_confidence=0.5,
        store=store,
        user_id="u1",
    )

    first = proc.process(src)
    again = proc.process(src)

    assert first.orphans == []
    assert [r.final_price for r in first.resolution.per_shipment] == [Decimal("24.57")] * 2
    assert first.resolution.totals.total_savings == Decimal("10.86")
    assert again.duplicate and again.analysis_id == first.analysis_id

    record = store.get(first.analysis_id)
    assert record.user_id == "u1"
    assert record.payload["file_name"] == "history.csv"
    assert record.payload["account_coverage"] == {"ups-main": 2, "fx-main": 2}
    assert len(list((tmp_path / "analyses").glob("*.json"))) == 1
