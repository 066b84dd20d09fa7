from pathlib import Path
import json

import pytest

from shipping_rate_analysis import cli
from shipping_rate_analysis.io.paths import STORE_DIRNAME

ENV_KEYS = (
    "QUOTE_SERVICE_URL",
    "QUOTE_SERVICE_TOKEN",
    "RATE_ANALYSIS_MARKUP_PERCENT",
    "RATE_ANALYSIS_BATCH_SIZE",
    "RATE_ANALYSIS_MAX_WORKERS",
    "RATE_ANALYSIS_DUPLICATE_WINDOW_SECONDS",
    "RATE_ANALYSIS_MAPPING_MODE",
)

CSV = (
    "Tracking Number,Service,Weight,Origin Zip,Destination Zip,Cost\n"
    "1Z001,UPS Ground,5,10001,94105,30.00\n"
    "1Z002,UPS Ground,5,10001,BAD,30.00\n"
)

ACCOUNTS = [
    {"carrier_id": "ups-main", "account_name": "UPS Main", "carrier_type": "UPS"},
    {"carrier_id": "fx-main", "account_name": "FedEx Main", "carrier_type": "FedEx"},
]

QUOTES = [
    {"carrier_id": "ups-main", "shipment_id": 1, "rates": [{"serviceCode": "03", "totalCharges": 25.10}]},
    {"carrier_id": "fx-main", "shipment_id": 1,
     "rates": [{"serviceCode": "FEDEX_GROUND", "totalCharges": 23.40}]},
]


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.setenv(k, "")
        monkeypatch.delenv(k)
    monkeypatch.chdir(tmp_path)

    src = tmp_path / "ship.csv"
    src.write_text(CSV, encoding="utf-8")
    accounts = tmp_path / "accounts.json"
    accounts.write_text(json.dumps(ACCOUNTS), encoding="utf-8")
    quotes = tmp_path / "quotes.json"
    quotes.write_text(json.dumps(QUOTES), encoding="utf-8")
    return src, accounts, quotes


def run_cli(args):
    return cli.main(args)


def test_cli_missing_input_returns_2(tmp_path: Path):
    code = run_cli([str(tmp_path / "nope.csv"), "--no-console"])
    assert code == 2


def test_cli_replay_happy_path_saves_analysis(workspace):
    src, accounts, quotes = workspace
    code = run_cli([
        str(src), "--no-console",
        "--accounts", str(accounts),
        "--quotes-replay", str(quotes),
        "--markup", "10",
    ])
    assert code == 0

    saved = list((src.parent / STORE_DIRNAME).glob("*.json"))
    assert len(saved) == 1
    payload = json.loads(saved[0].read_text(encoding="utf-8"))["payload"]
    assert payload["best_account"]["carrier_id"] == "fx-main"
    assert payload["shipments"][0]["final_price"] == "25.74"
    assert [o["reason"] for o in payload["orphans"]] == ["validation_failed"]
    assert src.with_suffix(".log").exists()


def test_cli_rerun_within_window_reuses_analysis(workspace):
    src, accounts, quotes = workspace
    args = [str(src), "--no-console", "--accounts", str(accounts), "--quotes-replay", str(quotes)]

    assert run_cli(args) == 0
    assert run_cli(args) == 0
    assert len(list((src.parent / STORE_DIRNAME).glob("*.json"))) == 1


def test_cli_use_api_without_env_returns_2(workspace):
    src, accounts, _ = workspace
    assert run_cli([str(src), "--no-console", "--accounts", str(accounts), "--use-api"]) == 2


def test_cli_strict_env_missing_returns_2(workspace):
    src, _, _ = workspace
    assert run_cli([str(src), "--no-console", "--strict-env"]) == 2


def test_cli_bad_accounts_file_returns_2(workspace, tmp_path: Path):
    src, _, quotes = workspace
    bad = tmp_path / "bad_accounts.json"
    bad.write_text(json.dumps([{"account_name": "no id", "carrier_type": "UPS"}]), encoding="utf-8")

    assert run_cli([str(src), "--no-console", "--accounts", str(bad), "--quotes-replay", str(quotes)]) == 2
    assert run_cli([str(src), "--no-console", "--accounts", str(tmp_path / "missing.json")]) == 2


def test_cli_missing_replay_file_returns_2(workspace, tmp_path: Path):
    src, accounts, _ = workspace
    code = run_cli([str(src), "--no-console", "--accounts", str(accounts),
                    "--quotes-replay", str(tmp_path / "nope.json")])
    assert code == 2


def test_cli_rejects_malformed_service_markup(workspace):
    src, _, _ = workspace
    with pytest.raises(SystemExit) as e:
        run_cli([str(src), "--no-console", "--service-markup", "GROUND"])
    assert e.value.code == 2


def test_cli_without_quote_source_orphans_everything(workspace):
    src, accounts, _ = workspace
    assert run_cli([str(src), "--no-console", "--accounts", str(accounts)]) == 0

    saved = list((src.parent / STORE_DIRNAME).glob("*.json"))
    payload = json.loads(saved[0].read_text(encoding="utf-8"))["payload"]
    assert payload["best_account"] is None
    assert {o["reason"] for o in payload["orphans"]} == {"validation_failed", "no_rates"}


def test_cli_empty_upload_returns_2(workspace):
    src, _, _ = workspace
    src.write_text("Tracking Number,Service,Weight\n", encoding="utf-8")
    assert run_cli([str(src), "--no-console"]) == 2


@pytest.mark.parametrize("value", ["GROUND=ten", "GROUND=nan"])
def test_cli_rejects_non_numeric_service_markup(workspace, value, capsys):
    src, _, _ = workspace
    with pytest.raises(SystemExit) as e:
        run_cli([str(src), "--no-console", "--service-markup", value])
    assert e.value.code == 2
    assert "markup percentage" in capsys.readouterr().err


def test_cli_service_markup_applies_per_category(workspace):
    src, accounts, quotes = workspace
    code = run_cli([str(src), "--no-console", "--accounts", str(accounts),
                    "--quotes-replay", str(quotes), "--service-markup", "GROUND=5"])
    assert code == 0

    saved = list((src.parent / STORE_DIRNAME).glob("*.json"))
    payload = json.loads(saved[0].read_text(encoding="utf-8"))["payload"]
    assert payload["markup"]["kind"] == "per_service"
    assert payload["shipments"][0]["final_price"] == "24.57"


def test_cli_overrides_without_user_id_are_reported(workspace, tmp_path: Path):
    src, accounts, quotes = workspace
    overrides = tmp_path / "overrides.json"
    overrides.write_text(json.dumps({"service_mappings": [
        {"user_id": "u1", "service_name": "UPS Ground", "universal_category": "TWO_DAY"},
    ]}), encoding="utf-8")

    code = run_cli([str(src), "--no-console", "--accounts", str(accounts),
                    "--quotes-replay", str(quotes), "--overrides", str(overrides)])
    assert code == 0
    assert "overrides are ignored" in src.with_suffix(".log").read_text(encoding="utf-8")

    saved = list((src.parent / STORE_DIRNAME).glob("*.json"))
    payload = json.loads(saved[0].read_text(encoding="utf-8"))["payload"]
    assert payload["shipments"][0]["category"] == "GROUND"
