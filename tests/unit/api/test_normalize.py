from decimal import Decimal

from shipping_rate_analysis.api.normalize import UNKNOWN_SERVICE_CODE, normalize_quote, normalize_quotes
from shipping_rate_analysis.models import CarrierAccount, CarrierType

ACCT = CarrierAccount("fx-1", "FedEx Main", CarrierType.FEDEX)


def test_camel_case_payload():
    q = normalize_quote({
        "serviceCode": "FEDEX_GROUND",
        "serviceName": "FedEx Ground",
        "totalCharges": {"monetaryValue": "23.40", "currencyCode": "USD"},
        "transitDays": "3",
        "negotiatedRate": 21.0,
    }, ACCT)

    assert q.carrier_id == "fx-1"
    assert q.carrier_type is CarrierType.FEDEX
    assert q.service_code == "FEDEX_GROUND"
    assert q.total_charge == Decimal("23.40")
    assert q.currency == "USD"
    assert q.transit_days == 3
    assert q.is_negotiated is True
    assert q.account_name == "FedEx Main"


def test_snake_case_payload_and_money_strings():
    q = normalize_quote({"service_code": "03", "rate_amount": "$1,025.10", "published_rate": "1100"}, ACCT)
    assert q.total_charge == Decimal("1025.10")
    assert q.published_rate == Decimal("1100")
    assert q.is_negotiated is False


def test_missing_code_and_bad_charge():
    assert normalize_quote({"cost": 5}, ACCT).service_code == UNKNOWN_SERVICE_CODE
    assert normalize_quote({"serviceCode": "03"}, ACCT) is None
    assert normalize_quote({"serviceCode": "03", "totalCharges": "n/a"}, ACCT) is None
    assert normalize_quote({"serviceCode": "03", "totalCharges": -1}, ACCT) is None
    assert normalize_quote("garbage", ACCT) is None


def test_normalize_quotes_skips_unusable_entries():
    out = normalize_quotes([{"serviceCode": "A", "cost": 1}, {"serviceCode": "B"}, None], ACCT)
    assert [q.service_code for q in out] == ["A"]
    assert normalize_quotes({"not": "a list"}, ACCT) == ()
