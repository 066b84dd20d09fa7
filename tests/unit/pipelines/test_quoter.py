from decimal import Decimal

from shipping_rate_analysis.errors import QuoteError
from shipping_rate_analysis.models import (
    CarrierAccount,
    CarrierRateQuote,
    CarrierType,
    OutcomeStatus,
    QuoteResponse,
    ShipmentRecord,
)
from shipping_rate_analysis.pipelines.quoter import (
    NO_ENABLED_SERVICES,
    FailureReport,
    QuoteJob,
    Quoter,
    categorize_error,
)
from shipping_rate_analysis.rules.carrier_registry import DEFAULT_REGISTRY

UPS = CarrierAccount("ups-main", "UPS Main", CarrierType.UPS)
FEDEX = CarrierAccount("fx-main", "FedEx Main", CarrierType.FEDEX)
DHL = CarrierAccount("dhl-main", "DHL Main", CarrierType.DHL)


def _shipment(sid=1):
    return ShipmentRecord(sid, f"TN{sid}", "UPS Ground", None, 5.0, 12.0, 12.0, 6.0, "10001", "94105")


def _quote(acct, code, amount):
    return CarrierRateQuote(acct.carrier_id, acct.carrier_type, code, code, Decimal(amount))


class ScriptedClient:
    """Per-carrier_id behaviour: a QuoteResponse, or an exception to raise."""

    def __init__(self, script):
        self.script = script
        self.requests = []

    def quote(self, request):
        self.requests.append(request)
        behaviour = self.script[request.account.carrier_id]
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour


def test_one_failing_account_does_not_hide_the_others():
    client = ScriptedClient({
        "ups-main": QuoteResponse(True, (_quote(UPS, "03", "25.10"),)),
        "fx-main": QuoteError("rate limit exceeded (429)", status_code=429),
        "dhl-main": RuntimeError("socket timed out"),
    })
    outs = Quoter(client, DEFAULT_REGISTRY, max_workers=3).quote_shipment(
        QuoteJob(_shipment(), "GROUND"), [UPS, FEDEX, DHL])

    assert [o.account.carrier_id for o in outs] == ["ups-main", "fx-main", "dhl-main"]
    assert [o.status for o in outs] == [OutcomeStatus.SUCCESS, OutcomeStatus.ERROR, OutcomeStatus.ERROR]
    assert outs[1].error_category == "rate_limit"
    assert outs[2].error_category == "timeout"


def test_empty_rates_distinct_from_error():
    client = ScriptedClient({
        "ups-main": QuoteResponse(True, ()),
        "fx-main": QuoteResponse(False, (), "Invalid postal code"),
    })
    outs = Quoter(client, DEFAULT_REGISTRY).quote_shipment(QuoteJob(_shipment(), "GROUND"), [UPS, FEDEX])
    assert outs[0].status == OutcomeStatus.EMPTY
    assert outs[1].status == OutcomeStatus.ERROR
    assert outs[1].error == "Invalid postal code"


def test_requested_codes_primary_first_and_filtered_by_account():
    narrow = CarrierAccount("ups-2", "Ground only", CarrierType.UPS, enabled_services=("03", "02"))
    client = ScriptedClient({"ups-main": QuoteResponse(True), "ups-2": QuoteResponse(True)})
    Quoter(client, DEFAULT_REGISTRY).quote_shipment(
        QuoteJob(_shipment(), "GROUND", is_residential=True), [UPS, narrow])

    by_acct = {r.account.carrier_id: r for r in client.requests}
    assert by_acct["ups-main"].requested_service_codes[0] == "03"
    assert by_acct["ups-2"].requested_service_codes == ("03", "02")
    assert by_acct["ups-2"].is_residential is True


def test_account_without_enabled_codes_is_skipped_and_inactive_ignored():
    nothing = CarrierAccount("ups-x", "Nothing", CarrierType.UPS, enabled_services=("ZZ",))
    off = CarrierAccount("ups-off", "Off", CarrierType.UPS, is_active=False)
    client = ScriptedClient({})
    outs = Quoter(client, DEFAULT_REGISTRY).quote_shipment(QuoteJob(_shipment(), "GROUND"), [nothing, off])

    assert len(outs) == 1
    assert outs[0].status == OutcomeStatus.SKIPPED
    assert outs[0].error == NO_ENABLED_SERVICES
    assert client.requests == []


def test_quote_all_keys_by_shipment():
    client = ScriptedClient({"ups-main": QuoteResponse(True, (_quote(UPS, "03", "9.99"),))})
    out = Quoter(client, DEFAULT_REGISTRY).quote_all(
        [QuoteJob(_shipment(1), "GROUND"), QuoteJob(_shipment(2), "GROUND")], [UPS])
    assert sorted(out) == [1, 2]
    assert Quoter(client, DEFAULT_REGISTRY).quote_all([], [UPS]) == {}


def test_categorize_error():
    assert categorize_error("anything", 429) == "rate_limit"
    assert categorize_error("anything", 401) == "auth"
    assert categorize_error("Request timed out") == "timeout"
    assert categorize_error("read ECONNRESET") == "timeout"
    assert categorize_error("Authentication failed") == "auth"
    assert categorize_error("weird") == "other"
    assert categorize_error(None) == "other"


def test_failure_report_counts_per_account():
    client = ScriptedClient({
        "ups-main": QuoteResponse(True, (_quote(UPS, "03", "1"),)),
        "fx-main": QuoteError("auth rejected", status_code=401),
    })
    outs = Quoter(client, DEFAULT_REGISTRY).quote_shipment(QuoteJob(_shipment(), "GROUND"), [UPS, FEDEX])
    report = FailureReport().extend(outs).to_dict()

    assert report["requests"] == 2
    assert report["successes"] == 1
    assert report["errors"] == 1
    assert report["success_rate"] == 50.0
    assert report["by_category"]["auth"] == 1
    assert report["by_account"]["fx-main"]["auth"] == 1
    assert report["by_account"]["ups-main"]["success"] == 1


def test_error_category_carried_on_quote_error_wins_over_message():
    client = ScriptedClient({
        "ups-main": QuoteError("connection error calling quoting service: reset", category="timeout"),
        "fx-main": QuoteError("quoting service error (500): boom", status_code=500),
    })
    outs = Quoter(client, DEFAULT_REGISTRY).quote_shipment(QuoteJob(_shipment(), "GROUND"), [UPS, FEDEX])
    assert [o.error_category for o in outs] == ["timeout", "other"]
