from shipping_rate_analysis.models import CarrierType, CustomCarrierServiceCode
from shipping_rate_analysis.rules.carrier_registry import (
    DEFAULT_REGISTRY,
    STATIC_SERVICE_MAPPINGS,
    CarrierRegistry,
)


def _override(code, category, name="Custom", *, carrier=CarrierType.UPS, available=True, active=True):
    return CustomCarrierServiceCode(
        user_id="u1",
        carrier_type=carrier,
        service_code=code,
        service_name=name,
        universal_category=category,
        is_available=available,
        is_active=active,
    )


def test_static_round_trip_for_every_entry():
    for carrier, entries in STATIC_SERVICE_MAPPINGS.items():
        for entry in entries:
            if not entry.is_available:
                continue
            code = DEFAULT_REGISTRY.code_for(carrier, entry.universal_category)
            assert DEFAULT_REGISTRY.category_for(carrier, code) == entry.universal_category


def test_ups_ground_is_03():
    assert DEFAULT_REGISTRY.code_for("UPS", "GROUND") == "03"
    assert DEFAULT_REGISTRY.name_for(CarrierType.UPS, "ground") == "UPS Ground"
    assert DEFAULT_REGISTRY.code_for("fedex", "GROUND") == "FEDEX_GROUND"


def test_codes_to_request_puts_primary_first_without_duplicates():
    codes = DEFAULT_REGISTRY.codes_to_request("UPS", "GROUND")
    assert codes[0] == "03"
    assert len(codes) == len(set(codes))
    assert set(codes) == set(DEFAULT_REGISTRY.available_codes("UPS"))


def test_codes_to_request_without_primary_lists_every_available_code():
    assert DEFAULT_REGISTRY.codes_to_request("DHL", None) == DEFAULT_REGISTRY.available_codes("DHL")


def test_override_shadows_static_entry_for_all_lookups():
    reg = DEFAULT_REGISTRY.with_overrides([_override("03", "GROUND", "UPS Ground (Negotiated)")])

    assert reg.code_for("UPS", "GROUND") == "03"
    assert reg.name_for("UPS", "GROUND") == "UPS Ground (Negotiated)"
    assert reg.category_for("UPS", "03") == "GROUND"
    # base registry untouched
    assert DEFAULT_REGISTRY.name_for("UPS", "GROUND") == "UPS Ground"


def test_override_can_recategorize_a_static_code():
    reg = CarrierRegistry(overrides=[_override("03", "THREE_DAY", "Slow Ground")])

    assert reg.category_for("UPS", "03") == "THREE_DAY"
    assert reg.code_for("UPS", "THREE_DAY") == "03"
    # the static (UPS, 03) GROUND row is shadowed entirely
    assert reg.code_for("UPS", "GROUND") is None


def test_disabled_code_stays_decodable_but_not_requestable():
    reg = CarrierRegistry(overrides=[_override("01", "OVERNIGHT", "UPS Next Day Air", available=False)])

    assert "01" not in reg.available_codes("UPS")
    assert reg.code_for("UPS", "OVERNIGHT") is None
    assert reg.category_for("UPS", "01") == "OVERNIGHT"
    assert reg.is_code_available("UPS", "01") is False
    assert reg.is_code_available("UPS", "03") is True
    assert reg.is_code_available("UPS", "ZZ") is None


def test_inactive_overrides_and_later_duplicates_are_ignored():
    reg = CarrierRegistry(overrides=[
        _override("03", "OVERNIGHT", "inactive", active=False),
        _override("03", "TWO_DAY", "first"),
        _override("03", "THREE_DAY", "second"),
    ])
    assert reg.category_for("UPS", "03") == "TWO_DAY"
    assert len(reg.overrides) == 2


def test_new_code_override_is_listed_before_static_codes():
    reg = CarrierRegistry(overrides=[_override("GND_X", "GROUND", carrier=CarrierType.FEDEX)])
    assert reg.code_for("FEDEX", "GROUND") == "GND_X"
    assert reg.available_codes("FEDEX")[0] == "GND_X"
    assert "FEDEX_GROUND" in reg.available_codes("FEDEX")
