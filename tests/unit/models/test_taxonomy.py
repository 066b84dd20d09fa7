from decimal import Decimal

import pytest

from shipping_rate_analysis.models import (
    CarrierAccount,
    CarrierType,
    CustomServiceCategory,
    ServiceTaxonomy,
    UniversalServiceCategory,
    UNIVERSAL_SERVICES,
)
from shipping_rate_analysis.models.rates import round_money, to_money
from shipping_rate_analysis.models.taxonomy import display_name_for


def test_every_category_has_info():
    assert set(UNIVERSAL_SERVICES) == {c.value for c in UniversalServiceCategory}
    assert display_name_for("TWO_DAY_MORNING") == "2-Day Morning"
    assert UNIVERSAL_SERVICES["INTERNATIONAL_SAVER"].is_international


def test_category_parse_accepts_loose_spellings():
    assert UniversalServiceCategory.parse("two-day") is UniversalServiceCategory.TWO_DAY
    assert UniversalServiceCategory.parse("overnight saver") is UniversalServiceCategory.OVERNIGHT_SAVER
    with pytest.raises(ValueError):
        UniversalServiceCategory.parse("teleport")


def test_custom_categories_layer_on_top_without_touching_builtins():
    tax = ServiceTaxonomy([CustomServiceCategory("freight_ltl", "LTL Freight", typical_transit_days="3-7")])
    assert "FREIGHT_LTL" in tax
    assert tax.display_name("freight_ltl") == "LTL Freight"
    assert "FREIGHT_LTL" not in UNIVERSAL_SERVICES
    assert tax.categories()[-1] == "FREIGHT_LTL"


def test_custom_category_cannot_reuse_builtin_key():
    with pytest.raises(ValueError):
        ServiceTaxonomy([CustomServiceCategory("ground", "My Ground")])


def test_carrier_type_parse():
    assert CarrierType.parse("FedEx") is CarrierType.FEDEX
    assert CarrierType.parse(" ups ") is CarrierType.UPS
    with pytest.raises(ValueError):
        CarrierType.parse("USPS")


def test_account_enabled_services():
    open_acct = CarrierAccount("ups-1", "Main", CarrierType.UPS)
    narrow = CarrierAccount("ups-2", "Ground only", CarrierType.UPS, enabled_services=("03",))
    assert open_acct.allows("01")
    assert narrow.allows("03") and not narrow.allows("01")
    assert narrow.display_name == "UPS – Ground only"


def test_money_helpers():
    assert to_money("$1,025.10") == Decimal("1025.10")
    assert to_money(25.1) == Decimal("25.1")
    assert to_money("") is None
    assert round_money(Decimal("2.345")) == Decimal("2.35")
