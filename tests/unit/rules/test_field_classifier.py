import pytest

from shipping_rate_analysis.io.schema import FieldDefinition
from shipping_rate_analysis.rules.field_classifier import (
    CONSERVATIVE,
    PERMISSIVE,
    FieldClassifier,
    as_header_map,
    classify_headers,
    missing_required,
    normalize_header,
    score_header,
)
from shipping_rate_analysis.io.schema import FIELDS_BY_NAME


HEADERS = [
    "Tracking Number",
    "Service",
    "Weight",
    "Origin Zip",
    "Destination Zip",
    "Cost",
    "Recipient Address",
]


def test_normalize_header_strips_separators_and_case():
    assert normalize_header("Origin_Zip Code") == "originzipcode"
    assert normalize_header(" ship-to ZIP ") == "shiptozip"
    assert normalize_header(None) == ""


def test_exact_headers_map_with_full_confidence():
    mappings = classify_headers(HEADERS)
    by_field = {m.field_name: m for m in mappings}

    assert by_field["tracking_id"].source_header == "Tracking Number"
    assert by_field["origin_zip"].source_header == "Origin Zip"
    assert by_field["dest_zip"].source_header == "Destination Zip"
    assert by_field["recipient_address"].source_header == "Recipient Address"
    assert all(m.confidence == 1.0 for m in mappings)
    assert missing_required(mappings) == []


def test_classification_is_deterministic_and_order_independent():
    first = classify_headers(HEADERS)
    again = classify_headers(HEADERS)
    shuffled = classify_headers(list(reversed(HEADERS)))
    assert first == again == shuffled


def test_strong_tier_scores_point_nine():
    assert score_header("Ship Method", FIELDS_BY_NAME["service"]) == 0.9
    mapping = as_header_map(classify_headers(["Ship Method"]))
    assert mapping == {"service": "Ship Method"}


def test_substring_containment_scores_point_eight_and_needs_lower_threshold():
    header = "Total Package Weight (lbs)"
    assert score_header(header, FIELDS_BY_NAME["weight"]) == 0.8

    assert "weight" not in as_header_map(classify_headers([header], CONSERVATIVE))
    assert "weight" not in as_header_map(classify_headers([header], PERMISSIVE))
    relaxed = FieldClassifier(min_confidence=0.8).classify([header])
    assert as_header_map(relaxed)["weight"] == header


def test_partial_overlap_is_capped_and_floored():
    s = score_header("Orig Zip", FIELDS_BY_NAME["origin_zip"])
    assert 0.3 <= s <= 0.6
    assert score_header("qqq", FIELDS_BY_NAME["origin_zip"]) == 0.0


def test_conservative_does_not_reuse_headers_permissive_does():
    defs = (
        FieldDefinition("first", "First", False, exact=("code",)),
        FieldDefinition("second", "Second", False, exact=("code",)),
    )
    conservative = FieldClassifier(CONSERVATIVE, definitions=defs).classify(["Code"])
    permissive = FieldClassifier(PERMISSIVE, definitions=defs).classify(["Code"])

    assert as_header_map(conservative) == {"first": "Code"}
    assert as_header_map(permissive) == {"first": "Code", "second": "Code"}


def test_missing_required_lists_unmapped_required_fields():
    mappings = classify_headers(["Tracking Number", "Service", "Destination Zip"])
    assert missing_required(mappings) == ["weight", "origin_zip"]


def test_suggest_returns_ranked_candidates():
    cands = FieldClassifier().suggest(["Weight", "Billed Weight", "Origin Zip"])["weight"]
    assert [c.header for c in cands][:2] == ["Weight", "Billed Weight"]
    assert cands[0].confidence >= cands[1].confidence


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        FieldClassifier("aggressive")
