import datetime as dt
import json
from pathlib import Path

import pytest

from shipping_rate_analysis.io.store import (
    STATUS_COMPLETED,
    STATUS_PROCESSING,
    AnalysisRecord,
    InMemoryAnalysisStore,
    JsonAnalysisStore,
)

T0 = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def _rec(aid, *, file_name="ship.csv", total=10, user=None, at=T0, status=STATUS_PROCESSING):
    return AnalysisRecord(aid, file_name, total, status, user, at, at)


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryAnalysisStore()
    return JsonAnalysisStore(tmp_path / "analyses")


def test_insert_get_update(store):
    store.insert(_rec("a1"))
    assert store.get("a1").status == STATUS_PROCESSING

    updated = store.update("a1", status=STATUS_COMPLETED, payload={"totals": {"x": "1"}})
    assert updated.is_complete
    assert store.get("a1").payload == {"totals": {"x": "1"}}
    assert store.get("missing") is None


def test_insert_twice_is_rejected(store):
    store.insert(_rec("a1"))
    with pytest.raises(KeyError):
        store.insert(_rec("a1"))


def test_find_recent_duplicate_matches_name_count_window_and_user(store):
    store.insert(_rec("old", at=T0 - dt.timedelta(minutes=30)))
    store.insert(_rec("new", at=T0))
    store.insert(_rec("other-count", total=11, at=T0))
    store.insert(_rec("mine", user="u1", at=T0 - dt.timedelta(minutes=1)))

    since = T0 - dt.timedelta(minutes=5)
    assert store.find_recent_duplicate("ship.csv", 10, since).analysis_id == "new"
    assert store.find_recent_duplicate("ship.csv", 10, since, "u1").analysis_id == "mine"
    assert store.find_recent_duplicate("ship.csv", 12, since) is None
    assert store.find_recent_duplicate("other.csv", 10, since) is None


def test_json_store_round_trips_and_skips_garbage(tmp_path: Path):
    root = tmp_path / "analyses"
    s = JsonAnalysisStore(root)
    s.insert(_rec("a1"))
    (root / "broken.json").write_text("{not json", encoding="utf-8")

    data = json.loads((root / "a1.json").read_text(encoding="utf-8"))
    assert data["created_at"] == T0.isoformat()
    assert s.find_recent_duplicate("ship.csv", 10, T0 - dt.timedelta(seconds=1)).analysis_id == "a1"
    assert not list(root.glob("*.tmp"))


def test_json_store_update_unknown_raises(tmp_path: Path):
    with pytest.raises(KeyError):
        JsonAnalysisStore(tmp_path).update("nope", status=STATUS_COMPLETED)
