import datetime as dt

from shipping_rate_analysis.io.store import STATUS_COMPLETED, STATUS_PROCESSING, InMemoryAnalysisStore
from shipping_rate_analysis.pipelines.finalizer import Finalizer, finalize_analysis


class Clock:
    def __init__(self):
        self.now = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += dt.timedelta(**kw)


def test_refinalize_within_window_returns_same_id():
    store, clock = InMemoryAnalysisStore(), Clock()
    first = finalize_analysis(store, "ship.csv", 100, {"n": 1}, clock=clock)
    clock.advance(seconds=60)
    second = finalize_analysis(store, "ship.csv", 100, {"n": 1}, clock=clock)

    assert first.created and not first.duplicate
    assert second.duplicate
    assert second.analysis_id == first.analysis_id
    assert len(store) == 1


def test_outside_window_or_different_count_creates_new():
    store, clock = InMemoryAnalysisStore(), Clock()
    fin = Finalizer(store, window_seconds=300, clock=clock)
    a = fin.finalize("ship.csv", 100, {})
    b = fin.finalize("ship.csv", 101, {})
    clock.advance(seconds=301)
    c = fin.finalize("ship.csv", 100, {})

    assert len({a.analysis_id, b.analysis_id, c.analysis_id}) == 3
    assert len(store) == 3


def test_incomplete_duplicate_is_completed_in_place():
    store, clock = InMemoryAnalysisStore(), Clock()
    fin = Finalizer(store, clock=clock)
    started = fin.begin("ship.csv", 10, user_id="u1")
    assert store.get(started.analysis_id).status == STATUS_PROCESSING

    clock.advance(seconds=30)
    done = fin.finalize("ship.csv", 10, {"totals": {}}, user_id="u1")

    assert done.analysis_id == started.analysis_id
    assert done.updated
    rec = store.get(done.analysis_id)
    assert rec.status == STATUS_COMPLETED
    assert rec.payload == {"totals": {}}
    assert rec.updated_at == clock.now
    assert len(store) == 1


def test_begin_reuses_recent_analysis():
    store, clock = InMemoryAnalysisStore(), Clock()
    fin = Finalizer(store, clock=clock)
    a = fin.begin("ship.csv", 10)
    b = fin.begin("ship.csv", 10)
    assert b.duplicate and b.analysis_id == a.analysis_id


def test_duplicates_are_scoped_to_user():
    store, clock = InMemoryAnalysisStore(), Clock()
    fin = Finalizer(store, clock=clock)
    a = fin.finalize("ship.csv", 10, {}, user_id="u1")
    b = fin.finalize("ship.csv", 10, {}, user_id="u2")
    assert a.analysis_id != b.analysis_id
