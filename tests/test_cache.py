from __future__ import annotations

import pytest

from budget_monitoring.cache import (
    DEFAULT_TTL_SECONDS,
    CachedTransactionReader,
    TTLCache,
    default_ttl_from_env,
)
from budget_monitoring.models import StoredTransaction, WorkflowStage
from budget_monitoring.persistence import SqlTransactionStore
from tests.helpers.db import seed_records
from tests.helpers.records import make_record


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_entries_expire_after_ttl(clock: FakeClock):
    cache = TTLCache(10, clock=clock)
    cache.set("a", 1)
    clock.advance(9.9)
    assert cache.get("a") == 1
    clock.advance(0.1)
    assert cache.get("a") is None
    assert cache.get("a", "fallback") == "fallback"


def test_per_entry_ttl_overrides_default(clock: FakeClock):
    cache = TTLCache(10, clock=clock)
    cache.set("short", 1, ttl=1)
    cache.set("long", 2)
    clock.advance(5)
    assert cache.keys() == ["long"]
    assert len(cache) == 1


def test_zero_ttl_is_never_served(clock: FakeClock):
    cache = TTLCache(clock=clock)
    cache.set("k", "v", ttl=0)
    assert cache.get("k") is None


def test_negative_ttl_is_rejected(clock: FakeClock):
    with pytest.raises(ValueError):
        TTLCache(-1, clock=clock)
    with pytest.raises(ValueError):
        TTLCache(clock=clock).set("k", "v", ttl=-5)


def test_invalidate_by_key_and_prefix(clock: FakeClock):
    cache = TTLCache(clock=clock)
    for key in ("transactions:list:*:*", "transactions:summary", "users:1", "users:2"):
        cache.set(key, key)

    assert cache.invalidate(keys=["users:1", "missing"]) == 1
    assert cache.invalidate(prefixes=["transactions:"]) == 2
    assert cache.keys() == ["users:2"]


def test_delete_reports_whether_key_existed(clock: FakeClock):
    cache = TTLCache(clock=clock)
    cache.set("k", None)
    assert cache.delete("k") is True
    assert cache.delete("k") is False


def test_cleanup_evicts_only_expired(clock: FakeClock):
    cache = TTLCache(10, clock=clock)
    cache.set("old", 1, ttl=1)
    cache.set("new", 2)
    clock.advance(2)
    assert cache.cleanup() == 1
    assert cache.keys() == ["new"]
    cache.clear()
    assert len(cache) == 0


def test_get_or_load_caches_falsy_values(clock: FakeClock):
    cache = TTLCache(clock=clock)
    calls: list[int] = []

    def loader() -> list[int]:
        calls.append(1)
        return []

    assert cache.get_or_load("empty", loader) == []
    assert cache.get_or_load("empty", loader) == []
    assert len(calls) == 1


def test_default_ttl_from_env(monkeypatch: pytest.MonkeyPatch):
    assert default_ttl_from_env() == DEFAULT_TTL_SECONDS
    monkeypatch.setenv("BUDGET_MONITORING_CACHE_TTL", "30")
    assert default_ttl_from_env() == 30.0
    monkeypatch.setenv("BUDGET_MONITORING_CACHE_TTL", "soon")
    assert default_ttl_from_env() == DEFAULT_TTL_SECONDS


class CountingStore:
    def __init__(self, records: list[StoredTransaction]) -> None:
        self.records = records
        self.calls = 0

    def list_records(self, *, stage=None, status=None, created_by=None):
        self.calls += 1
        return [r for r in self.records if stage is None or r.stage == stage]

    def create_record(self, record):
        self.records.append(StoredTransaction(id=record.budget_code, **record.model_dump()))
        return record.budget_code

    def update_record(self, record_id, **fields):
        for i, r in enumerate(self.records):
            if r.id == record_id:
                self.records[i] = r.model_copy(update=fields)
                return self.records[i]
        raise KeyError(record_id)


def _stored(**overrides) -> StoredTransaction:
    data = make_record(**overrides).model_dump()
    return StoredTransaction(id=overrides.get("budget_code", "x"), **data)


def test_cached_reader_serves_repeat_reads_from_cache(clock: FakeClock):
    store = CountingStore(
        [_stored(budget_code="A"), _stored(budget_code="B", stage=WorkflowStage.BUR1)]
    )
    reader = CachedTransactionReader(store, TTLCache(60, clock=clock))

    assert len(reader.list_records()) == 2
    assert len(reader.list_records()) == 2
    assert [r.budget_code for r in reader.list_records(stage="bur1")] == ["B"]
    assert store.calls == 2

    clock.advance(61)
    reader.list_records()
    assert store.calls == 3


def test_cached_reader_summary_and_invalidation(clock: FakeClock):
    store = CountingStore([_stored(budget_code="A", amount_requested=250.0)])
    reader = CachedTransactionReader(store, TTLCache(60, clock=clock))

    summary = reader.summary()
    assert summary["total_records"] == 1
    assert summary["financial"]["total_requested"] == 250.0
    assert reader.summary() is summary
    assert store.calls == 1

    assert reader.invalidate_all() == 2
    reader.summary()
    assert store.calls == 2


def test_writes_through_reader_drop_cached_views(clock: FakeClock):
    store = CountingStore([_stored(budget_code="A", amount_requested=100.0)])
    reader = CachedTransactionReader(store, TTLCache(60, clock=clock))
    assert reader.summary()["financial"]["total_requested"] == 100.0

    reader.create_record(make_record(budget_code="B", amount_requested=50.0))
    assert reader.summary()["financial"]["total_requested"] == 150.0

    reader.update_record("A", amount_requested=10.0)
    assert [r.amount_requested for r in reader.list_records()] == [10.0, 50.0]
    assert store.calls == 3


def test_reader_over_database_sees_its_own_edits(database_url: str):
    [record_id] = seed_records(database_url, [make_record(remarks="draft", amount_requested=75.0)])
    reader = CachedTransactionReader(SqlTransactionStore(database_url), TTLCache(300))
    assert reader.list_records()[0].remarks == "draft"

    reader.update_record(record_id, remarks="final", amount_requested=80.0)

    assert reader.list_records()[0].remarks == "final"
    assert reader.summary()["financial"]["total_requested"] == 80.0
