import threading
import time
from datetime import datetime

import httpx
import pytest

from record_store import InMemoryRecordStore, RestRecordStore
from schemas import RecordStoreError


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def row(id, owner, created_at, total=1.0, category="Grocery"):
    return {"id": id, "user_id": owner, "created_at": created_at, "total_ttc": total, "category": category}


def test_in_memory_query_filters_owner_and_orders_desc():
    store = InMemoryRecordStore([
        row("1", "alice", datetime(2024, 1, 1)),
        row("2", "bob", datetime(2024, 1, 2)),
        row("3", "alice", datetime(2024, 1, 3)),
    ])
    assert [r.id for r in store.query("alice")] == ["3", "1"]
    assert [r.id for r in store.query("bob")] == ["2"]
    assert store.query("nobody") == []


def test_in_memory_notifies_only_affected_owner():
    store = InMemoryRecordStore()
    calls = []
    sub_a = store.subscribe("alice", lambda: calls.append("alice"))
    store.subscribe("bob", lambda: calls.append("bob"))

    store.insert(row("1", "alice", datetime(2024, 1, 1)))
    assert calls == ["alice"]

    assert store.delete("1")
    assert not store.delete("1")
    assert calls == ["alice", "alice"]

    sub_a.close()
    sub_a.close()
    store.insert(row("2", "alice", datetime(2024, 1, 1)))
    assert calls == ["alice", "alice"]
    assert store.subscriber_count("alice") == 0
    assert store.subscriber_count("bob") == 1


def test_subscription_context_manager_releases():
    store = InMemoryRecordStore()
    with store.subscribe("alice", lambda: None) as sub:
        assert store.subscriber_count("alice") == 1
    assert sub.closed
    assert store.subscriber_count("alice") == 0


class FakeTable:
    def __init__(self, rows):
        self.rows = rows
        self.requests = []
        self.fail = False

    def handler(self, request):
        self.requests.append(request)
        if self.fail:
            return httpx.Response(503, json={"message": "unavailable"})
        owner = request.url.params["user_id"].removeprefix("eq.")
        return httpx.Response(200, json=[r for r in self.rows if r["user_id"] == owner])


def make_rest_store(table, **kwargs):
    client = httpx.Client(base_url="https://db.example.test", transport=httpx.MockTransport(table.handler))
    return RestRecordStore(base_url="https://db.example.test", api_key="secret", table="invoices",
                           client=client, **kwargs)


def test_rest_query_builds_postgrest_request():
    table = FakeTable([
        row("1", "alice", "2024-01-15T10:30:00+00:00", 45.67),
        row("2", "bob", "2024-01-14T10:30:00+00:00", 9.0),
    ])
    store = make_rest_store(table)

    records = store.query("alice")

    assert [r.id for r in records] == ["1"]
    assert records[0].total_ttc == pytest.approx(45.67)
    request = table.requests[0]
    assert request.url.path == "/rest/v1/invoices"
    assert request.url.params["order"] == "created_at.desc"
    assert request.headers["apikey"] == "secret"
    assert request.headers["Authorization"] == "Bearer secret"


def test_rest_query_error_raises_store_error():
    table = FakeTable([])
    table.fail = True
    store = make_rest_store(table)
    with pytest.raises(RecordStoreError):
        store.query("alice")


def test_rest_store_requires_url(monkeypatch):
    monkeypatch.setattr("config.SUPABASE_URL", "")
    with pytest.raises(RecordStoreError):
        RestRecordStore(base_url="")


def test_rest_subscribe_fires_on_change_and_stops_after_close():
    table = FakeTable([row("1", "alice", "2024-01-15T10:30:00+00:00")])
    store = make_rest_store(table, poll_interval=0.01)
    changed = threading.Event()

    sub = store.subscribe("alice", changed.set)
    table.rows.append(row("2", "alice", "2024-01-16T10:30:00+00:00"))

    assert changed.wait(timeout=5)
    sub.close()
    assert sub.closed


def test_rest_query_skips_malformed_rows():
    table = FakeTable([
        row("1", "alice", "2024-01-15T10:30:00+00:00", 45.67),
        {"id": "2", "user_id": "alice", "created_at": None, "total_ttc": 3.0},
        row("3", "alice", "2024-01-14T10:30:00+00:00", -5.0),
    ])
    store = make_rest_store(table)

    assert [r.id for r in store.query("alice")] == ["1"]


def test_rest_poller_survives_store_errors():
    table = FakeTable([row("1", "alice", "2024-01-15T10:30:00+00:00")])
    store = make_rest_store(table, poll_interval=0.01)
    changed = threading.Event()

    with store.subscribe("alice", changed.set):
        table.fail = True
        seen = len(table.requests)
        assert wait_until(lambda: len(table.requests) >= seen + 3)
        assert not changed.is_set()

        table.fail = False
        table.rows.append(row("2", "alice", "2024-01-16T10:30:00+00:00"))
        assert changed.wait(timeout=5)


def test_rest_poller_survives_callback_errors():
    table = FakeTable([row("1", "alice", "2024-01-15T10:30:00+00:00")])
    store = make_rest_store(table, poll_interval=0.01)
    calls = []
    second = threading.Event()

    def on_change():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("render failed")
        second.set()

    with store.subscribe("alice", on_change):
        table.rows.append(row("2", "alice", "2024-01-16T10:30:00+00:00"))
        assert wait_until(lambda: calls)
        table.rows.append(row("3", "alice", "2024-01-17T10:30:00+00:00"))
        assert second.wait(timeout=5)
