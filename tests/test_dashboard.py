from datetime import datetime

import httpx

from dashboard import DashboardSession
from record_store import InMemoryRecordStore, RestRecordStore
from schemas import FilterCriteria, RecordStoreError


def row(id, owner, created_at, total=1.0, category="Grocery"):
    return {"id": id, "userId": owner, "createdAt": created_at, "totalTTC": total, "category": category}


def test_session_reloads_on_change_notification():
    store = InMemoryRecordStore([row("1", "alice", datetime(2024, 1, 15), 10.0)])

    with DashboardSession(store, "alice") as session:
        assert [r.id for r in session.records] == ["1"]
        store.insert(row("2", "alice", datetime(2024, 1, 16), 5.0))
        assert [r.id for r in session.records] == ["2", "1"]

        stats = session.statistics(now=datetime(2024, 1, 16, 12, 0))
        assert stats.total_this_month == 15.0
        assert [p.label for p in session.series().daily_totals] == ["16/01", "15/01"]
        assert session.gallery(FilterCriteria(date="15/01/2024")).count == 1

    assert not session.is_open
    assert store.subscriber_count("alice") == 0


def test_other_owner_changes_do_not_reload():
    store = InMemoryRecordStore()
    session = DashboardSession(store, "alice").open()
    reloads = session.reloads
    store.insert(row("1", "bob", datetime(2024, 1, 15)))
    assert session.reloads == reloads
    assert session.records == []
    session.close()


def test_switch_owner_releases_previous_subscription():
    store = InMemoryRecordStore([
        row("1", "alice", datetime(2024, 1, 15)),
        row("2", "bob", datetime(2024, 1, 15)),
    ])
    session = DashboardSession(store, "alice").open()

    session.switch_owner("bob")

    assert store.subscriber_count("alice") == 0
    assert store.subscriber_count("bob") == 1
    assert [r.id for r in session.records] == ["2"]
    session.close()


def test_failed_reload_keeps_last_records():
    class FlakyStore(InMemoryRecordStore):
        broken = False

        def query(self, owner_id):
            if self.broken:
                raise RecordStoreError("offline")
            return super().query(owner_id)

    store = FlakyStore([row("1", "alice", datetime(2024, 1, 15))])
    session = DashboardSession(store, "alice").open()
    store.broken = True
    session.reload()
    assert [r.id for r in session.records] == ["1"]
    session.close()


def test_empty_session_signals_no_data():
    session = DashboardSession(InMemoryRecordStore(), "alice").open()
    assert session.gallery().status == "no_data"
    assert session.series().daily_totals == []
    session.close()


def test_reload_with_malformed_hosted_row_keeps_valid_records():
    rows = [
        {"id": "1", "user_id": "alice", "created_at": "2024-01-15T10:00:00", "total_ttc": 4.0},
        {"id": "2", "user_id": "alice", "created_at": None, "total_ttc": 1.0},
    ]
    client = httpx.Client(base_url="https://db.example.test",
                          transport=httpx.MockTransport(lambda request: httpx.Response(200, json=rows)))
    store = RestRecordStore(base_url="https://db.example.test", client=client, poll_interval=60)

    with DashboardSession(store, "alice") as session:
        assert [r.id for r in session.records] == ["1"]
