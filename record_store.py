"""Clients for the hosted invoice table.

The store is an external collaborator: it filters by owner, orders by
``created_at`` descending and tells subscribers when an owner's rows change.
Subscribers are expected to re-query; nothing is pushed with the notification.
"""
from __future__ import annotations

import hashlib
import logging
import threading
from typing import Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

import config
from schemas import InvoiceRecord, RecordStoreError

logger = logging.getLogger(__name__)

OnChange = Callable[[], None]


class Subscription:
    """Handle returned by ``subscribe``; release it with ``close()``."""

    def __init__(self, owner_id: str, release: Callable[["Subscription"], None]):
        self.owner_id = owner_id
        self._release = release
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._release(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class InMemoryRecordStore:
    def __init__(self, records: Optional[List[InvoiceRecord]] = None):
        self._records: List[InvoiceRecord] = []
        self._listeners: Dict[str, Dict[Subscription, OnChange]] = {}
        self._lock = threading.RLock()
        for record in records or []:
            self.insert(record)

    def query(self, owner_id: str) -> List[InvoiceRecord]:
        with self._lock:
            rows = [r for r in self._records if r.user_id == owner_id]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def subscribe(self, owner_id: str, on_change: OnChange) -> Subscription:
        sub = Subscription(owner_id, self._unsubscribe)
        with self._lock:
            self._listeners.setdefault(owner_id, {})[sub] = on_change
        return sub

    def _unsubscribe(self, sub: Subscription):
        with self._lock:
            listeners = self._listeners.get(sub.owner_id, {})
            listeners.pop(sub, None)
            if not listeners:
                self._listeners.pop(sub.owner_id, None)

    def subscriber_count(self, owner_id: str) -> int:
        return len(self._listeners.get(owner_id, {}))

    def insert(self, record) -> InvoiceRecord:
        if not isinstance(record, InvoiceRecord):
            record = InvoiceRecord.model_validate(record)
        with self._lock:
            self._records.append(record)
        self._notify(record.user_id)
        return record

    def delete(self, record_id: str) -> bool:
        with self._lock:
            found = next((r for r in self._records if r.id == record_id), None)
            if found is None:
                return False
            self._records.remove(found)
        self._notify(found.user_id)
        return True

    def clear(self):
        with self._lock:
            owners = {r.user_id for r in self._records}
            self._records.clear()
        for owner_id in owners:
            self._notify(owner_id)

    def _notify(self, owner_id: str):
        with self._lock:
            callbacks = list(self._listeners.get(owner_id, {}).values())
        for callback in callbacks:
            callback()


class RestRecordStore:
    """PostgREST-style table client (e.g. Supabase) with polling change checks."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        table: str = None,
        poll_interval: float = None,
        client: Optional[httpx.Client] = None,
    ):
        base_url = (base_url or config.SUPABASE_URL).rstrip("/")
        api_key = api_key or config.SUPABASE_KEY
        if not base_url:
            raise RecordStoreError("SUPABASE_URL is not configured")
        self.table = table or config.INVOICE_TABLE
        self.poll_interval = poll_interval if poll_interval is not None else config.POLL_INTERVAL
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = client or httpx.Client(base_url=base_url, headers=headers, timeout=10.0)
        if client is not None:
            self.client.headers.update(headers)

    def _fetch_rows(self, owner_id: str) -> List[dict]:
        try:
            resp = self.client.get(
                f"/rest/v1/{self.table}",
                params={
                    "select": "*",
                    "user_id": f"eq.{owner_id}",
                    "order": "created_at.desc",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise RecordStoreError(f"query failed for owner {owner_id}: {e}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise RecordStoreError(f"invalid response for owner {owner_id}: {e}") from e

    def query(self, owner_id: str) -> List[InvoiceRecord]:
        records = []
        for row in self._fetch_rows(owner_id):
            try:
                records.append(InvoiceRecord.model_validate(row))
            except ValidationError as e:
                logger.warning("skipping malformed invoice row %r: %s", row.get("id"), e)
        return records

    def fingerprint(self, owner_id: str) -> str:
        rows = self._fetch_rows(owner_id)
        digest = hashlib.sha1()
        for row in rows:
            digest.update(repr(sorted(row.items())).encode("utf-8"))
        return digest.hexdigest()

    def subscribe(self, owner_id: str, on_change: OnChange) -> Subscription:
        stop = threading.Event()

        def release(_sub):
            stop.set()

        sub = Subscription(owner_id, release)
        try:
            last = self.fingerprint(owner_id)
        except RecordStoreError as e:
            logger.warning("initial change check failed: %s", e)
            last = None

        def poll():
            nonlocal last
            while not stop.wait(self.poll_interval):
                try:
                    current = self.fingerprint(owner_id)
                except RecordStoreError as e:
                    logger.warning("change check failed: %s", e)
                    continue
                if current != last:
                    last = current
                    logger.debug("invoices changed for owner %s", owner_id)
                    try:
                        on_change()
                    except Exception:
                        logger.exception("change callback failed for owner %s", owner_id)

        thread = threading.Thread(target=poll, name=f"invoice-poll-{owner_id}", daemon=True)
        thread.start()
        return sub

    def close(self):
        self.client.close()
