from __future__ import annotations

import logging
import threading
from typing import List, Optional

from analytics import compute_series, compute_statistics
from filters import filter_and_group
from schemas import ChartSeries, DerivedStatistics, FilterCriteria, GalleryView, InvoiceRecord, RecordStoreError

logger = logging.getLogger(__name__)


class DashboardSession:
    """Owns one owner's invoice list and keeps it current.

    The change subscription is held between ``open()`` and ``close()``.
    Each notification triggers a full re-query; statistics, series and the
    gallery are recomputed from the current list on access.
    """

    def __init__(self, store, owner_id: str):
        self.store = store
        self.owner_id = owner_id
        self.records: List[InvoiceRecord] = []
        self.reloads = 0
        self._subscription = None
        self._lock = threading.Lock()

    def open(self):
        if self._subscription is None:
            self._subscription = self.store.subscribe(self.owner_id, self.reload)
        self.reload()
        return self

    def close(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

    def reload(self):
        try:
            records = self.store.query(self.owner_id)
        except RecordStoreError as e:
            logger.error("reload failed for owner %s, keeping %d records: %s",
                         self.owner_id, len(self.records), e)
            return
        with self._lock:
            self.records = records
            self.reloads += 1
        logger.debug("loaded %d invoices for owner %s", len(records), self.owner_id)

    def switch_owner(self, owner_id: str):
        if owner_id == self.owner_id:
            return
        was_open = self.is_open
        self.close()
        self.owner_id = owner_id
        self.records = []
        if was_open:
            self.open()

    def statistics(self, now=None) -> DerivedStatistics:
        return compute_statistics(self.records, now=now)

    def series(self) -> ChartSeries:
        return compute_series(self.records)

    def gallery(self, criteria: Optional[FilterCriteria] = None) -> GalleryView:
        return filter_and_group(self.records, criteria)
