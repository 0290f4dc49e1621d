"""Gallery filtering: match invoices against search/category/date and group them by day."""
from __future__ import annotations

from datetime import datetime, date
from typing import Dict, List, Tuple

from analytics import as_record, to_local
from schemas import ALL, FilterCriteria, GalleryView, InvoiceRecord

DATE_LABEL_FORMAT = "%d/%m/%Y"


def date_label(dt: datetime) -> str:
    return to_local(dt).strftime(DATE_LABEL_FORMAT)


def parse_date_label(label: str) -> date:
    return datetime.strptime(label, DATE_LABEL_FORMAT).date()


def _haystack(record: InvoiceRecord) -> str:
    parts = [record.description, record.supplier, record.category]
    return " ".join(p for p in parts if p).lower()


def matches(record: InvoiceRecord, criteria: FilterCriteria) -> bool:
    search = criteria.search_text.lower()
    if search and search not in _haystack(record):
        return False
    if criteria.category != ALL and record.category != criteria.category:
        return False
    if criteria.date != ALL and date_label(record.created_at) != criteria.date:
        return False
    return True


def filter_options(records: List[InvoiceRecord]) -> Tuple[List[str], List[str]]:
    """Distinct categories (sorted) and date labels (most recent first)."""
    categories = sorted({r.category for r in records})
    labels = {date_label(r.created_at) for r in records}
    dates = sorted(labels, key=parse_date_label, reverse=True)
    return categories, dates


def filter_and_group(records, criteria: FilterCriteria = None) -> GalleryView:
    criteria = criteria or FilterCriteria()
    records = [as_record(r) for r in records or []]
    if not records:
        return GalleryView(status="no_data")

    categories, dates = filter_options(records)

    groups: Dict[str, List[InvoiceRecord]] = {}
    for record in records:
        if matches(record, criteria):
            groups.setdefault(date_label(record.created_at), []).append(record)

    if not groups:
        return GalleryView(status="no_match", categories=categories, dates=dates)

    # Labels are day-first; compare parsed dates, not strings.
    ordered = {
        label: groups[label]
        for label in sorted(groups, key=parse_date_label, reverse=True)
    }
    return GalleryView(
        status="ok",
        groups=ordered,
        count=sum(len(v) for v in ordered.values()),
        categories=categories,
        dates=dates,
    )
