from __future__ import annotations

import logging
import time
from datetime import timedelta

import pandas as pd

from analytics import as_record, local_now, to_df, to_local
from schemas import ExportPreview

logger = logging.getLogger(__name__)

PERIOD_LABELS = {
    "today": "Aujourd'hui",
    "thisWeek": "Cette semaine",
    "thisMonth": "Ce mois",
}

FORMAT_EXTENSIONS = {
    "excel": "xlsx",
    "pdf": "pdf",
    "zip": "zip",
}

CSV_COLUMNS = ["id", "created_at", "supplier", "category", "description", "total_ttc"]


def in_period(created_at, period, now):
    day = to_local(created_at).date()
    today = now.date()
    if period == "today":
        return day == today
    if period == "thisWeek":
        monday = today - timedelta(days=today.weekday())
        return monday <= day <= today
    if period == "thisMonth":
        return (day.year, day.month) == (today.year, today.month)
    raise ValueError(f"unknown export period: {period}")


def select_period(records, period, now=None):
    now = to_local(now) if now is not None else local_now()
    return [r for r in map(as_record, records or []) if in_period(r.created_at, period, now)]


def export_filename(period, fmt, now=None):
    now = to_local(now) if now is not None else local_now()
    return f"factures_{period}_{now:%Y-%m-%d}.{FORMAT_EXTENSIONS[fmt]}"


def export_preview(records, period, fmt=None, now=None) -> ExportPreview:
    selected = select_period(records, period, now)
    suppliers = list(dict.fromkeys(r.supplier for r in selected if r.supplier))
    return ExportPreview(
        period=period,
        label=PERIOD_LABELS[period],
        count=len(selected),
        total_amount=round(sum(r.amount for r in selected), 2),
        suppliers=suppliers,
        filename=export_filename(period, fmt, now) if fmt else None,
    )


def records_to_csv(records):
    df = to_df(records)
    if df.empty:
        return pd.DataFrame(columns=CSV_COLUMNS).to_csv(index=False)
    df["created_at"] = df["created_at"].dt.strftime("%Y-%m-%d %H:%M")
    return df[CSV_COLUMNS].to_csv(index=False)


def simulate_export(records, period, fmt, now=None, delay=2.0):
    """Mocked export: waits, logs the would-be download and returns its name."""
    preview = export_preview(records, period, fmt, now)
    time.sleep(delay)
    logger.info("simulated download: %s (%d invoices)", preview.filename, preview.count)
    return preview.filename
