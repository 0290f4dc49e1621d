from __future__ import annotations

from datetime import datetime

import pandas as pd

from config import get_timezone
from schemas import (
    CATEGORY_PALETTE,
    CategoryPoint,
    ChartSeries,
    DailyPoint,
    DerivedStatistics,
    InvoiceRecord,
    WeekPoint,
)

COLUMNS = ["id", "created_at", "total_ttc", "category", "supplier", "description"]

WEEKLY_POINTS = 7

DAILY_LABEL_FORMAT = "%d/%m"


def local_now():
    return datetime.now(get_timezone()).replace(tzinfo=None)


def to_local(dt: datetime) -> datetime:
    """Naive datetime in the dashboard zone. Naive input is already local."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(get_timezone()).replace(tzinfo=None)


def as_record(record) -> InvoiceRecord:
    if isinstance(record, InvoiceRecord):
        return record
    return InvoiceRecord.model_validate(record)


def to_df(records):
    if not records:
        return pd.DataFrame(columns=COLUMNS)
    rows = []
    for record in map(as_record, records):
        rows.append({
            "id": record.id,
            "created_at": to_local(record.created_at),
            "total_ttc": record.amount,
            "category": record.category,
            "supplier": record.supplier,
            "description": record.description,
        })
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"])
    df["total_ttc"] = df["total_ttc"].fillna(0.0).astype(float)
    return df


def calc_total(df):
    return round(float(df["total_ttc"].sum()), 2) if not df.empty else 0.0


def calc_daily(df):
    """Sum per calendar day, in first-seen order. Indexed by date."""
    if df.empty:
        return pd.Series(dtype=float)
    days = df["created_at"].dt.date
    return df.groupby(days, sort=False)["total_ttc"].sum()


def calc_category(df):
    """Sum per category, in first-seen order."""
    if df.empty:
        return pd.Series(dtype=float)
    return df.groupby("category", sort=False)["total_ttc"].sum()


def calc_top_category(df):
    cat = calc_category(df)
    if cat.empty:
        return None, 0
    return cat.idxmax(), round(float(cat.max()), 2)


def compute_statistics(records, now=None) -> DerivedStatistics:
    now = to_local(now) if now is not None else local_now()
    days_in_month = pd.Timestamp(now).days_in_month
    df = to_df(records)
    if df.empty:
        return DerivedStatistics(days_in_month=days_in_month)

    created = df["created_at"]
    today = df[created.dt.date == now.date()]
    month = df[(created.dt.year == now.year) & (created.dt.month == now.month)]

    total_month = float(month["total_ttc"].sum())
    return DerivedStatistics(
        total_today=calc_total(today),
        total_this_month=round(total_month, 2),
        average_daily=round(total_month / days_in_month, 2),
        count_today=len(today),
        count_this_month=len(month),
        days_in_month=days_in_month,
    )


def compute_series(records) -> ChartSeries:
    df = to_df(records)
    if df.empty:
        return ChartSeries()

    daily = [
        DailyPoint(day=day, label=day.strftime(DAILY_LABEL_FORMAT), amount=round(float(amount), 2))
        for day, amount in calc_daily(df).items()
    ]
    categories = [
        CategoryPoint(
            name=name,
            amount=round(float(amount), 2),
            color=CATEGORY_PALETTE[i % len(CATEGORY_PALETTE)],
        )
        for i, (name, amount) in enumerate(calc_category(df).items())
    ]
    # Placeholder trend: the first daily points relabelled, not calendar weeks.
    weekly = [
        WeekPoint(label=f"S{i}", amount=point.amount)
        for i, point in enumerate(daily[:WEEKLY_POINTS], start=1)
    ]
    return ChartSeries(daily_totals=daily, category_totals=categories, weekly_trend=weekly)
