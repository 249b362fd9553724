"""Calendar bucketing for report endpoints.

Grouping happens in Python so the same code runs on every supported database.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone


def months_back(now: datetime, months: int) -> list[tuple[int, int]]:
    """The last ``months`` calendar months as (year, month), oldest first, ending with ``now``'s month."""
    year, month = now.year, now.month
    buckets: list[tuple[int, int]] = []
    for _ in range(months):
        buckets.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(buckets))


def start_of_month_window(now: datetime, months: int) -> datetime:
    """Midnight UTC on the first day of the oldest month in :func:`months_back`."""
    year, month = months_back(now, months)[0]
    return datetime(year, month, 1, tzinfo=timezone.utc)


def count_by_month(timestamps: Iterable[datetime], now: datetime, months: int = 6) -> list[dict[str, int]]:
    """Count timestamps per calendar month, including empty months."""
    counts = Counter((ts.year, ts.month) for ts in timestamps)
    return [
        {"year": year, "month": month, "count": counts.get((year, month), 0)}
        for year, month in months_back(now, months)
    ]


def count_by_day(timestamps: Iterable[datetime]) -> list[dict[str, object]]:
    """Count timestamps per calendar day, ascending, skipping empty days."""
    counts = Counter(ts.date() for ts in timestamps)
    return [{"date": day.isoformat(), "count": counts[day]} for day in sorted(counts)]


def sum_by_day(pairs: Iterable[tuple[datetime, float]]) -> list[dict[str, object]]:
    """Sum amounts per calendar day, ascending."""
    totals: dict[date, float] = {}
    counts: Counter[date] = Counter()
    for ts, amount in pairs:
        day = ts.date()
        totals[day] = totals.get(day, 0.0) + float(amount)
        counts[day] += 1
    return [
        {"date": day.isoformat(), "revenue": round(totals[day], 2), "count": counts[day]}
        for day in sorted(totals)
    ]


def period_start(now: datetime, days: int) -> datetime:
    """``now`` minus ``days`` days."""
    return now - timedelta(days=days)


def growth_rate(current: int | float, previous: int | float) -> float:
    """Percentage change from ``previous`` to ``current``; 100 when starting from zero."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)
