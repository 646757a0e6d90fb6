"""Read-side dashboard aggregation over sheets. Owns no state; recomputed per request."""
from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from sqlalchemy import and_, case, func
from sqlalchemy.orm import Session

from ..models import Sheet

DEFAULT_RANGE = "1m"
RANGE_TOKENS = ("1d", "1w", "1m", "3m", "1y")
GROUP_LIMIT = 20
PLACEHOLDER = "Choose"


def _shift_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def resolve_start_date(range_token: str | None, *, today: date | None = None) -> tuple[str, date]:
    """Map a relative range token to ``(token, start_date)``; unknown tokens fall back to one month."""
    today = today or date.today()
    token = (range_token or "").strip().lower()
    if token not in RANGE_TOKENS:
        token = DEFAULT_RANGE
    if token == "1d":
        start = today - timedelta(days=1)
    elif token == "1w":
        start = today - timedelta(days=7)
    elif token == "3m":
        start = _shift_months(today, -3)
    elif token == "1y":
        start = _shift_months(today, -12)
    else:
        start = _shift_months(today, -1)
    return token, start


def _number(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _percent(count: int, total: int) -> float:
    return round(count * 100.0 / total, 2) if total else 0.0


def _meaningful(column):
    """Excludes the UI placeholder, blanks and NULLs."""
    return and_(column.isnot(None), column != PLACEHOLDER, column != "")


def _window(db: Session, business_id: int, start_date: date):
    return db.query(Sheet).filter(
        Sheet.business_id == business_id,
        Sheet.date_received >= start_date,
    )


_METRICS = {
    "avg_refund": lambda: func.coalesce(func.avg(Sheet.refund_amount), 0),
    "total_refund": lambda: func.coalesce(func.sum(Sheet.refund_amount), 0),
    "resolved_count": lambda: func.sum(case((Sheet.status == "Resolved", 1), else_=0)),
}


def _grouped(
    query,
    dims: list,
    *,
    metrics: Iterable[str] = (),
    percentage: bool = False,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    count = func.count(Sheet.id)
    columns = list(dims) + [count.label("count")] + [_METRICS[m]().label(m) for m in metrics]
    grouped = query.with_entities(*columns).group_by(*dims).order_by(count.desc())
    rows = [dict(row._mapping) for row in grouped.all()]
    total = sum(int(r["count"]) for r in rows)
    if limit is not None:
        rows = rows[:limit]

    result = []
    for row in rows:
        item: dict[str, Any] = {}
        for key, value in row.items():
            if key == "count" or key == "resolved_count":
                item[key] = int(value or 0)
            elif key in _METRICS:
                item[key] = round(_number(value), 2)
            else:
                item[key] = value
        if percentage:
            item["percentage"] = _percent(item["count"], total)
        result.append(item)
    return result


def _elapsed_days(created_at: datetime | None, updated_at: datetime | None) -> float | None:
    if created_at is None or updated_at is None:
        return None
    return (updated_at - created_at).total_seconds() / 86400


def _grouped_avg_days(query, dims: list, *, label: str, digits: int, limit: int | None = None) -> list[dict[str, Any]]:
    """Group in Python: elapsed time between create and last update is not portable SQL."""
    buckets: dict[tuple, list[float]] = defaultdict(list)
    counts: dict[tuple, int] = defaultdict(int)
    names = [d.key for d in dims]
    for row in query.with_entities(*dims, Sheet.created_at, Sheet.updated_at).all():
        values = tuple(row)
        key = values[: len(dims)]
        counts[key] += 1
        elapsed = _elapsed_days(values[-2], values[-1])
        if elapsed is not None:
            buckets[key].append(elapsed)

    items = []
    for key, count in counts.items():
        values = buckets.get(key) or []
        item = dict(zip(names, key))
        item["count"] = count
        item[label] = round(sum(values) / len(values), digits) if values else 0.0
        items.append(item)
    items.sort(key=lambda i: i["count"], reverse=True)
    return items[:limit] if limit is not None else items


def _trend(query) -> dict[str, list[dict[str, Any]]]:
    daily: dict[date, list[float]] = defaultdict(lambda: [0, 0.0])
    weekly: dict[date, list[float]] = defaultdict(lambda: [0, 0.0])
    for received, refund in query.with_entities(Sheet.date_received, Sheet.refund_amount).all():
        if received is None:
            continue
        week_start = received - timedelta(days=received.weekday())
        for bucket in (daily[received], weekly[week_start]):
            bucket[0] += 1
            bucket[1] += _number(refund)
    return {
        "daily": [
            {"date": day.isoformat(), "count": int(v[0]), "refund": round(v[1], 2)}
            for day, v in sorted(daily.items())
        ],
        "weekly": [
            {"week_start": week.isoformat(), "count": int(v[0]), "refund": round(v[1], 2)}
            for week, v in sorted(weekly.items())
        ],
    }


def _share_of_total(rows: list[dict[str, Any]], total: int) -> list[dict[str, Any]]:
    for row in rows:
        row["percentage"] = _percent(row["count"], total)
    return rows


def summary_stats_use_case(*, db: Session, business_id: int, range_token: str | None, today: date | None = None) -> dict[str, Any]:
    token, start_date = resolve_start_date(range_token, today=today)
    window = _window(db, business_id, start_date)

    totals = window.with_entities(
        func.count(Sheet.id),
        func.coalesce(func.sum(Sheet.refund_amount), 0),
        func.coalesce(func.avg(Sheet.refund_amount), 0),
        func.count(func.distinct(Sheet.order_no)),
    ).one()
    total_orders = int(totals[0] or 0)

    def _by(column) -> list[dict[str, Any]]:
        rows = _grouped(window.filter(_meaningful(column)), [column])
        return _share_of_total(rows, total_orders)

    return {
        "totalOrders": total_orders,
        "totalRefundAmount": round(_number(totals[1]), 2),
        "averageRefundAmount": round(_number(totals[2]), 2),
        "uniqueOrders": int(totals[3] or 0),
        "range": token,
        "startDate": start_date.isoformat(),
        "byResolution": _by(Sheet.resolution),
        "byReturnType": _by(Sheet.return_type),
        "byPlatform": _by(Sheet.platform),
        "byIssue": _by(Sheet.issue),
        "byStatus": _by(Sheet.status),
        "trend": _trend(window),
    }


def advanced_stats_use_case(*, db: Session, business_id: int, range_token: str | None, today: date | None = None) -> dict[str, Any]:
    """Cross-dimensional breakdowns for the analytics dashboard."""
    token, start_date = resolve_start_date(range_token, today=today)
    w = _window(db, business_id, start_date)
    s = Sheet

    return {
        "resolutionBreakdown": _grouped(
            w.filter(_meaningful(s.resolution)), [s.resolution], metrics=["avg_refund"], percentage=True,
        ),
        "return30DaysAnalysis": _grouped(
            w, [s.return_within_30_days], metrics=["avg_refund", "resolved_count"], percentage=True,
        ),
        "blockedByAnalysis": _grouped_avg_days(
            w.filter(_meaningful(s.blocked_by)), [s.blocked_by], label="avg_blocked_days", digits=2,
        ),
        "returnTypeBreakdown": _grouped(
            w.filter(_meaningful(s.return_type)), [s.return_type], metrics=["total_refund"], percentage=True,
        ),
        "replacementAnalysis": _grouped(
            w.filter(func.lower(s.return_type).like("%replacement%")), [s.replacement_available], percentage=True,
        ),
        "returnTypeResolution": _grouped(
            w.filter(_meaningful(s.return_type), _meaningful(s.resolution)),
            [s.return_type, s.resolution],
            limit=GROUP_LIMIT,
        ),
        "returnType30Days": _grouped(
            w.filter(_meaningful(s.return_type)), [s.return_type, s.return_within_30_days], metrics=["avg_refund"],
        ),
        "return30DaysResolution": _grouped(
            w.filter(_meaningful(s.resolution)), [s.return_within_30_days, s.resolution], percentage=True,
        ),
        "multipleReturnResolution": _grouped(
            w.filter(_meaningful(s.multiple_return), _meaningful(s.resolution)), [s.multiple_return, s.resolution],
        ),
        "platformReturnResolution": _grouped(
            w.filter(_meaningful(s.platform), _meaningful(s.return_type), _meaningful(s.resolution)),
            [s.platform, s.return_type, s.resolution],
            limit=GROUP_LIMIT,
        ),
        "issueResolution": _grouped(
            w.filter(_meaningful(s.issue), _meaningful(s.resolution)),
            [s.issue, s.resolution],
            metrics=["avg_refund"],
            limit=GROUP_LIMIT,
        ),
        "statusReturnType": _grouped(
            w.filter(_meaningful(s.return_type)), [s.status, s.return_type],
        ),
        "oowResolution": _grouped(
            w.filter(_meaningful(s.resolution)), [s.out_of_warranty, s.resolution], metrics=["total_refund"],
        ),
        "doneByReturnType": _grouped_avg_days(
            w.filter(_meaningful(s.done_by), _meaningful(s.return_type)),
            [s.done_by, s.return_type],
            label="avg_days",
            digits=1,
            limit=GROUP_LIMIT,
        ),
        "appleGoogleResolution": _grouped(
            w.filter(_meaningful(s.apple_google_id), _meaningful(s.resolution)), [s.apple_google_id, s.resolution],
        ),
        "range": token,
        "startDate": start_date.isoformat(),
    }
