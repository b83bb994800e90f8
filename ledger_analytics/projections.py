"""Read-only projections over a transaction set.

Category breakdowns, recent activity, export shapes and chart series.
Every function takes the record set as an argument and allocates fresh
output; nothing here mutates its input or keeps state between calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .config import RECENT_ACTIVITY_LIMIT
from .errors import InvalidRecord
from .logging_setup import get_logger
from .models import EXPENSE, Transaction, parse_timestamp, records_frame, to_wall_clock
from .periods import Bucket, bucket, bucket_span, period_key, unit_start

logger = get_logger(__name__)

EXPORT_COLUMNS = ['date', 'description', 'purpose', 'amount', 'type']

CHART_VIEWS = {
    'day': 'hour',
    'week': 'day',
    'month': 'day',
    'year': 'month',
}


def category_totals(records: Sequence[Transaction]) -> Dict[str, float]:
    """Expense totals per purpose label, largest first.

    Income is excluded: this view answers where spending went. Untagged
    expenses are reported under ``"Other"``.
    """
    frame = records_frame(records)
    expenses = frame[frame['type'] == EXPENSE]
    if expenses.empty:
        return {}
    totals = expenses.groupby('purpose', sort=False)['amount'].sum()
    totals = totals.sort_values(ascending=False, kind='stable')
    return {str(name): float(value) for name, value in totals.items()}


def category_chart_data(records: Sequence[Transaction]) -> List[Dict[str, Any]]:
    return [{'name': name, 'value': value} for name, value in category_totals(records).items()]


def recent_activity(records: Sequence[Transaction], n: int = RECENT_ACTIVITY_LIMIT) -> List[Transaction]:
    """The ``n`` most recent transactions; equal dates keep input order."""
    return sorted(records, key=lambda t: t.date, reverse=True)[:n]


def _coerce(record: Union[Transaction, Mapping[str, Any]], tz: Optional[str]) -> Optional[Transaction]:
    if isinstance(record, Transaction):
        return record
    try:
        return Transaction.from_record(record, tz)
    except InvalidRecord as exc:
        logger.warning(
            "Excluding record %r from grouped export: %s", record.get('id'), exc
        )
        return None


def grouped_by_period(
    records: Sequence[Union[Transaction, Mapping[str, Any]]],
    tz: Optional[str] = None,
) -> Dict[str, List[Transaction]]:
    """Group records by ``YYYY-MM`` of their date, months ascending.

    Raw store rows are accepted as well as transactions. A row that fails
    validation (typically an unparseable date) is left out and logged so a
    single bad row never aborts a bulk export.
    """
    grouped: Dict[str, List[Transaction]] = {}
    valid = [t for t in (_coerce(r, tz) for r in records) if t is not None]
    for txn in sorted(valid, key=lambda t: t.local_date(tz)):
        key = period_key(unit_start(txn.wall_clock(tz), 'month'), 'month')
        grouped.setdefault(key, []).append(txn)
    return dict(sorted(grouped.items()))


def export_row(txn: Transaction) -> Dict[str, Any]:
    return {
        'date': txn.date.isoformat(),
        'description': txn.description,
        'purpose': txn.purpose_label,
        'amount': txn.amount,
        'type': txn.type,
    }


def export_rows(records: Sequence[Transaction]) -> List[Dict[str, Any]]:
    """Flat export shape, in the order given."""
    return [export_row(t) for t in records]


def export_grouped(
    records: Sequence[Union[Transaction, Mapping[str, Any]]],
    tz: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Export rows with a ``{"month": "YYYY-MM"}`` marker before each month."""
    out: List[Dict[str, Any]] = []
    for month, txns in grouped_by_period(records, tz).items():
        out.append({'month': month})
        out.extend(export_row(t) for t in txns)
    return out


def write_export_csv(rows: Sequence[Mapping[str, Any]], path: Union[str, Path]) -> Path:
    """Write either export shape to CSV.

    Month markers become rows where only the ``month`` column is filled.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    grouped = any('month' in row for row in rows)
    columns = (['month'] if grouped else []) + EXPORT_COLUMNS
    pd.DataFrame(list(rows), columns=columns).to_csv(target, index=False)
    return target


def _view_bounds(view: str, anchor: pd.Timestamp) -> tuple:
    if view == 'day':
        start = unit_start(anchor, 'day')
        return start, start + pd.Timedelta(hours=23)
    if view == 'week':
        start = unit_start(anchor, 'week')
        return start, start + pd.Timedelta(days=6)
    if view == 'month':
        start = unit_start(anchor, 'month')
        return start, start + pd.offsets.MonthBegin(1) - pd.Timedelta(days=1)
    start = unit_start(anchor, 'year')
    return start, start.replace(month=12)


def period_chart_data(
    records: Sequence[Transaction],
    view: str,
    anchor: Any,
    tz: Optional[str] = None,
) -> List[Bucket]:
    """Chart series for the calendar period containing ``anchor``.

    ``day`` gives 24 hourly buckets, ``week`` seven daily buckets starting
    on Sunday, ``month`` one daily bucket per day and ``year`` twelve
    monthly buckets.
    """
    if view not in CHART_VIEWS:
        raise ValueError(f"Unknown chart view '{view}'. Expected one of {tuple(CHART_VIEWS)}.")
    wall = to_wall_clock(parse_timestamp(anchor, tz), tz)
    start, end = _view_bounds(view, wall)
    return bucket(records, CHART_VIEWS[view], start, end, tz)


def trend_series(records: Sequence[Transaction], granularity: str, tz: Optional[str] = None) -> List[Bucket]:
    """Gap-filled series over the whole history."""
    return bucket_span(records, granularity, tz=tz)


def recent_daily_series(records: Sequence[Transaction], days: int = 71, tz: Optional[str] = None) -> List[Bucket]:
    """Daily series for the last ``days`` calendar days up to the newest record."""
    if not records or days < 1:
        return []
    end = max(t.wall_clock(tz) for t in records).normalize()
    start = end - pd.Timedelta(days=days - 1)
    return bucket(records, 'day', start, end, tz)
