"""Running balances over ordered buckets."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .errors import ComputationError
from .models import Transaction, parse_timestamp, to_wall_clock
from .periods import Bucket, bucket_span, period_key, unit_start


def accumulate(buckets: Sequence[Bucket]) -> List[Bucket]:
    """Return copies of ``buckets`` carrying opening and closing balances.

    The first bucket opens at 0; each following bucket opens at the previous
    closing balance. Buckets must be strictly ascending in time.
    """
    if not buckets:
        return []
    starts = [b.start for b in buckets]
    if any(later <= earlier for earlier, later in zip(starts, starts[1:])):
        raise ComputationError("Buckets must be strictly ascending by period start")

    net = pd.Series([b.net for b in buckets], dtype=float)
    closing = net.cumsum()
    opening = closing.shift(1, fill_value=0.0)
    return [
        replace(b, opening_balance=float(o), closing_balance=float(c))
        for b, o, c in zip(buckets, opening, closing)
    ]


def _balance_row(b: Bucket) -> Dict[str, Any]:
    return {
        'period': b.period_key,
        'opening_balance': b.opening_balance,
        'closing_balance': b.closing_balance,
        'income': b.income,
        'expenses': b.expense,
        'net': b.net,
        'transaction_count': b.transaction_count,
    }


def _month_name(start: pd.Timestamp) -> str:
    return start.strftime('%b %Y')


def monthly_balances(
    records: Sequence[Transaction], until: Any = None, tz: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Month-by-month balances over the whole history.

    Months without transactions between the first and last one are
    included with zero flows so the balance line is continuous.
    """
    rows = []
    for b in accumulate(bucket_span(records, 'month', until=until, tz=tz)):
        row = _balance_row(b)
        row['month'] = row.pop('period')
        row['month_name'] = _month_name(b.start)
        rows.append(row)
    return rows


def yearly_balances(
    records: Sequence[Transaction], until: Any = None, tz: Optional[str] = None
) -> List[Dict[str, Any]]:
    rows = []
    for b in accumulate(bucket_span(records, 'year', until=until, tz=tz)):
        row = _balance_row(b)
        row.pop('period')
        row['year'] = b.start.year
        rows.append(row)
    return rows


def current_period_balances(
    records: Sequence[Transaction],
    now: Any = None,
    tz: Optional[str] = None,
) -> Dict[str, Dict[str, Any]]:
    """Balances for the month and year containing ``now``.

    The history is extended up to ``now`` so the current period opens with
    the balance carried forward from earlier periods.
    """
    now_ts = parse_timestamp(now if now is not None else datetime.now().astimezone(), tz)
    wall = to_wall_clock(now_ts, tz)
    month_key = period_key(unit_start(wall, 'month'), 'month')
    year = wall.year

    months = {row['month']: row for row in monthly_balances(records, until=now_ts, tz=tz)}
    years = {row['year']: row for row in yearly_balances(records, until=now_ts, tz=tz)}

    current_month = months.get(month_key) or {
        'month': month_key,
        'month_name': _month_name(unit_start(wall, 'month')),
        'opening_balance': 0.0,
        'closing_balance': 0.0,
        'income': 0.0,
        'expenses': 0.0,
        'net': 0.0,
        'transaction_count': 0,
    }
    current_year = years.get(year) or {
        'year': year,
        'opening_balance': 0.0,
        'closing_balance': 0.0,
        'income': 0.0,
        'expenses': 0.0,
        'net': 0.0,
        'transaction_count': 0,
    }
    return {'current_month': current_month, 'current_year': current_year}
