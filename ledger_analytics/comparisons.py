"""Totals and period-over-period comparisons."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from .models import EXPENSE, INCOME, Transaction, parse_timestamp, to_wall_clock
from .periods import Bucket, bucket, unit_start


def summarize(records: Sequence[Transaction]) -> Dict[str, float]:
    """Total income, total expenses, net balance and count over ``records``."""
    income = sum(t.amount for t in records if t.type == INCOME)
    expenses = sum(t.amount for t in records if t.type == EXPENSE)
    return {
        'income': float(income),
        'expenses': float(expenses),
        'net': float(income - expenses),
        'transactions': len(records),
    }


def growth_rate(current: float, previous: float) -> float:
    """Percentage change from ``previous``; 0 when the baseline is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def _totals(b: Bucket) -> Dict[str, float]:
    return {
        'income': b.income,
        'expenses': b.expense,
        'net': b.net,
        'transactions': b.transaction_count,
    }


def compare_adjacent_periods(current: Bucket, previous: Bucket) -> Dict[str, Any]:
    """Compare two buckets chosen by the caller.

    Growth figures are percentages. A zero baseline (previous income,
    previous expenses, or previous net) reports 0 growth for that field
    instead of an infinite or undefined value.
    """
    result: Dict[str, Any] = _totals(current)
    result['previous'] = _totals(previous)
    result['growth'] = {
        'income': growth_rate(current.income, previous.income),
        'expenses': growth_rate(current.expense, previous.expense),
        'net': growth_rate(current.net, previous.income - previous.expense),
    }
    return result


def monthly_statistics(
    records: Sequence[Transaction],
    now: Any = None,
    tz: Optional[str] = None,
) -> Dict[str, Dict[str, float]]:
    """This calendar month against last calendar month, relative to ``now``."""
    now_ts = parse_timestamp(now if now is not None else datetime.now().astimezone(), tz)
    this_month = unit_start(to_wall_clock(now_ts, tz), 'month')
    last_month = unit_start(this_month - pd.Timedelta(days=1), 'month')
    previous, current = bucket(records, 'month', last_month, this_month, tz)
    comparison = compare_adjacent_periods(current, previous)
    return {
        'this_month': {k: comparison[k] for k in ('income', 'expenses', 'net', 'transactions')},
        'last_month': comparison['previous'],
        'growth': comparison['growth'],
    }
