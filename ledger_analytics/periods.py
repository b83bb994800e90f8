"""Calendar bucketing of transactions.

Every public function here returns one bucket per calendar unit in the
requested range, including units with no transactions, so chart series
never have gaps. Calendar boundaries are evaluated in the configured
canonical timezone (see :func:`ledger_analytics.config.get_timezone`).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .models import EXPENSE, INCOME, TRANSACTION_TYPES, Transaction, parse_timestamp, records_frame, to_wall_clock

GRANULARITIES = ('hour', 'day', 'week', 'month', 'year')

_RANGE_FREQ = {
    'hour': 'h',
    'day': 'D',
    'week': '7D',
    'month': 'MS',
    'year': 'YS',
}

_KEY_FORMAT = {
    'hour': '%Y-%m-%dT%H:00',
    'day': '%Y-%m-%d',
    'week': '%Y-%m-%d',
    'month': '%Y-%m',
    'year': '%Y',
}


@dataclass
class Bucket:
    """Income/expense aggregate for one calendar unit."""

    period_key: str
    start: pd.Timestamp
    granularity: str
    income: float = 0.0
    expense: float = 0.0
    transaction_count: int = 0
    opening_balance: Optional[float] = None
    closing_balance: Optional[float] = None

    @property
    def net(self) -> float:
        return self.income - self.expense

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['start'] = self.start.isoformat()
        data['net'] = self.net
        return data


def _check_granularity(granularity: str) -> None:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity '{granularity}'. Expected one of {GRANULARITIES}.")


def unit_start(ts: pd.Timestamp, granularity: str) -> pd.Timestamp:
    """Start of the calendar unit containing the naive wall-clock ``ts``.

    Weeks begin on Sunday.
    """
    _check_granularity(granularity)
    if granularity == 'hour':
        return ts.replace(minute=0, second=0, microsecond=0, nanosecond=0)
    day = ts.normalize()
    if granularity == 'day':
        return day
    if granularity == 'week':
        return day - pd.Timedelta(days=(day.dayofweek + 1) % 7)
    if granularity == 'month':
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def _unit_starts(dates: pd.Series, granularity: str) -> pd.Series:
    """Vectorized :func:`unit_start` over a naive datetime series."""
    if granularity == 'hour':
        return dates.dt.floor('h')
    days = dates.dt.normalize()
    if granularity == 'day':
        return days
    if granularity == 'week':
        return days - pd.to_timedelta((days.dt.dayofweek + 1) % 7, unit='D')
    if granularity == 'month':
        return days.dt.to_period('M').dt.start_time
    return days.dt.to_period('Y').dt.start_time


def period_key(start: pd.Timestamp, granularity: str) -> str:
    _check_granularity(granularity)
    return start.strftime(_KEY_FORMAT[granularity])


def _wall_clock(value: Any, tz: Optional[str]) -> pd.Timestamp:
    return to_wall_clock(parse_timestamp(value, tz), tz)


def unit_range(range_start: Any, range_end: Any, granularity: str, tz: Optional[str] = None) -> List[pd.Timestamp]:
    """Ordered unit starts covering ``[range_start, range_end]`` inclusive.

    Both bounds are snapped to the start of their unit first, so a range of
    ``2024-03-15`` .. ``2024-04-02`` at month granularity yields March and
    April. Returns an empty list when ``range_start > range_end``.
    """
    _check_granularity(granularity)
    start = _wall_clock(range_start, tz)
    end = _wall_clock(range_end, tz)
    if start > end:
        return []
    first = unit_start(start, granularity)
    last = unit_start(end, granularity)
    return list(pd.date_range(first, last, freq=_RANGE_FREQ[granularity]))


def _empty_buckets(starts: Sequence[pd.Timestamp], granularity: str) -> List[Bucket]:
    return [Bucket(period_key(s, granularity), s, granularity) for s in starts]


def _fill(starts: List[pd.Timestamp], records: Sequence[Transaction], granularity: str, tz: Optional[str]) -> List[Bucket]:
    if not starts:
        return []
    frame = records_frame(records, tz)
    if frame.empty:
        return _empty_buckets(starts, granularity)

    frame['unit'] = _unit_starts(frame['date'], granularity)
    index = pd.DatetimeIndex(starts).astype('datetime64[ns]')
    sums = (
        frame.groupby(['unit', 'type'])['amount']
        .sum()
        .unstack(fill_value=0.0)
        .reindex(index=index, columns=list(TRANSACTION_TYPES), fill_value=0.0)
    )
    counts = frame.groupby('unit').size().reindex(index, fill_value=0)

    buckets = []
    for start in index:
        buckets.append(
            Bucket(
                period_key=period_key(start, granularity),
                start=start,
                granularity=granularity,
                income=float(sums.at[start, INCOME]),
                expense=float(sums.at[start, EXPENSE]),
                transaction_count=int(counts.at[start]),
            )
        )
    return buckets


def bucket(
    records: Sequence[Transaction],
    granularity: str,
    range_start: Any,
    range_end: Any,
    tz: Optional[str] = None,
) -> List[Bucket]:
    """Aggregate ``records`` into one bucket per calendar unit in range.

    Units with no transactions still produce a zeroed bucket. Records whose
    unit falls outside the range are ignored. The result is strictly
    ascending with no duplicate keys.

    Units are wall-clock units in ``tz``. On a daylight-saving fall-back day
    the repeated hour is one ``hour`` bucket holding both real hours, and a
    skipped spring-forward hour still gets an (empty) bucket.
    """
    return _fill(unit_range(range_start, range_end, granularity, tz), records, granularity, tz)


def bucket_span(
    records: Sequence[Transaction],
    granularity: str,
    until: Any = None,
    tz: Optional[str] = None,
) -> List[Bucket]:
    """Buckets from the earliest record's unit through the latest one.

    ``until`` extends the span forward (e.g. to the current month) when it
    falls after the last record. Returns an empty list for no records.
    """
    _check_granularity(granularity)
    if not records:
        return []
    dates = [r.local_date(tz) for r in records]
    first, last = min(dates), max(dates)
    if until is not None:
        until_ts = parse_timestamp(until, tz)
        if until_ts > last:
            last = until_ts
    return bucket(records, granularity, first, last, tz)
