"""Record model for ledger transactions and purposes.

Transactions are validated once, when they are constructed. Everything
downstream (bucketing, balances, projections, filters) trusts that a
``Transaction`` has a non-negative amount, a recognised type and a
timezone-aware date.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .config import get_timezone
from .errors import InvalidRecord

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)
OTHER_PURPOSE = 'Other'

FRAME_COLUMNS = ['id', 'date', 'amount', 'type', 'description', 'purpose']

_DATE_TYPES = (str, datetime, date, pd.Timestamp, np.datetime64)


def _raw_timestamp(value: Any) -> pd.Timestamp:
    """Validate ``value`` as a calendar timestamp, keeping its offset (or lack of one)."""
    if value is None or isinstance(value, bool) or not isinstance(value, _DATE_TYPES):
        raise InvalidRecord(f"Unparseable date {value!r}", field='date')
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidRecord("Date is required", field='date')
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError) as exc:
        raise InvalidRecord(f"Unparseable date {value!r}", field='date') from exc
    if pd.isna(ts):
        raise InvalidRecord(f"Unparseable date {value!r}", field='date')
    return ts


def _localize(ts: pd.Timestamp, zone: str) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts.tz_localize(zone, ambiguous=False, nonexistent='shift_forward')
    return ts.tz_convert(zone)


def parse_timestamp(value: Any, tz: Optional[str] = None) -> pd.Timestamp:
    """Parse ``value`` into a timestamp in the canonical timezone.

    Naive values (including date-only strings) are read as wall-clock time
    in ``tz``; offset-aware values are converted into it.
    """
    zone = get_timezone(tz)
    return _localize(_raw_timestamp(value), zone)


def parse_amount(value: Any) -> float:
    """Parse a non-negative, finite amount magnitude."""
    if value is None or isinstance(value, bool):
        raise InvalidRecord(f"Invalid amount {value!r}", field='amount')
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRecord(f"Invalid amount {value!r}", field='amount') from exc
    if not math.isfinite(number):
        raise InvalidRecord(f"Amount must be finite, got {value!r}", field='amount')
    if number < 0:
        raise InvalidRecord(
            f"Amount must be non-negative, got {value!r}; use type to carry the sign",
            field='amount',
        )
    return number + 0.0


def parse_type(value: Any) -> str:
    if value not in TRANSACTION_TYPES:
        raise InvalidRecord(
            f"Transaction type must be one of {TRANSACTION_TYPES}, got {value!r}",
            field='type',
        )
    return value


def to_wall_clock(ts: pd.Timestamp, tz: Optional[str] = None) -> pd.Timestamp:
    """Naive wall-clock time of ``ts`` in the canonical timezone."""
    return ts.tz_convert(get_timezone(tz)).tz_localize(None)


@dataclass(frozen=True)
class Purpose:
    id: Any
    name: str
    created_at: Optional[str] = None

    def __post_init__(self) -> None:
        name = self.name.strip() if isinstance(self.name, str) else ''
        if not name:
            raise InvalidRecord("Purpose name is required", field='name')
        object.__setattr__(self, 'name', name)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'Purpose':
        return cls(
            id=record.get('id'),
            name=record.get('name'),
            created_at=record.get('created_at'),
        )


@dataclass(frozen=True)
class Transaction:
    """A single income or expense entry.

    ``amount`` is always the magnitude; ``type`` carries the direction.
    ``purpose_name`` is the resolved label of ``purpose_id`` when known.

    A date given without an offset is a floating wall-clock time: it is
    stored localized in ``LEDGER_TIMEZONE`` but every computation reads it
    as the same wall-clock time in whichever zone that computation uses.
    ``from_record(record, tz)`` with an explicit ``tz`` pins naive dates to
    that zone instead. Offset-aware dates are fixed instants.
    """

    id: Any
    date: pd.Timestamp
    amount: float
    type: str
    description: str = ''
    purpose_id: Optional[Any] = None
    purpose_name: Optional[str] = None
    created_at: Optional[str] = field(default=None, compare=False)
    updated_at: Optional[str] = field(default=None, compare=False)
    floating: bool = field(default=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not (isinstance(self.date, pd.Timestamp) and self.date.tzinfo is not None):
            raw = _raw_timestamp(self.date)
            if raw.tzinfo is None:
                object.__setattr__(self, 'floating', True)
            object.__setattr__(self, 'date', _localize(raw, get_timezone()))
        object.__setattr__(self, 'amount', parse_amount(self.amount))
        object.__setattr__(self, 'type', parse_type(self.type))
        object.__setattr__(self, 'description', '' if self.description is None else str(self.description))

    @property
    def purpose_label(self) -> str:
        return self.purpose_name or OTHER_PURPOSE

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type == INCOME else -self.amount

    def local_date(self, tz: Optional[str] = None) -> pd.Timestamp:
        """The date as an aware timestamp in ``tz``."""
        zone = get_timezone(tz)
        if self.floating:
            return _localize(self.date.tz_localize(None), zone)
        return self.date.tz_convert(zone)

    def wall_clock(self, tz: Optional[str] = None) -> pd.Timestamp:
        """Naive wall-clock time of the date in ``tz``."""
        return self.local_date(tz).tz_localize(None)

    @classmethod
    def from_record(cls, record: Mapping[str, Any], tz: Optional[str] = None) -> 'Transaction':
        """Build a transaction from a store row.

        The purpose label may arrive flat (``purpose_name``) or as a nested
        mapping under ``purpose`` / ``transaction_purposes``.
        """
        purpose_name = record.get('purpose_name')
        for key in ('purpose', 'transaction_purposes'):
            nested = record.get(key)
            if purpose_name is None and isinstance(nested, Mapping):
                purpose_name = nested.get('name')
            elif purpose_name is None and isinstance(nested, str):
                purpose_name = nested
        date_value = record.get('date')
        return cls(
            id=record.get('id'),
            date=parse_timestamp(date_value, tz) if tz is not None else date_value,
            amount=record.get('amount'),
            type=record.get('type'),
            description=record.get('description') or '',
            purpose_id=record.get('purpose_id'),
            purpose_name=purpose_name or None,
            created_at=record.get('created_at'),
            updated_at=record.get('updated_at'),
        )

    def to_record(self) -> Dict[str, Any]:
        date_value = self.date.tz_localize(None) if self.floating else self.date
        return {
            'id': self.id,
            'date': date_value.isoformat(),
            'amount': self.amount,
            'type': self.type,
            'description': self.description,
            'purpose_id': self.purpose_id,
            'purpose_name': self.purpose_name,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


def resolve_purposes(
    transactions: Iterable[Transaction], purposes: Iterable[Purpose]
) -> List[Transaction]:
    """Return copies of ``transactions`` with purpose names looked up by id."""
    names = {p.id: p.name for p in purposes}
    resolved = []
    for txn in transactions:
        name = names.get(txn.purpose_id) if txn.purpose_id is not None else None
        resolved.append(replace(txn, purpose_name=name))
    return resolved


def records_frame(transactions: Sequence[Transaction], tz: Optional[str] = None) -> pd.DataFrame:
    """Frame view of ``transactions`` used by the aggregation code.

    ``date`` holds naive wall-clock times in the canonical timezone so that
    calendar arithmetic never depends on the host's local zone. Row order
    follows the input.
    """
    zone = get_timezone(tz)
    frame = pd.DataFrame(
        [
            {
                'id': t.id,
                'date': t.wall_clock(zone),
                'amount': t.amount,
                'type': t.type,
                'description': t.description,
                'purpose': t.purpose_label,
            }
            for t in transactions
        ],
        columns=FRAME_COLUMNS,
    )
    frame['date'] = pd.to_datetime(frame['date']).astype('datetime64[ns]')
    frame['amount'] = frame['amount'].astype(float)
    return frame
