"""Filtering and pagination of the transaction listing."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import List, Sequence

from .models import Transaction

FILTER_KEYS = ('purpose', 'type', 'search_query')


@dataclass
class Filters:
    """Active listing filters. An empty string disables a filter."""

    purpose: str = ''
    type: str = ''
    search_query: str = ''

    def is_active(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


@dataclass
class Page:
    items: List[Transaction] = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 10
    last_page: int = 1


def apply_filters(records: Sequence[Transaction], filters: Filters) -> List[Transaction]:
    """Records matching every active filter, in their original order.

    ``purpose`` matches the resolved purpose label exactly (untagged records
    match ``"Other"``), ``type`` matches exactly and ``search_query`` is a
    case-insensitive substring match on the description.
    """
    result = list(records)
    if filters.purpose:
        result = [t for t in result if t.purpose_label == filters.purpose]
    if filters.type:
        result = [t for t in result if t.type == filters.type]
    if filters.search_query:
        needle = filters.search_query.lower()
        result = [t for t in result if needle in t.description.lower()]
    return result


def last_page_for(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page))


def paginate(records: Sequence[Transaction], page: int, per_page: int) -> Page:
    """Slice ``records`` into page ``page`` (1-based).

    A page past the end yields no items rather than an error.
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if per_page < 1:
        raise ValueError(f"per_page must be >= 1, got {per_page}")
    total = len(records)
    start = (page - 1) * per_page
    return Page(
        items=list(records[start:start + per_page]),
        total=total,
        page=page,
        per_page=per_page,
        last_page=last_page_for(total, per_page),
    )
