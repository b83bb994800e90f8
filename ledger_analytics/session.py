"""Caller-owned cache of the ledger and its derived views.

``LedgerSession`` holds the last record set fetched from a
:class:`~ledger_analytics.store.LedgerStore` together with the listing
filter and page state. Derived views are computed by the pure functions in
:mod:`periods`, :mod:`balances`, :mod:`comparisons` and :mod:`projections`
and memoized per data version; a successful refresh bumps the version and
drops every cached view. Every read returns a fresh copy, so changing a
returned list or dict never affects later reads.

A failed store call leaves the previous snapshot and views in place,
records the message in :attr:`LedgerSession.error` and re-raises.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple, TypeVar

from . import balances, comparisons, projections
from .config import DEFAULT_PER_PAGE, RECENT_ACTIVITY_LIMIT
from .errors import StoreError
from .logging_setup import get_logger
from .models import Purpose, Transaction
from .periods import Bucket
from .query import FILTER_KEYS, Filters, Page, apply_filters, paginate
from .store import LedgerStore, TransactionInput

logger = get_logger(__name__)

T = TypeVar('T')


class LedgerSession:
    def __init__(
        self,
        store: LedgerStore,
        per_page: int = DEFAULT_PER_PAGE,
        tz: Optional[str] = None,
    ):
        self.store = store
        self.tz = tz
        self.transactions: Tuple[Transaction, ...] = ()
        self.purposes: Tuple[Purpose, ...] = ()
        self.filters = Filters()
        self.page = 1
        self.per_page = per_page
        self.loading = False
        self.error: Optional[str] = None
        self.version = 0
        self._views: Dict[Hashable, Any] = {}
        self._filtered: Optional[List[Transaction]] = None

    # -- store boundary --------------------------------------------------

    def _call_store(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        self.loading = True
        self.error = None
        try:
            return func(*args)
        except StoreError as exc:
            self.error = str(exc)
            logger.warning("Store %s failed: %s", operation, exc)
            raise
        finally:
            self.loading = False

    def refresh(self) -> None:
        """Replace the snapshot with the store's full record set."""
        transactions = self._call_store('fetch_all', self.store.fetch_all)
        self.transactions = tuple(transactions)
        self.version += 1
        self._views.clear()
        self._filtered = None
        logger.debug("Refreshed ledger: %d transactions (version %d)", len(self.transactions), self.version)

    def refresh_purposes(self, search: str = '') -> None:
        self.purposes = tuple(self._call_store('fetch_purposes', self.store.fetch_purposes, search))

    def create(self, transaction: TransactionInput) -> Transaction:
        created = self._call_store('create', self.store.create, transaction)
        self.refresh()
        return created

    def update(self, transaction_id: Any, fields: Mapping[str, Any]) -> Transaction:
        updated = self._call_store('update', self.store.update, transaction_id, fields)
        self.refresh()
        return updated

    def delete(self, transaction_id: Any) -> None:
        self._call_store('delete', self.store.delete, transaction_id)
        self.refresh()

    def delete_many(self, transaction_ids: Iterable[Any]) -> None:
        self._call_store('delete_many', self.store.delete_many, list(transaction_ids))
        self.refresh()

    def clear_error(self) -> None:
        self.error = None

    # -- memoized views --------------------------------------------------

    def _view(self, key: Hashable, compute: Callable[[], T]) -> T:
        # callers get their own copy; the cached value is never handed out
        cache_key = (self.version, key)
        if cache_key not in self._views:
            self._views[cache_key] = compute()
        return copy.deepcopy(self._views[cache_key])

    @property
    def summary(self) -> Dict[str, float]:
        return self._view('summary', lambda: comparisons.summarize(self.transactions))

    @property
    def total_income(self) -> float:
        return self.summary['income']

    @property
    def total_expenses(self) -> float:
        return self.summary['expenses']

    @property
    def net_balance(self) -> float:
        return self.summary['net']

    @property
    def total_transactions(self) -> int:
        return len(self.transactions)

    def recent_activity(self, n: int = RECENT_ACTIVITY_LIMIT) -> List[Transaction]:
        return self._view(('recent', n), lambda: projections.recent_activity(self.transactions, n))

    @property
    def category_totals(self) -> Dict[str, float]:
        return self._view('categories', lambda: projections.category_totals(self.transactions))

    @property
    def category_chart_data(self) -> List[Dict[str, Any]]:
        return self._view('category_chart', lambda: projections.category_chart_data(self.transactions))

    @property
    def monthly_balances(self) -> List[Dict[str, Any]]:
        return self._view('monthly_balances', lambda: balances.monthly_balances(self.transactions, tz=self.tz))

    @property
    def yearly_balances(self) -> List[Dict[str, Any]]:
        return self._view('yearly_balances', lambda: balances.yearly_balances(self.transactions, tz=self.tz))

    def statistics(self, now: Any = None) -> Dict[str, Dict[str, float]]:
        # ``now=None`` reads the clock, so it is never cached
        if now is None:
            return comparisons.monthly_statistics(self.transactions, tz=self.tz)
        return self._view(('statistics', str(now)), lambda: comparisons.monthly_statistics(self.transactions, now, self.tz))

    def current_period_balances(self, now: Any = None) -> Dict[str, Dict[str, Any]]:
        if now is None:
            return balances.current_period_balances(self.transactions, tz=self.tz)
        return self._view(
            ('current_period', str(now)),
            lambda: balances.current_period_balances(self.transactions, now, self.tz),
        )

    def period_chart_data(self, view: str, anchor: Any) -> List[Bucket]:
        return self._view(
            ('period_chart', view, str(anchor)),
            lambda: projections.period_chart_data(self.transactions, view, anchor, self.tz),
        )

    def trend_series(self, granularity: str) -> List[Bucket]:
        return self._view(('trend', granularity), lambda: projections.trend_series(self.transactions, granularity, self.tz))

    def recent_daily_series(self, days: int = 71) -> List[Bucket]:
        return self._view(('recent_daily', days), lambda: projections.recent_daily_series(self.transactions, days, self.tz))

    # -- listing ---------------------------------------------------------

    @property
    def filtered(self) -> List[Transaction]:
        if self._filtered is None:
            self._filtered = apply_filters(self.transactions, self.filters)
        return list(self._filtered)

    def set_filter(self, key: str, value: str) -> Page:
        """Change one filter; the listing goes back to page 1."""
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter '{key}'. Expected one of {FILTER_KEYS}.")
        setattr(self.filters, key, value or '')
        self.page = 1
        self._filtered = None
        return self.current_page

    def set_page(self, page: int) -> Page:
        """Move to ``page`` without re-applying filters."""
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        self.page = page
        return self.current_page

    @property
    def current_page(self) -> Page:
        return paginate(self.filtered, self.page, self.per_page)

    def export_rows(self) -> List[Dict[str, Any]]:
        """Flat export of the filtered listing (all pages)."""
        return projections.export_rows(self.filtered)

    def export_grouped(self) -> List[Dict[str, Any]]:
        return self._view('export_grouped', lambda: projections.export_grouped(self.transactions, self.tz))
