"""Top-level package for the ledger analytics engine.

The engine derives time-bucketed aggregates, running balances, period
comparisons and category breakdowns from a snapshot of income/expense
transactions. The primary modules are:

* ``models`` – validated transaction and purpose records
* ``periods`` – calendar bucketing with gap filling
* ``balances`` – running opening/closing balances
* ``comparisons`` – totals and period-over-period growth
* ``projections`` – category totals, recent activity, exports, chart series
* ``query`` – listing filters and pagination
* ``store`` – the ledger store interface and SQLite adapter
* ``session`` – a caller-owned cache tying the store to the views
* ``visualization`` – Plotly figures for the chart series
"""

from . import balances  # noqa: F401  # re-exported for convenience
from . import comparisons  # noqa: F401
from . import periods  # noqa: F401
from . import projections  # noqa: F401
from . import query  # noqa: F401
from .errors import ComputationError, InvalidRecord, LedgerError, StoreError
from .models import Purpose, Transaction
from .periods import Bucket
from .session import LedgerSession
from .store import LedgerStore, SQLiteLedgerStore

__all__ = [
    "balances",
    "comparisons",
    "periods",
    "projections",
    "query",
    "Bucket",
    "ComputationError",
    "InvalidRecord",
    "LedgerError",
    "LedgerSession",
    "LedgerStore",
    "Purpose",
    "SQLiteLedgerStore",
    "StoreError",
    "Transaction",
]
