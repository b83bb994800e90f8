"""Exception taxonomy for the ledger analytics engine."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error raised by ``ledger_analytics``."""


class InvalidRecord(LedgerError, ValueError):
    """A transaction or purpose failed validation at ingestion."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StoreError(LedgerError):
    """Failure reported by the ledger store (I/O, permission, constraint)."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ComputationError(LedgerError):
    """Internal invariant violated; indicates a programming error."""
