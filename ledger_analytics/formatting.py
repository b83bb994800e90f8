"""Formatting utilities for currency display."""

from __future__ import annotations

from typing import Union


def format_currency(
    amount: Union[float, int],
    currency_symbol: str = "₦",
    include_sign: bool = True,
) -> str:
    """Format the magnitude of an amount for display.

    The sign is dropped: direction is shown through the transaction type.

    Example:
        >>> format_currency(-1234.5)
        '₦1,234.50'
        >>> format_currency(1234.5, include_sign=False)
        '1,234.50'
    """
    formatted = f"{abs(amount):,.2f}"
    return f"{currency_symbol}{formatted}" if include_sign else formatted
