"""Plotly figures for the ledger chart views.

Each function accepts the output of a projection (bucket series or
category totals) and returns a ``plotly.graph_objects.Figure``. Rendering
the figure is left to the host application.
"""

from __future__ import annotations

from typing import Dict, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .periods import Bucket


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def buckets_frame(buckets: Sequence[Bucket]) -> pd.DataFrame:
    """One row per bucket with period, income, expense, net and balances."""
    return pd.DataFrame(
        [
            {
                'Period': b.period_key,
                'Income': b.income,
                'Expense': b.expense,
                'Net': b.net,
                'Opening Balance': b.opening_balance,
                'Closing Balance': b.closing_balance,
            }
            for b in buckets
        ],
        columns=['Period', 'Income', 'Expense', 'Net', 'Opening Balance', 'Closing Balance'],
    )


def create_income_expense_chart(buckets: Sequence[Bucket], title: str | None = None) -> go.Figure:
    """Grouped income vs expense bars per period.

    Parameters
    ----------
    buckets : sequence of Bucket
        Output of :func:`ledger_analytics.periods.bucket` or one of the
        chart projections.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart with one income and one expense bar per period.
    """
    if not buckets:
        return _empty_figure()
    df = buckets_frame(buckets)
    long_df = df.melt(id_vars='Period', value_vars=['Income', 'Expense'], var_name='Type', value_name='Amount')
    fig = px.bar(long_df, x='Period', y='Amount', color='Type', barmode='group')
    fig.update_layout(
        title=title or "Income vs expenses",
        xaxis_title="Period",
        yaxis_title="Amount",
    )
    return fig


def create_balance_chart(buckets: Sequence[Bucket], title: str | None = None) -> go.Figure:
    """Closing balance line for accumulated buckets.

    Buckets must come from :func:`ledger_analytics.balances.accumulate`;
    ``ValueError`` is raised when balances are missing.
    """
    if not buckets:
        return _empty_figure()
    if any(b.closing_balance is None for b in buckets):
        raise ValueError("Buckets carry no balances; run balances.accumulate first")
    df = buckets_frame(buckets)
    fig = px.line(df, x='Period', y='Closing Balance', markers=True)
    fig.update_layout(
        title=title or "Running balance",
        xaxis_title="Period",
        yaxis_title="Balance",
    )
    return fig


def create_category_pie_chart(totals: Dict[str, float], title: str | None = None) -> go.Figure:
    """Pie chart of expense totals by purpose."""
    if not totals:
        return _empty_figure()
    df = pd.DataFrame({'Category': list(totals.keys()), 'Value': list(totals.values())})
    fig = px.pie(df, names='Category', values='Value')
    fig.update_layout(title=title or "Spending by purpose")
    return fig
