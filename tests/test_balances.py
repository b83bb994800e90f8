import pandas as pd
import pytest

from ledger_analytics.balances import accumulate, current_period_balances, monthly_balances, yearly_balances
from ledger_analytics.errors import ComputationError
from ledger_analytics.models import Transaction
from ledger_analytics.periods import Bucket, bucket


def _txn(date, amount, txn_type):
    return Transaction(id=None, date=date, amount=amount, type=txn_type)


def _bucket(day, income, expense):
    start = pd.Timestamp('2024-01-01') + pd.Timedelta(days=day)
    return Bucket(start.strftime('%Y-%m-%d'), start, 'day', income=income, expense=expense)


def test_accumulate_matches_example():
    records = [
        _txn('2024-03-01', 100, 'income'),
        _txn('2024-03-15', 40, 'expense'),
        _txn('2024-04-02', 20, 'expense'),
    ]
    march, april = accumulate(bucket(records, 'month', '2024-03-01', '2024-04-30', tz='UTC'))
    assert (march.income, march.expense, march.net) == (100, 40, 60)
    assert (march.opening_balance, march.closing_balance) == (0, 60)
    assert (april.income, april.expense, april.net) == (0, 20, -20)
    assert (april.opening_balance, april.closing_balance) == (60, 40)


def test_closing_balance_is_prefix_sum_of_net():
    buckets = [_bucket(i, income, expense) for i, (income, expense) in enumerate(
        [(10.1, 3.3), (0, 7.7), (250.25, 0), (0, 0), (1.1, 99.9), (0.3, 0.1)]
    )]
    result = accumulate(buckets)
    assert result[0].opening_balance == 0
    running = 0.0
    for i, b in enumerate(result):
        assert b.opening_balance == pytest.approx(running)
        running += buckets[i].net
        assert b.closing_balance == pytest.approx(sum(x.net for x in buckets[: i + 1]))
        assert b.closing_balance == pytest.approx(b.opening_balance + b.net)


def test_accumulate_is_deterministic_and_pure():
    buckets = [_bucket(i, i * 1.5, i * 0.7) for i in range(10)]
    first = accumulate(buckets)
    second = accumulate(buckets)
    assert first == second
    assert all(b.opening_balance is None for b in buckets)


def test_accumulate_rejects_unordered_buckets():
    buckets = [_bucket(2, 1, 0), _bucket(1, 1, 0)]
    with pytest.raises(ComputationError):
        accumulate(buckets)
    with pytest.raises(ComputationError):
        accumulate([_bucket(1, 1, 0), _bucket(1, 2, 0)])


def test_accumulate_empty():
    assert accumulate([]) == []


def test_monthly_balances_carry_through_gap_months():
    records = [_txn('2024-01-05', 100, 'income'), _txn('2024-03-05', 30, 'expense')]
    rows = monthly_balances(records, tz='UTC')
    assert [r['month'] for r in rows] == ['2024-01', '2024-02', '2024-03']
    assert rows[1]['opening_balance'] == 100
    assert rows[1]['closing_balance'] == 100
    assert rows[2]['closing_balance'] == 70
    assert rows[0]['month_name'] == 'Jan 2024'
    assert rows[2]['transaction_count'] == 1


def test_yearly_balances():
    records = [_txn('2023-06-01', 500, 'income'), _txn('2024-02-01', 200, 'expense')]
    rows = yearly_balances(records, tz='UTC')
    assert [(r['year'], r['opening_balance'], r['closing_balance']) for r in rows] == [
        (2023, 0.0, 500.0),
        (2024, 500.0, 300.0),
    ]


def test_current_period_balances_carry_forward():
    records = [_txn('2024-01-05', 100, 'income')]
    current = current_period_balances(records, now='2024-03-15', tz='UTC')
    month = current['current_month']
    assert month['month'] == '2024-03'
    assert month['month_name'] == 'Mar 2024'
    assert (month['opening_balance'], month['closing_balance'], month['transaction_count']) == (100, 100, 0)
    year = current['current_year']
    assert (year['year'], year['opening_balance'], year['closing_balance']) == (2024, 0, 100)


def test_current_period_balances_without_history():
    current = current_period_balances([], now='2024-03-15', tz='UTC')
    assert current['current_month']['month'] == '2024-03'
    assert current['current_month']['closing_balance'] == 0
    assert current['current_year']['year'] == 2024
    assert current['current_year']['transaction_count'] == 0
