import pytest

from ledger_analytics import session as session_module
from ledger_analytics.errors import StoreError
from ledger_analytics.session import LedgerSession
from ledger_analytics.store import SQLiteLedgerStore


class FlakyStore(SQLiteLedgerStore):
    """SQLite store that can be told to fail, and records the loading flag."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail = set()
        self.session = None
        self.loading_seen = []

    def _maybe_fail(self, operation):
        if self.session is not None:
            self.loading_seen.append(self.session.loading)
        if operation in self.fail:
            raise StoreError('permission denied', operation=operation)

    def fetch_all(self):
        self._maybe_fail('fetch_all')
        return super().fetch_all()

    def create(self, transaction):
        self._maybe_fail('create')
        return super().create(transaction)


def _row(date, amount, txn_type, description=''):
    return {'date': date, 'amount': amount, 'type': txn_type, 'description': description}


@pytest.fixture
def store(tmp_path):
    store = FlakyStore(tmp_path / 'ledger.db', tz='UTC')
    store.create(_row('2024-03-01', 100, 'income', 'Salary'))
    store.create(_row('2024-03-15', 40, 'expense', 'Rent March'))
    store.create(_row('2024-04-02', 20, 'expense', 'Groceries'))
    return store


@pytest.fixture
def session(store):
    session = LedgerSession(store, per_page=2, tz='UTC')
    store.session = session
    session.refresh()
    return session


def test_refresh_loads_snapshot(session):
    assert session.version == 1
    assert session.total_transactions == 3
    assert session.total_income == 100
    assert session.total_expenses == 60
    assert session.net_balance == 40
    assert [t.description for t in session.transactions] == ['Groceries', 'Rent March', 'Salary']


def _count_calls(monkeypatch, module, name):
    calls = []
    real = getattr(module, name)

    def counting(*args, **kwargs):
        calls.append(args)
        return real(*args, **kwargs)

    monkeypatch.setattr(module, name, counting)
    return calls


def test_views_are_memoized_until_refresh(session, monkeypatch):
    calls = _count_calls(monkeypatch, session_module.balances, 'monthly_balances')
    first = session.monthly_balances
    assert session.monthly_balances == first
    assert len(calls) == 1
    assert [row['closing_balance'] for row in first] == [60.0, 40.0]

    session.create(_row('2024-04-20', 5, 'expense'))
    assert session.version == 2
    refreshed = session.monthly_balances
    assert len(calls) == 2
    assert [row['closing_balance'] for row in refreshed] == [60.0, 35.0]


def test_changing_a_returned_view_does_not_leak(session):
    session.recent_activity().clear()
    assert len(session.recent_activity()) == 3

    totals = session.category_totals
    totals['Injected'] = 1.0
    assert session.category_totals == {'Other': 60.0}

    session.monthly_balances[0]['closing_balance'] = -1
    assert session.monthly_balances[0]['closing_balance'] == 60.0

    series = session.trend_series('month')
    series[0].income = 0.0
    assert session.trend_series('month')[0].income == 100.0

    session.export_grouped().append({'month': '1999-01'})
    assert len(session.export_grouped()) == 5

    session.filtered.clear()
    assert session.current_page.total == 3


def test_loading_flag_is_set_during_store_calls(session, store):
    store.loading_seen.clear()
    session.refresh()
    assert store.loading_seen == [True]
    assert session.loading is False


def test_failed_create_keeps_last_known_good(session, store, monkeypatch):
    totals = session.summary
    calls = _count_calls(monkeypatch, session_module.comparisons, 'summarize')
    store.fail.add('create')
    with pytest.raises(StoreError):
        session.create(_row('2024-04-21', 1000, 'income'))
    assert session.error == 'permission denied'
    assert session.loading is False
    assert session.version == 1
    assert session.total_transactions == 3
    assert session.summary == totals
    assert calls == []


def test_failed_refresh_keeps_snapshot(session, store):
    categories = session.category_totals
    store.fail.add('fetch_all')
    with pytest.raises(StoreError):
        session.refresh()
    assert session.total_transactions == 3
    assert session.category_totals == categories
    session.clear_error()
    assert session.error is None


def test_successful_call_clears_previous_error(session, store):
    store.fail.add('fetch_all')
    with pytest.raises(StoreError):
        session.refresh()
    store.fail.clear()
    session.refresh()
    assert session.error is None


def test_mutations_refresh_views(session):
    target = session.transactions[0]
    session.update(target.id, {'amount': 25})
    assert session.total_expenses == 65
    session.delete(target.id)
    assert session.total_transactions == 2
    session.delete_many([t.id for t in session.transactions])
    assert session.total_transactions == 0
    assert session.monthly_balances == []


def test_set_filter_resets_page(session):
    session.set_page(2)
    page = session.set_filter('type', 'expense')
    assert session.page == 1
    assert page.total == 2
    assert [t.description for t in page.items] == ['Groceries', 'Rent March']


def test_set_page_does_not_reapply_filters(session, monkeypatch):
    calls = []
    real = session_module.apply_filters

    def counting(records, filters):
        calls.append(filters)
        return real(records, filters)

    monkeypatch.setattr(session_module, 'apply_filters', counting)
    session.set_filter('search_query', 'r')
    assert len(calls) == 1
    page = session.set_page(2)
    assert len(calls) == 1
    assert page.page == 2
    assert page.last_page == 2


def test_page_beyond_last_is_empty(session):
    page = session.set_page(9)
    assert page.items == []
    assert page.total == 3


def test_unknown_filter_key(session):
    with pytest.raises(ValueError):
        session.set_filter('amount', '10')


def test_export_rows_cover_every_filtered_page(session):
    session.set_filter('type', 'expense')
    session.per_page = 1
    rows = session.export_rows()
    assert [r['description'] for r in rows] == ['Groceries', 'Rent March']


def test_export_grouped_uses_full_snapshot(session):
    session.set_filter('type', 'income')
    rows = session.export_grouped()
    assert [r.get('month') for r in rows if 'month' in r] == ['2024-03', '2024-04']
    assert len(rows) == 5


def test_statistics_and_current_balances(session):
    stats = session.statistics(now='2024-04-10')
    assert stats['this_month']['expenses'] == 20
    assert stats['last_month']['income'] == 100
    assert session.statistics(now='2024-04-10') == stats
    current = session.current_period_balances(now='2024-04-10')
    assert current['current_month']['opening_balance'] == 60
    assert current['current_month']['closing_balance'] == 40


def test_chart_views(session):
    assert len(session.period_chart_data('month', '2024-03-05')) == 31
    assert [b.period_key for b in session.trend_series('month')] == ['2024-03', '2024-04']
    assert session.recent_daily_series(days=3)[-1].period_key == '2024-04-02'
    assert [t.description for t in session.recent_activity(2)] == ['Groceries', 'Rent March']
    assert session.category_chart_data == [
        {'name': 'Other', 'value': 60.0},
    ]
    assert [row['year'] for row in session.yearly_balances] == [2024]


def test_refresh_purposes(session, store):
    store.create_purpose('Food')
    session.refresh_purposes()
    assert [p.name for p in session.purposes] == ['Food']
    assert session.version == 1


def test_refresh_purposes_with_search(session, store):
    store.create_purpose('Food')
    store.create_purpose('Rent')
    session.refresh_purposes('ren')
    assert [p.name for p in session.purposes] == ['Rent']
