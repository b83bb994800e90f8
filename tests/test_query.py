import pytest

from ledger_analytics.models import Transaction
from ledger_analytics.query import Filters, apply_filters, last_page_for, paginate


def _txn(txn_id, txn_type, description, purpose=None):
    return Transaction(
        id=txn_id,
        date='2024-03-01',
        amount=10,
        type=txn_type,
        description=description,
        purpose_name=purpose,
    )


def _sample():
    return [
        _txn(1, 'expense', 'Monthly Rent', 'Housing'),
        _txn(2, 'expense', 'Groceries', 'Food'),
        _txn(3, 'income', 'Rent received'),
    ]


def test_type_and_search_filters_combine():
    result = apply_filters(_sample(), Filters(type='expense', search_query='rent'))
    assert [t.id for t in result] == [1]
    page = paginate(result, 1, 10)
    assert page.total == 1
    assert page.last_page == 1


def test_purpose_filter_matches_label_exactly():
    assert [t.id for t in apply_filters(_sample(), Filters(purpose='Food'))] == [2]
    assert [t.id for t in apply_filters(_sample(), Filters(purpose='Other'))] == [3]
    assert apply_filters(_sample(), Filters(purpose='food')) == []


def test_no_filters_keeps_everything_in_order():
    assert [t.id for t in apply_filters(_sample(), Filters())] == [1, 2, 3]
    assert not Filters().is_active()
    assert Filters(search_query='x').is_active()


def test_last_page_minimum_is_one():
    assert last_page_for(0, 10) == 1
    assert last_page_for(10, 10) == 1
    assert last_page_for(11, 10) == 2


def test_pages_slice_without_exceeding_per_page():
    records = [_txn(i, 'expense', f'item {i}') for i in range(1, 24)]
    first = paginate(records, 1, 10)
    last = paginate(records, 3, 10)
    assert [t.id for t in first.items] == list(range(1, 11))
    assert [t.id for t in last.items] == [21, 22, 23]
    assert first.total == last.total == 23
    assert first.last_page == 3


def test_page_beyond_end_is_empty():
    page = paginate(_sample(), 5, 2)
    assert page.items == []
    assert page.total == 3
    assert page.last_page == 2


def test_empty_listing():
    page = paginate([], 1, 10)
    assert (page.items, page.total, page.last_page) == ([], 0, 1)


@pytest.mark.parametrize('page, per_page', [(0, 10), (1, 0), (-1, 5)])
def test_invalid_page_arguments(page, per_page):
    with pytest.raises(ValueError):
        paginate(_sample(), page, per_page)
