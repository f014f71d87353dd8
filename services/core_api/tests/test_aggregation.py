from datetime import date
from decimal import Decimal

from spa_manager.services.aggregation import (
    NO_SELLER_LABEL,
    UNNAMED_PRODUCT_LABEL,
    Dimension,
    aggregate,
    aggregate_by_agent,
    aggregate_by_day,
    aggregate_by_month,
    aggregate_by_product,
)
from spa_manager.services.records import PeriodFilter, PeriodMode, ProductRef, SaleRecord


def _sale(sale_id, day='2024-05-01', **kwargs):
    return SaleRecord(id=sale_id, occurred_on=day, branch_id='1', **kwargs)


def test_by_day_stops_at_today_in_current_month():
    sales = [_sale('1', '2024-05-01'), _sale('2', '2024-05-01'), _sale('3', '2024-05-10'), _sale('4', '2024-05-20')]
    buckets = aggregate_by_day(sales, 2024, 5, date(2024, 5, 10))
    assert len(buckets) == 10
    assert buckets[0].key == '2024-05-01'
    assert buckets[0].label == '1'
    assert buckets[0].value == 2
    assert buckets[9].value == 1
    assert sum(b.value for b in buckets) == 3


def test_by_day_past_month_covers_every_day_and_future_month_is_empty():
    assert len(aggregate_by_day([], 2024, 2, date(2024, 5, 10))) == 29
    assert aggregate_by_day([_sale('1', '2024-06-01')], 2024, 6, date(2024, 5, 10)) == []


def test_by_day_skips_cancelled_and_undated():
    sales = [_sale('1'), _sale('2', is_deleted=True), _sale('3', ''), _sale('4', status='cancelled')]
    buckets = aggregate_by_day(sales, 2024, 5, date(2024, 5, 31))
    assert sum(b.value for b in buckets) == 1


def test_by_month_always_has_twelve_buckets():
    sales = [_sale('1', '2024-01-15'), _sale('2', '2024-03-02'), _sale('3', '2024-03-09'), _sale('4', '2024-08-01')]
    buckets = aggregate_by_month(sales, 2024, date(2024, 5, 10))
    assert [b.label for b in buckets][:3] == ['Jan', 'Feb', 'Mar']
    assert len(buckets) == 12
    assert [b.value for b in buckets] == [1, 0, 2, 0, 0, 0, 0, 0, 0, 0, 0, 0]

    past = aggregate_by_month(sales, 2024, date(2025, 1, 1))
    assert past[7].value == 1


def test_by_agent_resolution_order_and_stable_ties():
    sales = [
        _sale('1', seller_name='Maria'),
        _sale('2', linked_seller_name='Sarah'),
        _sale('3', seller_id='u9'),
        _sale('4'),
        _sale('5', seller_name='Sarah'),
        _sale('6', seller_name='Explicit', linked_seller_name='Linked'),
    ]
    buckets = aggregate_by_agent(sales)
    assert [(b.label, b.value) for b in buckets] == [
        ('Sarah', 2),
        ('Maria', 1),
        ('Seller u9', 1),
        (NO_SELLER_LABEL, 1),
        ('Explicit', 1),
    ]


def test_by_product_sums_units_and_truncates():
    products = [ProductRef(id='p1', name='Lavender Oil')]
    sales = [
        _sale('1', product_name='Facial Mask', quantity=2),
        _sale('2', product_id='p1', quantity=0),
        _sale('3', product_id='missing'),
        _sale('4', product_id='p1', quantity=3),
        _sale('5', product_name='Facial Mask', quantity=1, deleted_at='2024-05-02'),
    ]
    buckets = aggregate_by_product(sales, products)
    assert [(b.label, b.value) for b in buckets] == [('Lavender Oil', 4), ('Facial Mask', 2), (UNNAMED_PRODUCT_LABEL, 1)]

    many = [_sale(str(i), product_name=f'P{i}', quantity=i + 1) for i in range(15)]
    top = aggregate_by_product(many)
    assert len(top) == 10
    assert top[0].label == 'P14'


def test_aggregate_values_are_non_negative_and_total_matches_active_count():
    sales = [_sale(str(i), f'2024-05-{i + 1:02d}', stored_amount=Decimal('5')) for i in range(8)]
    sales.append(_sale('x', '2024-05-03', deleted_at='2024-05-04'))
    period = PeriodFilter(year=2024, month=5)
    today = date(2024, 5, 31)
    for dimension in (Dimension.DAY_OF_MONTH, Dimension.AGENT, Dimension.PRODUCT):
        buckets = aggregate(sales, dimension, period, today)
        assert all(b.value >= 0 for b in buckets)
        assert sum(b.value for b in buckets) == 8


def test_aggregate_month_of_year_for_year_period():
    period = PeriodFilter(year=2024, mode=PeriodMode.YEAR)
    buckets = aggregate([_sale('1', '2024-02-02')], Dimension.MONTH_OF_YEAR, period, date(2024, 12, 31))
    assert len(buckets) == 12
    assert buckets[1].key == '2024-02'
