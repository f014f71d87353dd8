"""Bucketed series over sale and appointment records.

Every function here drops cancelled records before counting, whatever
visibility the caller used to build its listing. Results are fresh lists of
:class:`Bucket`; inputs are never mutated.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Mapping

from spa_manager.services.dates import days_in_month
from spa_manager.services.record_filter import FilterableRecord, active_only
from spa_manager.services.records import PeriodFilter, ProductRef, SaleRecord

NO_SELLER_LABEL = 'No seller'
UNNAMED_PRODUCT_LABEL = 'Unnamed product'
TOP_PRODUCTS_LIMIT = 10


class Dimension(str, Enum):
    DAY_OF_MONTH = 'day_of_month'
    MONTH_OF_YEAR = 'month_of_year'
    AGENT = 'agent'
    PRODUCT = 'product'


@dataclass(frozen=True)
class Bucket:
    key: str
    label: str
    value: int

    def to_dict(self) -> dict[str, object]:
        return {'key': self.key, 'label': self.label, 'value': self.value}


def _split_key(key: str) -> tuple[int, int, int] | None:
    if not key:
        return None
    return int(key[0:4]), int(key[5:7]), int(key[8:10])


def visible_days(year: int, month: int, today: date) -> int:
    """Number of day buckets for a month: up to today, never past it."""
    if (year, month) > (today.year, today.month):
        return 0
    if (year, month) == (today.year, today.month):
        return today.day
    return days_in_month(year, month)


def populated_months(year: int, today: date) -> int:
    if year > today.year:
        return 0
    if year == today.year:
        return today.month
    return 12


def aggregate_by_day(records: Iterable[FilterableRecord], year: int, month: int, today: date) -> list[Bucket]:
    last_day = visible_days(year, month, today)
    counts = [0] * last_day
    for record in active_only(records):
        parts = _split_key(record.date_key)
        if parts is None or parts[0] != year or parts[1] != month:
            continue
        if parts[2] > last_day:
            continue
        counts[parts[2] - 1] += 1
    return [
        Bucket(key=f'{year:04d}-{month:02d}-{idx + 1:02d}', label=str(idx + 1), value=count)
        for idx, count in enumerate(counts)
    ]


def aggregate_by_month(records: Iterable[FilterableRecord], year: int, today: date) -> list[Bucket]:
    last_month = populated_months(year, today)
    counts = [0] * 12
    for record in active_only(records):
        parts = _split_key(record.date_key)
        if parts is None or parts[0] != year or parts[1] > last_month:
            continue
        counts[parts[1] - 1] += 1
    return [
        Bucket(key=f'{year:04d}-{idx + 1:02d}', label=calendar.month_abbr[idx + 1], value=count)
        for idx, count in enumerate(counts)
    ]


def resolve_seller_label(sale: SaleRecord) -> str:
    if sale.seller_name:
        return sale.seller_name
    if sale.linked_seller_name:
        return sale.linked_seller_name
    if sale.seller_id:
        return f'Seller {sale.seller_id}'
    return NO_SELLER_LABEL


def resolve_product_label(sale: SaleRecord, products: Mapping[str, ProductRef]) -> str:
    if sale.product_name:
        return sale.product_name
    product = products.get(sale.product_id or '')
    if product is not None and product.name:
        return product.name
    return UNNAMED_PRODUCT_LABEL


def _ranked(totals: dict[str, int]) -> list[Bucket]:
    # sorted() is stable, so equal totals keep first-seen order
    ranked = sorted(totals.items(), key=lambda item: -item[1])
    return [Bucket(key=label, label=label, value=value) for label, value in ranked]


def aggregate_by_agent(sales: Iterable[SaleRecord]) -> list[Bucket]:
    totals: dict[str, int] = {}
    for sale in active_only(sales):
        label = resolve_seller_label(sale)
        totals[label] = totals.get(label, 0) + 1
    return _ranked(totals)


def aggregate_by_product(
    sales: Iterable[SaleRecord],
    products: Mapping[str, ProductRef] | Iterable[ProductRef] | None = None,
    limit: int = TOP_PRODUCTS_LIMIT,
) -> list[Bucket]:
    lookup = product_lookup(products)
    totals: dict[str, int] = {}
    for sale in active_only(sales):
        label = resolve_product_label(sale, lookup)
        totals[label] = totals.get(label, 0) + sale.units
    return _ranked(totals)[: max(0, min(limit, TOP_PRODUCTS_LIMIT))]


def product_lookup(products: Mapping[str, ProductRef] | Iterable[ProductRef] | None) -> Mapping[str, ProductRef]:
    if products is None:
        return {}
    if isinstance(products, Mapping):
        return products
    return {product.id: product for product in products}


def chart_dimension(period: PeriodFilter) -> Dimension:
    return Dimension.MONTH_OF_YEAR if period.all_months else Dimension.DAY_OF_MONTH


def aggregate(
    records: Iterable[FilterableRecord],
    dimension: Dimension,
    period: PeriodFilter,
    today: date,
    products: Mapping[str, ProductRef] | Iterable[ProductRef] | None = None,
) -> list[Bucket]:
    if dimension == Dimension.DAY_OF_MONTH:
        return aggregate_by_day(records, period.year, int(period.month or today.month), today)
    if dimension == Dimension.MONTH_OF_YEAR:
        return aggregate_by_month(records, period.year, today)
    if dimension == Dimension.AGENT:
        return aggregate_by_agent(records)
    return aggregate_by_product(records, products)
