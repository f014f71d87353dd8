from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from functools import partial
from typing import Any, Iterable, Mapping, Sequence

from spa_manager.services.aggregation import (
    aggregate,
    aggregate_by_agent,
    aggregate_by_product,
    chart_dimension,
    product_lookup,
    resolve_product_label,
    resolve_seller_label,
)
from spa_manager.services.calendar_grid import build_grid
from spa_manager.services.dates import to_key
from spa_manager.services.record_filter import (
    ALL_BRANCHES,
    FilterCriteria,
    FilterableRecord,
    Visibility,
    criteria_for_period,
    filter_records,
    period_window,
)
from spa_manager.services.records import (
    APPOINTMENT_STATUSES,
    LEAD_STATUSES,
    AppointmentRecord,
    BranchRef,
    LeadRef,
    PeriodFilter,
    ProductRef,
    SaleRecord,
)

SOLD_LEADS_LIMIT = 10
DEFAULT_SALES_SEARCH_FIELDS = ('client_name', 'service_label')
DEFAULT_APPOINTMENT_SEARCH_FIELDS = ('client_name', 'service_type')


@dataclass(frozen=True)
class ReportInputs:
    sales: Sequence[SaleRecord] = field(default_factory=tuple)
    appointments: Sequence[AppointmentRecord] = field(default_factory=tuple)
    branches: Sequence[BranchRef] = field(default_factory=tuple)
    products: Sequence[ProductRef] = field(default_factory=tuple)
    leads: Sequence[LeadRef] = field(default_factory=tuple)


def _money(value: Decimal) -> str:
    return str(value.quantize(Decimal('0.01')))


def _period_payload(period: PeriodFilter, today: date | None) -> dict[str, Any]:
    start, end = period_window(period, today)
    return {**period.to_dict(), 'start': to_key(start), 'end': to_key(end)}


def _totals(active: Sequence[SaleRecord]) -> dict[str, Any]:
    total = sum((sale.amount for sale in active), Decimal('0'))
    return {
        'total_amount': _money(total),
        'sales_count': len(active),
        'units_sold': sum(sale.units for sale in active),
    }


def kpi_totals(sales: Iterable[SaleRecord], period: PeriodFilter, today: date) -> dict[str, Any]:
    return _totals(filter_records(sales, criteria_for_period(period, today, Visibility.ACTIVE)))


def chart_series(sales: Iterable[SaleRecord], period: PeriodFilter, today: date) -> dict[str, Any]:
    dimension = chart_dimension(period)
    scoped = filter_records(sales, criteria_for_period(period, today, Visibility.ACTIVE))
    return {
        'dimension': dimension.value,
        'buckets': [bucket.to_dict() for bucket in aggregate(scoped, dimension, period, today)],
    }


def _time_of(record: Any) -> str:
    return str(getattr(record, 'time', '') or '')


def agenda_rows(records: Iterable[FilterableRecord], criteria: FilterCriteria) -> list[Any]:
    scoped = filter_records(records, criteria)
    return sorted(scoped, key=lambda r: (r.date_key, _time_of(r)))


def records_by_day(records: Iterable[FilterableRecord]) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = {}
    for record in records:
        key = record.date_key
        if not key:
            continue
        grouped.setdefault(key, []).append(record)
    return {key: sorted(items, key=_time_of) for key, items in sorted(grouped.items())}


def sale_search_value(sale: SaleRecord, name: str, products: Mapping[str, ProductRef]) -> Any:
    if name == 'product_name':
        return resolve_product_label(sale, products)
    if name == 'seller_name':
        return resolve_seller_label(sale)
    return getattr(sale, name, None)


def _branch_names(branches: Iterable[BranchRef]) -> dict[str, str]:
    return {branch.id: branch.name for branch in branches}


def sale_to_dict(sale: SaleRecord, branch_names: Mapping[str, str], products: Mapping[str, ProductRef]) -> dict[str, Any]:
    return {
        'id': sale.id,
        'date': sale.occurred_on,
        'created_at': sale.created_at,
        'branch_id': sale.branch_id,
        'branch_name': branch_names.get(sale.branch_id),
        'seller': resolve_seller_label(sale),
        'product_id': sale.product_id,
        'product': resolve_product_label(sale, products),
        'client_name': sale.client_name,
        'service_label': sale.service_label,
        'quantity': sale.units,
        'unit_price': _money(sale.unit_price) if sale.unit_price is not None else None,
        'amount': _money(sale.amount),
        'payment_method': sale.payment_method,
        'notes': sale.notes,
        'status': sale.status,
        'cancelled': sale.cancelled,
    }


def appointment_to_dict(appointment: AppointmentRecord, branch_names: Mapping[str, str]) -> dict[str, Any]:
    return {
        'id': appointment.id,
        'date': appointment.date,
        'time': appointment.time,
        'client_name': appointment.client_name,
        'service_type': appointment.service_type,
        'branch_id': appointment.branch_id,
        'branch_name': branch_names.get(appointment.branch_id or ''),
        'notes': appointment.notes,
        'status': appointment.status,
        'cancelled': appointment.cancelled,
    }


def lead_to_dict(lead: LeadRef) -> dict[str, Any]:
    return {
        'id': lead.id,
        'name': lead.name,
        'branch_id': lead.branch_id,
        'source': lead.source,
        'status': lead.status,
        'created_at': lead.created_at,
    }


def _scoped_leads(leads: Iterable[LeadRef], branch_id: str) -> list[LeadRef]:
    if branch_id == ALL_BRANCHES:
        return list(leads)
    return [lead for lead in leads if lead.branch_id == branch_id]


def lead_pipeline(leads: Iterable[LeadRef]) -> dict[str, int]:
    counts = {status: 0 for status in LEAD_STATUSES}
    for lead in leads:
        if lead.status in counts:
            counts[lead.status] += 1
    return counts


def assemble_dashboard_view(inputs: ReportInputs, period: PeriodFilter, today: date) -> dict[str, Any]:
    products = product_lookup(inputs.products)
    scoped = filter_records(inputs.sales, criteria_for_period(period, today, Visibility.ACTIVE))
    leads = _scoped_leads(inputs.leads, period.branch_id)
    sold = [lead for lead in leads if lead.status == 'sold'][:SOLD_LEADS_LIMIT]
    return {
        'period': _period_payload(period, today),
        'today': to_key(today),
        'kpis': kpi_totals(inputs.sales, period, today),
        'chart': chart_series(inputs.sales, period, today),
        'by_agent': [bucket.to_dict() for bucket in aggregate_by_agent(scoped)],
        'by_product': [bucket.to_dict() for bucket in aggregate_by_product(scoped, products)],
        'sold_leads': [lead_to_dict(lead) for lead in sold],
        'lead_pipeline': lead_pipeline(leads),
        'low_stock_count': sum(1 for product in inputs.products if product.is_low_stock),
        'error': None,
    }


def empty_dashboard_view(period: PeriodFilter, today: date, error: str | None) -> dict[str, Any]:
    view = assemble_dashboard_view(ReportInputs(), period, today)
    view['error'] = error
    return view


def assemble_sales_view(
    inputs: ReportInputs,
    today: date,
    period: PeriodFilter | None = None,
    branch_id: str = ALL_BRANCHES,
    visibility: Visibility = Visibility.ALL,
    search: str | None = None,
    search_fields: Sequence[str] = DEFAULT_SALES_SEARCH_FIELDS,
) -> dict[str, Any]:
    products = product_lookup(inputs.products)
    resolver = partial(sale_search_value, products=products)
    if period is not None:
        criteria = criteria_for_period(period, today, visibility, search, search_fields, resolver)
    else:
        criteria = FilterCriteria(
            branch_id=branch_id,
            visibility=visibility,
            search=search,
            search_fields=tuple(search_fields),
            field_resolver=resolver,
        )
    listed = filter_records(inputs.sales, criteria)

    branch_names = _branch_names(inputs.branches)
    by_day = records_by_day(listed)
    if period is not None:
        kpis = kpi_totals(inputs.sales, period, today)
    else:
        kpis = _totals(filter_records(inputs.sales, FilterCriteria(branch_id=branch_id, visibility=Visibility.ACTIVE)))
    return {
        'period': _period_payload(period, today) if period is not None else None,
        'visibility': visibility.value,
        'search': search or None,
        'total': len(listed),
        'items': [sale_to_dict(sale, branch_names, products) for sale in listed],
        'kpis': kpis,
        'by_day': {key: [sale.id for sale in items] for key, items in by_day.items()},
        'error': None,
    }


def assemble_appointments_view(
    inputs: ReportInputs,
    year: int,
    month: int,
    today: date,
    branch_id: str = ALL_BRANCHES,
    visibility: Visibility = Visibility.ALL,
    search: str | None = None,
    search_fields: Sequence[str] = DEFAULT_APPOINTMENT_SEARCH_FIELDS,
) -> dict[str, Any]:
    period = PeriodFilter(year=year, month=month, branch_id=branch_id)
    branch_names = _branch_names(inputs.branches)
    grid = build_grid(year, month)

    month_criteria = criteria_for_period(period, None, visibility, search, search_fields)
    agenda = agenda_rows(inputs.appointments, month_criteria)

    grid_criteria = FilterCriteria(
        branch_id=branch_id,
        start_key=grid[0].key,
        end_key=grid[-1].key,
        visibility=visibility,
        search=search,
        search_fields=tuple(search_fields),
    )
    by_day = records_by_day(filter_records(inputs.appointments, grid_criteria))

    today_key = to_key(today)
    today_agenda = agenda_rows(
        inputs.appointments,
        FilterCriteria(branch_id=branch_id, start_key=today_key, end_key=today_key, visibility=Visibility.ACTIVE),
    )

    in_month = filter_records(inputs.appointments, criteria_for_period(period, None, Visibility.ALL))
    status_counts = {status: 0 for status in APPOINTMENT_STATUSES}
    for appointment in in_month:
        status = 'cancelled' if appointment.cancelled else appointment.status
        status_counts[status] = status_counts.get(status, 0) + 1

    return {
        'year': year,
        'month': month,
        'today': today_key,
        'visibility': visibility.value,
        'cells': [
            {
                'date': cell.key,
                'day': cell.date.day,
                'in_current_month': cell.in_current_month,
                'is_today': cell.key == today_key,
                'items': [appointment_to_dict(a, branch_names) for a in by_day.get(cell.key, [])],
            }
            for cell in grid
        ],
        'agenda': [appointment_to_dict(a, branch_names) for a in agenda],
        'today_agenda': [appointment_to_dict(a, branch_names) for a in today_agenda],
        'status_counts': status_counts,
        'error': None,
    }


def empty_appointments_view(year: int, month: int, today: date, error: str | None) -> dict[str, Any]:
    view = assemble_appointments_view(ReportInputs(), year, month, today)
    view['error'] = error
    return view


def empty_sales_view(today: date, period: PeriodFilter | None, visibility: Visibility, error: str | None) -> dict[str, Any]:
    view = assemble_sales_view(ReportInputs(), today, period=period, visibility=visibility)
    view['error'] = error
    return view

