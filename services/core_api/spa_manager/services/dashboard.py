from __future__ import annotations

from datetime import date
import logging
from typing import Any, Sequence

from spa_manager.adapters.spa_adapter import SpaDataAdapter
from spa_manager.services.loader import (
    APPOINTMENT_RESOURCES,
    DASHBOARD_RESOURCES,
    SALES_RESOURCES,
    RequestTracker,
    UpstreamFetchError,
    load_report_inputs,
    request_tracker,
)
from spa_manager.services.record_filter import ALL_BRANCHES, Visibility
from spa_manager.services.records import PeriodFilter, PeriodMode
from spa_manager.services.view_models import (
    DEFAULT_APPOINTMENT_SEARCH_FIELDS,
    DEFAULT_SALES_SEARCH_FIELDS,
    assemble_appointments_view,
    assemble_dashboard_view,
    assemble_sales_view,
    empty_appointments_view,
    empty_dashboard_view,
    empty_sales_view,
)
from spa_manager.utils.profiling import timer

logger = logging.getLogger(__name__)


def resolve_period(
    definition: dict[str, Any] | None,
    today: date,
    branch_id: str | None = None,
    mode: str | None = None,
    year: int | None = None,
    month: int | None = None,
    day: int | None = None,
) -> PeriodFilter:
    """Build the period from a saved definition, or from query values defaulting to today's month.

    Raises ``ValueError`` when the combination is invalid.
    """
    if definition:
        try:
            return PeriodFilter.from_dict(definition)
        except (KeyError, TypeError) as exc:
            raise ValueError(f'invalid saved period: {exc}') from exc

    period_mode = PeriodMode(mode or PeriodMode.MONTH.value)
    resolved_year = year or today.year
    resolved_month = month
    if resolved_month is None and period_mode != PeriodMode.YEAR:
        resolved_month = today.month
    resolved_day = day
    if resolved_day is None and period_mode == PeriodMode.SINGLE_DAY:
        resolved_day = today.day
    return PeriodFilter(
        year=resolved_year,
        mode=period_mode,
        month=resolved_month if period_mode != PeriodMode.YEAR else None,
        day=resolved_day if period_mode == PeriodMode.SINGLE_DAY else None,
        branch_id=branch_id or ALL_BRANCHES,
    )


def _view_key(client_id: str | None, view: str) -> str | None:
    return f'{client_id}:{view}' if client_id else None


async def build_dashboard_view(
    adapter: SpaDataAdapter,
    period: PeriodFilter,
    today: date,
    client_id: str | None = None,
    tracker: RequestTracker = request_tracker,
) -> dict[str, Any]:
    key = _view_key(client_id, 'dashboard')
    token = tracker.begin(key)
    try:
        inputs = await load_report_inputs(adapter, DASHBOARD_RESOURCES, period.branch_id)
    except UpstreamFetchError as exc:
        tracker.ensure_current(key, token)
        return empty_dashboard_view(period, today, str(exc))

    tracker.ensure_current(key, token)
    with timer('dashboard.assemble', logger, {'mode': period.mode.value, 'branch_id': period.branch_id, 'sales': len(inputs.sales)}):
        return assemble_dashboard_view(inputs, period, today)


async def build_sales_view(
    adapter: SpaDataAdapter,
    today: date,
    period: PeriodFilter | None = None,
    branch_id: str = ALL_BRANCHES,
    visibility: Visibility = Visibility.ALL,
    search: str | None = None,
    search_fields: Sequence[str] = DEFAULT_SALES_SEARCH_FIELDS,
    client_id: str | None = None,
    tracker: RequestTracker = request_tracker,
) -> dict[str, Any]:
    key = _view_key(client_id, 'sales')
    token = tracker.begin(key)
    scope = period.branch_id if period is not None else branch_id
    try:
        inputs = await load_report_inputs(adapter, SALES_RESOURCES, scope)
    except UpstreamFetchError as exc:
        tracker.ensure_current(key, token)
        return empty_sales_view(today, period, visibility, str(exc))

    tracker.ensure_current(key, token)
    with timer('sales.assemble', logger, {'branch_id': scope, 'visibility': visibility.value, 'sales': len(inputs.sales)}):
        return assemble_sales_view(inputs, today, period, branch_id, visibility, search, search_fields)


async def build_appointments_view(
    adapter: SpaDataAdapter,
    year: int,
    month: int,
    today: date,
    branch_id: str = ALL_BRANCHES,
    visibility: Visibility = Visibility.ALL,
    search: str | None = None,
    search_fields: Sequence[str] = DEFAULT_APPOINTMENT_SEARCH_FIELDS,
    client_id: str | None = None,
    tracker: RequestTracker = request_tracker,
) -> dict[str, Any]:
    key = _view_key(client_id, 'appointments')
    token = tracker.begin(key)
    try:
        inputs = await load_report_inputs(adapter, APPOINTMENT_RESOURCES)
    except UpstreamFetchError as exc:
        tracker.ensure_current(key, token)
        return empty_appointments_view(year, month, today, str(exc))

    tracker.ensure_current(key, token)
    with timer('appointments.assemble', logger, {'year': year, 'month': month, 'appointments': len(inputs.appointments)}):
        return assemble_appointments_view(inputs, year, month, today, branch_id, visibility, search, search_fields)
