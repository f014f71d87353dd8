from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query

from spa_manager.api.dashboard import resolve_definition, resolve_request_today
from spa_manager.models.reporting import AppointmentsView, CalendarGrid
from spa_manager.services.adapters import get_spa_adapter
from spa_manager.services.calendar_grid import WEEKDAY_LABELS, build_grid
from spa_manager.services.dashboard import build_appointments_view
from spa_manager.services.loader import SupersededRequestError
from spa_manager.services.record_filter import ALL_BRANCHES, Visibility
from spa_manager.services.records import MAX_YEAR, MIN_YEAR, PeriodFilter
from spa_manager.services.settings import get_settings_payload
from spa_manager.services.view_models import DEFAULT_APPOINTMENT_SEARCH_FIELDS

router = APIRouter(tags=['appointments'])


@router.get('/appointments', response_model=AppointmentsView)
async def get_appointments(
    year: int | None = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
    month: int | None = Query(default=None, ge=1, le=12),
    branch_id: str | None = Query(default=None),
    visibility: Visibility = Query(default=Visibility.ALL),
    search: str | None = Query(default=None, max_length=200),
    today: str | None = Query(default=None),
    tz: str | None = Query(default=None),
    filter_id: str | None = Query(default=None),
    x_client_id: str | None = Header(default=None),
    adapter=Depends(get_spa_adapter),
):
    definition = resolve_definition(filter_id, 'appointments')
    today_date = resolve_request_today(today, tz)
    app_settings = get_settings_payload()
    if definition:
        try:
            saved = PeriodFilter.from_dict(definition)
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=f'invalid saved period: {exc}') from exc
        # a saved year period opens on January unless that year is the current one
        year = saved.year
        month = saved.month or (today_date.month if saved.year == today_date.year else 1)
        branch_id = saved.branch_id

    try:
        return await build_appointments_view(
            adapter,
            year or today_date.year,
            month or today_date.month,
            today_date,
            branch_id=branch_id or app_settings.get('default_branch_id') or ALL_BRANCHES,
            visibility=visibility,
            search=search,
            search_fields=app_settings.get('appointment_search_fields') or DEFAULT_APPOINTMENT_SEARCH_FIELDS,
            client_id=x_client_id,
        )
    except SupersededRequestError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get('/calendar/{year}/{month}', response_model=CalendarGrid)
def get_calendar(year: int = Path(ge=MIN_YEAR, le=MAX_YEAR), month: int = Path(ge=1, le=12)):
    cells = build_grid(year, month)
    return {
        'year': year,
        'month': month,
        'weekdays': list(WEEKDAY_LABELS),
        'cells': [{'date': cell.key, 'day': cell.date.day, 'in_current_month': cell.in_current_month} for cell in cells],
    }
