from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from spa_manager.api.dashboard import MODE_PATTERN, resolve_definition, resolve_request_today
from spa_manager.models.reporting import SalesView
from spa_manager.services.adapters import get_spa_adapter
from spa_manager.services.dashboard import build_sales_view, resolve_period
from spa_manager.services.loader import SupersededRequestError
from spa_manager.services.record_filter import ALL_BRANCHES, Visibility
from spa_manager.services.records import MAX_YEAR, MIN_YEAR
from spa_manager.services.settings import get_settings_payload
from spa_manager.services.view_models import DEFAULT_SALES_SEARCH_FIELDS

router = APIRouter(tags=['sales'])


@router.get('/sales', response_model=SalesView)
async def get_sales(
    branch_id: str | None = Query(default=None),
    visibility: Visibility = Query(default=Visibility.ALL),
    search: str | None = Query(default=None, max_length=200),
    mode: str | None = Query(default=None, pattern=MODE_PATTERN),
    year: int | None = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
    month: int | None = Query(default=None, ge=1, le=12),
    day: int | None = Query(default=None, ge=1, le=31),
    today: str | None = Query(default=None),
    tz: str | None = Query(default=None),
    filter_id: str | None = Query(default=None),
    x_client_id: str | None = Header(default=None),
    adapter=Depends(get_spa_adapter),
):
    definition = resolve_definition(filter_id, 'sales')
    today_date = resolve_request_today(today, tz)
    app_settings = get_settings_payload()
    branch = branch_id or app_settings.get('default_branch_id') or ALL_BRANCHES

    period = None
    if definition or mode or year or month or day:
        try:
            period = resolve_period(definition, today_date, branch, mode, year, month, day)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        return await build_sales_view(
            adapter,
            today_date,
            period=period,
            branch_id=branch,
            visibility=visibility,
            search=search,
            search_fields=app_settings.get('sales_search_fields') or DEFAULT_SALES_SEARCH_FIELDS,
            client_id=x_client_id,
        )
    except SupersededRequestError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
