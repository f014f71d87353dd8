from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response

from spa_manager.config import get_settings
from spa_manager.models.reporting import DashboardView
from spa_manager.services.adapters import get_spa_adapter
from spa_manager.services.dashboard import build_dashboard_view, resolve_period
from spa_manager.services.dates import resolve_today, to_key
from spa_manager.services.filters import get_saved_filter
from spa_manager.services.loader import SupersededRequestError
from spa_manager.services.records import MAX_YEAR, MIN_YEAR
from spa_manager.services.settings import get_settings_payload, resolve_timezone
from spa_manager.utils.cache import cache_get_json, cache_set_json, dashboard_cache_key, stable_json_hash
from spa_manager.utils.profiling import timer

router = APIRouter(prefix='/dashboard', tags=['dashboard'])
logger = logging.getLogger(__name__)

MODE_PATTERN = '^(single-day|month|year)$'


def resolve_definition(filter_id: str | None, scope: str) -> dict:
    if not filter_id:
        return {}
    row = get_saved_filter(filter_id)
    if row is None:
        raise HTTPException(status_code=404, detail='filter not found')
    if row.scope != scope:
        raise HTTPException(status_code=422, detail=f'filter {filter_id} is saved for {row.scope}, not {scope}')
    return row.definition_json


def resolve_request_today(today: str | None, tz: str | None):
    return resolve_today(today, resolve_timezone(tz))


@router.get('/view', response_model=DashboardView)
async def get_dashboard_view(
    branch_id: str | None = Query(default=None),
    mode: str | None = Query(default=None, pattern=MODE_PATTERN),
    year: int | None = Query(default=None, ge=MIN_YEAR, le=MAX_YEAR),
    month: int | None = Query(default=None, ge=1, le=12),
    day: int | None = Query(default=None, ge=1, le=31),
    today: str | None = Query(default=None),
    tz: str | None = Query(default=None),
    filter_id: str | None = Query(default=None),
    refresh: bool = Query(default=False),
    x_client_id: str | None = Header(default=None),
    response: Response = None,
    adapter=Depends(get_spa_adapter),
):
    definition = resolve_definition(filter_id, 'dashboard')
    today_date = resolve_request_today(today, tz)
    branch = branch_id or get_settings_payload().get('default_branch_id')
    try:
        period = resolve_period(definition, today_date, branch, mode, year, month, day)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    cache_key = dashboard_cache_key(period.to_dict(), to_key(today_date), stable_json_hash(definition))
    if refresh:
        response.headers['X-Cache'] = 'BYPASS'
    else:
        cached = cache_get_json(cache_key)
        if cached is not None:
            response.headers['X-Cache'] = 'HIT'
            return cached
        response.headers['X-Cache'] = 'MISS'

    with timer('api.dashboard.view', logger, {'endpoint': '/dashboard/view', 'mode': period.mode.value, 'branch_id': period.branch_id}):
        try:
            payload = await build_dashboard_view(adapter, period, today_date, client_id=x_client_id)
        except SupersededRequestError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    if payload.get('error'):
        logger.warning('dashboard view served without data branch_id=%s err=%s', period.branch_id, payload['error'])
    else:
        cache_set_json(cache_key, payload, ttl_s=get_settings().dashboard_cache_ttl_s)
    return payload
