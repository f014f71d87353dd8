from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from spa_manager.utils.profiling import MAX_EVENTS, profiling_enabled, recent_events

router = APIRouter(prefix='/debug', tags=['debug'])


@router.get('/perf/last')
def get_perf_last(
    limit: int = Query(default=100, ge=1, le=MAX_EVENTS),
    request_id: str | None = Query(default=None),
    step: str | None = Query(default=None, description='only events whose step name starts with this prefix'),
):
    if not profiling_enabled():
        raise HTTPException(status_code=404, detail='profiling disabled')
    events = recent_events(limit, request_id=request_id, step_prefix=step)
    slowest = max(events, key=lambda e: e.get('elapsed_ms') or 0, default=None)
    return {
        'request_id': request_id,
        'count': len(events),
        'slowest': slowest,
        'events': events,
    }
