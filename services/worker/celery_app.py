import logging

import anyio
from celery import Celery

from spa_manager.config import get_settings
from spa_manager.services.adapters import get_spa_adapter
from spa_manager.services.dashboard import build_dashboard_view, resolve_period
from spa_manager.services.dates import local_today, to_key
from spa_manager.services.settings import resolve_timezone
from spa_manager.utils.cache import cache_set_json, dashboard_cache_key, stable_json_hash

logger = logging.getLogger(__name__)

settings = get_settings()
celery = Celery('spa_manager', broker=settings.celery_broker_url, backend=settings.celery_result_backend)


@celery.task
def warm_dashboard_cache(branch_id: str = 'all', year: int | None = None, month: int | None = None, tz: str | None = None) -> dict:
    today = local_today(resolve_timezone(tz))
    period = resolve_period({}, today, branch_id, 'month', year, month)
    payload = anyio.run(build_dashboard_view, get_spa_adapter(), period, today)
    if payload.get('error'):
        logger.warning('dashboard warm-up skipped branch_id=%s err=%s', period.branch_id, payload['error'])
        return {'cached': False, 'error': payload['error']}

    key = dashboard_cache_key(period.to_dict(), to_key(today), stable_json_hash({}))
    cache_set_json(key, payload, ttl_s=settings.dashboard_cache_ttl_s)
    logger.info('dashboard warm-up stored key=%s', key)
    return {'cached': True, 'key': key}


@celery.task
def ping_task() -> str:
    return 'pong'
