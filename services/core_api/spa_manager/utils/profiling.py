"""Per-request timing events.

Every event is kept in a bounded in-process ring so ``/debug/perf/last`` can
show recent timings for one request or for the whole process. Events are only
written to the log when ``SPA_PROFILE`` is on.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from spa_manager.config import get_settings

MAX_EVENTS = 500

request_id_ctx: ContextVar[str | None] = ContextVar('request_id', default=None)
_ring: deque[dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_ring_lock = threading.Lock()


def now_ms() -> int:
    return int(time.time() * 1000)


def profiling_enabled() -> bool:
    return bool(get_settings().spa_profile)


def set_request_id(request_id: str | None) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def record_event(event: dict[str, Any]) -> dict[str, Any]:
    stamped = {'ts_ms': now_ms(), **event}
    rid = get_request_id()
    if rid and 'request_id' not in stamped:
        stamped['request_id'] = rid
    with _ring_lock:
        _ring.append(stamped)
    return stamped


def recent_events(limit: int = 100, request_id: str | None = None, step_prefix: str | None = None) -> list[dict[str, Any]]:
    with _ring_lock:
        events = list(_ring)
    if request_id:
        events = [e for e in events if e.get('request_id') == request_id]
    if step_prefix:
        events = [e for e in events if str(e.get('step_name') or e.get('component') or '').startswith(step_prefix)]
    return events[-max(1, limit):]


def clear_events() -> None:
    with _ring_lock:
        _ring.clear()


def log_profile_event(logger: logging.Logger, event: dict[str, Any]) -> None:
    stamped = record_event(event)
    if profiling_enabled():
        logger.info('profile %s', json.dumps(stamped, ensure_ascii=False, separators=(',', ':'), default=str))


@contextmanager
def timer(name: str, logger: logging.Logger, extra: dict[str, Any] | None = None):
    started = time.perf_counter()
    outcome = 'ok'
    try:
        yield
    except Exception:
        outcome = 'error'
        raise
    finally:
        event: dict[str, Any] = {
            'step_name': name,
            'elapsed_ms': round((time.perf_counter() - started) * 1000, 2),
            'outcome': outcome,
        }
        event.update(extra or {})
        log_profile_event(logger, event)
