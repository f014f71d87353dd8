"""Joint fetching of report inputs and last-request-wins bookkeeping.

Views are only assembled once every resource they read has arrived. Fetches
for independent resources run concurrently on worker threads; the first
failure fails the whole load so a chart is never drawn from partial data.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable

import anyio

from spa_manager.adapters.spa_adapter import SpaDataAdapter
from spa_manager.services.view_models import ReportInputs
from spa_manager.utils.profiling import timer

logger = logging.getLogger(__name__)

DASHBOARD_RESOURCES = ('sales', 'branches', 'products', 'leads')
SALES_RESOURCES = ('sales', 'branches', 'products')
APPOINTMENT_RESOURCES = ('appointments', 'branches')
DEFAULT_TRACKED_KEYS = 1024


class UpstreamFetchError(RuntimeError):
    def __init__(self, resource: str, cause: Exception) -> None:
        super().__init__(f'Failed to load {resource}: {cause}')
        self.resource = resource


class SupersededRequestError(RuntimeError):
    pass


class RequestTracker:
    """Hands out increasing tokens per view key; only the newest token is current.

    Tokens come from one counter shared by every key, so a key that was evicted
    and later begun again never reuses a token. At most ``max_keys`` keys are
    kept (least recently begun go first); an evicted key has no newer request
    on record and its token counts as current. A ``None`` key disables
    tracking for callers that do not identify themselves.
    """

    def __init__(self, max_keys: int = DEFAULT_TRACKED_KEYS) -> None:
        self._lock = threading.Lock()
        self._tokens: OrderedDict[str, int] = OrderedDict()
        self._counter = 0
        self.max_keys = max(1, max_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def begin(self, key: str | None) -> int:
        if key is None:
            return 0
        with self._lock:
            self._counter += 1
            self._tokens[key] = self._counter
            self._tokens.move_to_end(key)
            while len(self._tokens) > self.max_keys:
                self._tokens.popitem(last=False)
            return self._counter

    def is_current(self, key: str | None, token: int) -> bool:
        if key is None:
            return True
        with self._lock:
            latest = self._tokens.get(key)
        return latest is None or latest == token

    def ensure_current(self, key: str | None, token: int) -> None:
        if not self.is_current(key, token):
            logger.info('discarding superseded request key=%s token=%s', key, token)
            raise SupersededRequestError(f'request {token} for {key} was superseded')


request_tracker = RequestTracker()


async def fetch_jointly(fetchers: dict[str, Callable[[], Any]]) -> dict[str, Any]:
    results: dict[str, Any] = {}
    failures: list[tuple[str, Exception]] = []

    async def _run(name: str, fn: Callable[[], Any]) -> None:
        try:
            results[name] = await anyio.to_thread.run_sync(fn)
        except Exception as exc:
            failures.append((name, exc))

    async with anyio.create_task_group() as tg:
        for name, fn in fetchers.items():
            tg.start_soon(_run, name, fn)

    if failures:
        name, exc = failures[0]
        logger.warning('report input fetch failed resource=%s err=%s', name, exc)
        raise UpstreamFetchError(name, exc) from exc
    return results


def _fetchers(adapter: SpaDataAdapter, resources: tuple[str, ...], branch_id: str | None) -> dict[str, Callable[[], Any]]:
    available: dict[str, Callable[[], Any]] = {
        'sales': lambda: adapter.list_sales(branch_id, include_cancelled=True),
        'appointments': adapter.list_appointments,
        'branches': adapter.list_branches,
        'products': adapter.list_products,
        'leads': adapter.list_leads,
    }
    return {name: available[name] for name in resources}


async def load_report_inputs(
    adapter: SpaDataAdapter,
    resources: tuple[str, ...],
    branch_id: str | None = None,
) -> ReportInputs:
    with timer('loader.report_inputs', logger, {'resources': ','.join(resources), 'branch_id': branch_id}):
        results = await fetch_jointly(_fetchers(adapter, resources, branch_id))
    return ReportInputs(**{name: tuple(rows or ()) for name, rows in results.items()})
