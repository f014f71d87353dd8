import time
from datetime import date

import anyio
import pytest

from spa_manager.adapters.spa_adapter import MockSpaAdapter
from spa_manager.services.dashboard import build_dashboard_view
from spa_manager.services.loader import (
    DASHBOARD_RESOURCES,
    RequestTracker,
    SupersededRequestError,
    UpstreamFetchError,
    fetch_jointly,
    load_report_inputs,
)
from spa_manager.services.records import PeriodFilter


class _FailingProductsAdapter(MockSpaAdapter):
    def list_products(self):
        raise RuntimeError('products endpoint down')


class _SlowSalesAdapter(MockSpaAdapter):
    def __init__(self, on_fetch=None):
        self.on_fetch = on_fetch

    def list_sales(self, branch_id=None, include_cancelled=True, only_cancelled=False):
        if self.on_fetch:
            self.on_fetch()
        time.sleep(0.01)
        return super().list_sales(branch_id, include_cancelled, only_cancelled)


def test_request_tracker_only_latest_token_is_current():
    tracker = RequestTracker()
    first = tracker.begin('client-a:dashboard')
    second = tracker.begin('client-a:dashboard')
    other = tracker.begin('client-b:dashboard')
    assert not tracker.is_current('client-a:dashboard', first)
    assert tracker.is_current('client-a:dashboard', second)
    assert tracker.is_current('client-b:dashboard', other)
    with pytest.raises(SupersededRequestError):
        tracker.ensure_current('client-a:dashboard', first)


def test_request_tracker_without_key_never_supersedes():
    tracker = RequestTracker()
    token = tracker.begin(None)
    tracker.begin(None)
    tracker.ensure_current(None, token)


def test_fetch_jointly_collects_every_result():
    results = anyio.run(fetch_jointly, {'a': lambda: [1], 'b': lambda: [2, 3]})
    assert results == {'a': [1], 'b': [2, 3]}


def test_load_report_inputs_fails_whole_load_on_any_error(caplog):
    with caplog.at_level('WARNING'):
        with pytest.raises(UpstreamFetchError) as exc:
            anyio.run(load_report_inputs, _FailingProductsAdapter(), DASHBOARD_RESOURCES)
    assert exc.value.resource == 'products'
    assert 'Failed to load products' in str(exc.value)
    assert any('resource=products' in rec.message for rec in caplog.records)


def test_dashboard_view_falls_back_to_empty_view_with_error():
    today = date(2024, 5, 15)
    view = anyio.run(build_dashboard_view, _FailingProductsAdapter(), PeriodFilter(year=2024, month=5), today)
    assert view['error'] == 'Failed to load products: products endpoint down'
    assert view['kpis']['sales_count'] == 0
    assert view['by_agent'] == []


def test_superseded_dashboard_request_is_discarded():
    tracker = RequestTracker()
    today = date.today()
    period = PeriodFilter(year=today.year, month=today.month)
    # a newer request for the same client starts while the first is still fetching
    adapter = _SlowSalesAdapter(on_fetch=lambda: tracker.begin('c1:dashboard'))

    with pytest.raises(SupersededRequestError):
        anyio.run(lambda: build_dashboard_view(adapter, period, today, client_id='c1', tracker=tracker))

    view = anyio.run(lambda: build_dashboard_view(MockSpaAdapter(), period, today, client_id='c1', tracker=tracker))
    assert view['error'] is None


def test_request_tracker_keeps_a_bounded_number_of_clients():
    tracker = RequestTracker(max_keys=3)
    tokens = {f'client-{i}:sales': tracker.begin(f'client-{i}:sales') for i in range(10)}
    assert len(tracker) == 3
    assert all(tracker.is_current(key, token) for key, token in tokens.items())

    # an evicted client that starts again still supersedes its older request
    newer = tracker.begin('client-0:sales')
    assert newer > tokens['client-0:sales']
    assert not tracker.is_current('client-0:sales', tokens['client-0:sales'])
    assert len(tracker) == 3
