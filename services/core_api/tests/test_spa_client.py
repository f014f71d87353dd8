import httpx
import pytest

from spa_manager.clients.spa_client import SpaApiClient, SpaApiClientError, unwrap_list


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=None, content_type='application/json'):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ''
        self.content = (text or 'x').encode('utf-8')
        self.headers = {'content-type': content_type}

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request('GET', 'http://spa.test')
            raise httpx.HTTPStatusError('error', request=request, response=httpx.Response(self.status_code, request=request))

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload


class DummyHttpClient:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, params=None):
        self.calls.append({'url': url, 'headers': headers, 'params': params})
        return self.responses.pop(0)

    def close(self):
        return None


def _client(responses, max_retries=1):
    client = SpaApiClient(base_url='http://spa.test/api/', token='secret', max_retries=max_retries, backoff_base=0)
    client._client = DummyHttpClient(responses)
    return client


def test_get_list_unwraps_envelope_and_sends_bearer():
    client = _client([DummyResponse(payload={'data': [{'id': 1}, 'junk']})])
    assert client.get_list('/sales', {'branch_id': '1', 'only_cancelled': None}) == [{'id': 1}]
    call = client._client.calls[0]
    assert call['url'] == 'http://spa.test/api/sales'
    assert call['headers']['Authorization'] == 'Bearer secret'
    assert call['params'] == {'branch_id': '1'}


def test_logical_error_payload_raises():
    client = _client([DummyResponse(payload={'error': True, 'message': 'branch not found'})])
    with pytest.raises(SpaApiClientError) as exc:
        client.get_json('/sales')
    assert 'branch not found' in str(exc.value)


def test_non_json_body_raises():
    client = _client([DummyResponse(payload=None, text='<html>login</html>', content_type='text/html')])
    with pytest.raises(SpaApiClientError):
        client.get_json('/sales')


def test_retries_on_server_error_then_succeeds():
    client = _client([DummyResponse(status_code=503, payload={}), DummyResponse(payload=[{'id': 'a'}])], max_retries=2)
    assert client.get_list('/appointments') == [{'id': 'a'}]
    assert len(client._client.calls) == 2


def test_client_error_is_not_retried():
    client = _client([DummyResponse(status_code=404, payload={}), DummyResponse(payload=[])], max_retries=3)
    with pytest.raises(SpaApiClientError):
        client.get_json('/missing')
    assert len(client._client.calls) == 1


def test_unwrap_list_ignores_unknown_shapes():
    assert unwrap_list({'items': []}) == []
    assert unwrap_list(None) == []
    assert unwrap_list([{'id': 1}]) == [{'id': 1}]
