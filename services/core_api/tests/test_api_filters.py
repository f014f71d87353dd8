from fastapi.testclient import TestClient

from spa_manager.main import app

client = TestClient(app)

DEFINITION = {'branch_id': '1', 'mode': 'month', 'year': 2024, 'month': 5}


def test_saved_filters_crud_and_list():
    created = client.post('/filters', json={'name': 'Hialeah May', 'scope': 'sales', 'definition_json': DEFINITION})
    assert created.status_code == 201
    body = created.json()
    assert body['id']
    assert body['definition_json'] == {**DEFINITION, 'day': None}

    listed = client.get('/filters', params={'scope': 'sales'})
    assert listed.status_code == 200
    assert any(item['id'] == body['id'] for item in listed.json())
    assert all(item['scope'] == 'sales' for item in listed.json())

    fetched = client.get(f"/filters/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()['name'] == 'Hialeah May'


def test_saved_filters_update_and_delete():
    created = client.post('/filters', json={'name': 'Year', 'scope': 'dashboard', 'definition_json': {'mode': 'year', 'year': 2024}})
    filter_id = created.json()['id']

    updated = client.put(
        f'/filters/{filter_id}',
        json={'name': 'Year 2023', 'scope': 'dashboard', 'definition_json': {'mode': 'year', 'year': 2023, 'branch_id': '2'}},
    )
    assert updated.status_code == 200
    assert updated.json()['name'] == 'Year 2023'
    assert updated.json()['definition_json']['branch_id'] == '2'

    assert client.delete(f'/filters/{filter_id}').status_code == 204
    assert client.get(f'/filters/{filter_id}').status_code == 404
    assert client.delete(f'/filters/{filter_id}').status_code == 404


def test_saved_filters_reject_invalid_definitions():
    bad_scope = client.post('/filters', json={'name': 'x', 'scope': 'agenda', 'definition_json': DEFINITION})
    assert bad_scope.status_code == 422

    bad_period = client.post('/filters', json={'name': 'x', 'scope': 'sales', 'definition_json': {'mode': 'month', 'year': 2024, 'month': 13}})
    assert bad_period.status_code == 422

    missing_year = client.post('/filters', json={'name': 'x', 'scope': 'sales', 'definition_json': {'mode': 'month', 'month': 1}})
    assert missing_year.status_code == 422


def test_update_unknown_filter_returns_404():
    response = client.put('/filters/missing', json={'name': 'x', 'scope': 'sales', 'definition_json': DEFINITION})
    assert response.status_code == 404
