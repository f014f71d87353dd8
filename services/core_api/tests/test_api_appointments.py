from fastapi.testclient import TestClient

from spa_manager.main import app
from spa_manager.services.adapters import get_spa_adapter
from spa_manager.services.records import BranchRef, appointment_from_wire

client = TestClient(app)


class _AppointmentsAdapter:
    def __init__(self, rows, fail=False):
        self.rows = rows
        self.fail = fail

    def list_sales(self, branch_id=None, include_cancelled=True, only_cancelled=False):
        return []

    def list_appointments(self):
        if self.fail:
            raise RuntimeError('connection reset')
        return [appointment_from_wire(row) for row in self.rows]

    def list_branches(self):
        return [BranchRef(id='1', name='Hialeah'), BranchRef(id='2', name='Flagler')]

    def list_products(self):
        return []

    def list_leads(self):
        return []


ROWS = [
    {'id': 'a1', 'date': '2024-05-01', 'time': '02:00 PM', 'client_name': 'Ana', 'service_type': 'Hydro Facial', 'branch_id': '1'},
    {'id': 'a2', 'date': '2024-05-01', 'time': '09:30', 'client_name': 'Carlos', 'service_type': 'Massage', 'branch_id': '2', 'status': 'confirmed'},
    {'id': 'a3', 'date': '2024-06-01', 'time': '10:00', 'client_name': 'Pedro', 'service_type': 'Manicure', 'branch_id': '1', 'status': 'Canceled'},
]


def setup_function():
    app.dependency_overrides[get_spa_adapter] = lambda: _AppointmentsAdapter(ROWS)


def teardown_function():
    app.dependency_overrides.pop(get_spa_adapter, None)


def test_appointments_month_view():
    response = client.get('/appointments', params={'year': 2024, 'month': 5, 'today': '2024-05-01'})
    assert response.status_code == 200
    data = response.json()
    assert len(data['cells']) == 42
    cell = data['cells'][3]
    assert cell['date'] == '2024-05-01'
    assert cell['in_current_month'] is True
    assert cell['is_today'] is True
    assert [item['id'] for item in cell['items']] == ['a2', 'a1']
    assert cell['items'][1]['time'] == '14:00'
    # June 1 is shown as a trailing cell of the May grid
    trailing = [c for c in data['cells'] if c['date'] == '2024-06-01'][0]
    assert trailing['in_current_month'] is False
    assert [item['id'] for item in trailing['items']] == ['a3']
    assert [item['id'] for item in data['agenda']] == ['a2', 'a1']
    assert data['status_counts']['confirmed'] == 1
    assert data['status_counts']['scheduled'] == 1


def test_appointments_branch_and_active_filters():
    data = client.get('/appointments', params={'year': 2024, 'month': 5, 'branch_id': '2', 'today': '2024-05-01'}).json()
    assert [item['id'] for item in data['agenda']] == ['a2']
    assert data['agenda'][0]['branch_name'] == 'Flagler'

    june = client.get('/appointments', params={'year': 2024, 'month': 6, 'visibility': 'active', 'today': '2024-05-01'}).json()
    assert june['agenda'] == []


def test_appointments_upstream_failure_keeps_grid():
    app.dependency_overrides[get_spa_adapter] = lambda: _AppointmentsAdapter(ROWS, fail=True)
    data = client.get('/appointments', params={'year': 2024, 'month': 5}).json()
    assert data['error'] == 'Failed to load appointments: connection reset'
    assert len(data['cells']) == 42
    assert data['agenda'] == []


def test_calendar_grid_endpoint():
    response = client.get('/calendar/2024/5')
    assert response.status_code == 200
    data = response.json()
    assert data['weekdays'][0] == 'Sun'
    assert data['cells'][0] == {'date': '2024-04-28', 'day': 28, 'in_current_month': False}
    assert data['cells'][3]['in_current_month'] is True
    assert client.get('/calendar/2024/13').status_code == 422


def test_calendar_rejects_years_past_the_last_full_grid():
    assert client.get('/calendar/9998/12').status_code == 200
    assert client.get('/calendar/9999/12').status_code == 422
    assert client.get('/appointments', params={'year': 9999, 'month': 12}).status_code == 422


def test_soft_deleted_appointment_is_counted_as_cancelled():
    rows = [{'id': 'd1', 'date': '2024-05-07', 'time': '10:00', 'status': 'scheduled', 'deleted_at': '2024-05-06 12:00:00'}]
    app.dependency_overrides[get_spa_adapter] = lambda: _AppointmentsAdapter(rows)
    data = client.get('/appointments', params={'year': 2024, 'month': 5, 'today': '2024-05-01'}).json()
    assert data['agenda'][0]['cancelled'] is True
    assert data['status_counts']['scheduled'] == 0
    assert data['status_counts']['cancelled'] == 1


def test_appointments_use_saved_filter_of_matching_scope():
    created = client.post(
        '/filters',
        json={'name': 'Flagler May', 'scope': 'appointments', 'definition_json': {'branch_id': '2', 'mode': 'month', 'year': 2024, 'month': 5}},
    ).json()
    data = client.get('/appointments', params={'filter_id': created['id'], 'today': '2024-07-01'}).json()
    assert (data['year'], data['month']) == (2024, 5)
    assert [item['id'] for item in data['agenda']] == ['a2']

    sales_filter = client.post(
        '/filters',
        json={'name': 'Sales May', 'scope': 'sales', 'definition_json': {'mode': 'month', 'year': 2024, 'month': 5}},
    ).json()
    assert client.get('/appointments', params={'filter_id': sales_filter['id']}).status_code == 422
    assert client.get('/appointments', params={'filter_id': 'missing'}).status_code == 404
