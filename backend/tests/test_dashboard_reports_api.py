import json
from repairdesk.config.settings import MAX_REPORT_DAYS
from repairdesk.errors import ConnectivityError
from repairdesk.services.stores import TicketStore
from repairdesk.utils.timestamps import utcnow
from tests.helpers import jwt_headers, seed_customer, seed_technician, seed_ticket


def test_dashboard_stats(client, app_instance):
    headers = jwt_headers(app_instance, ['RPR.READ', 'RPR.MANAGE'])
    customer = seed_customer()
    seed_ticket(customer['id'], status='received', priority='urgent')
    seed_ticket(customer['id'], status='in_progress')
    done = seed_ticket(customer['id'], status='completed', actualCost=100)
    client.patch(f"/tickets/{done['id']}", json={'status': 'picked_up'}, headers=headers)
    resp = client.get('/dashboard', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['stats'] == {'activeRepairs': 2, 'completedToday': 1, 'urgentPriority': 1, 'monthlyRevenue': 100}
    assert body['cards'][3]['display'] == '$100.00'
    assert len(body['recentTickets']) == 3
    assert body['recentTickets'][0]['id'] == done['id']


def test_dashboard_shows_load_error(client, app_instance, monkeypatch):
    headers = jwt_headers(app_instance, ['RPR.READ'])

    def unreachable(self):
        raise ConnectivityError('database is down', entity='ticket', operation='fetch')

    monkeypatch.setattr(TicketStore, 'get_all', unreachable)
    resp = client.get('/dashboard', headers=headers)
    assert resp.status_code == 503
    assert resp.get_json()['error']['detail'] == 'Failed to load data: database is down'
    assert client.get('/customers', headers=jwt_headers(app_instance, ['CUS.READ'])).status_code == 503


def test_report_metrics(client, app_instance):
    headers = jwt_headers(app_instance, ['RPT.READ'])
    customer = seed_customer()
    tech = seed_technician('Report Ranger')
    seed_ticket(customer['id'], tech['id'], status='picked_up', actualCost=200, deviceType='Laptop')
    seed_ticket(customer['id'], tech['id'], status='completed', estimatedCost=100, deviceType='Laptop')
    seed_ticket(customer['id'], status='received', deviceType='Console')
    seed_ticket(customer['id'], status='cancelled', deviceType='Console')
    resp = client.get('/reports/metrics?days=7', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['dateRange'] == '7 days'
    assert body['metrics']['totalTickets'] == 4
    assert body['metrics']['completedTickets'] == 2
    assert body['metrics']['totalRevenue'] == 300
    assert body['metrics']['completionRate'] == 50
    assert body['technicianPerformance'][0]['name'] == 'Report Ranger'
    assert body['technicianPerformance'][0]['completionRate'] == 100
    assert {d['deviceType'] for d in body['deviceTypeAnalysis']} == {'Laptop', 'Console'}
    assert sum(w['revenue'] for w in body['revenueTrend']) == 300


def test_report_defaults_and_validation(client, app_instance):
    headers = jwt_headers(app_instance, ['RPT.READ'])
    resp = client.get('/reports/metrics', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['days'] == 30
    assert body['metrics']['completionRate'] == 0
    assert client.get('/reports/metrics?days=0', headers=headers).get_json()['days'] == 30
    assert client.get('/reports/metrics?days=week', headers=headers).status_code == 400


def test_report_window_is_clamped(client, app_instance):
    headers = jwt_headers(app_instance, ['RPT.READ'])
    seed_ticket(seed_customer()['id'], status='picked_up', actualCost=10)
    resp = client.get('/reports/metrics?days=100000000', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['days'] == MAX_REPORT_DAYS
    assert body['metrics']['totalTickets'] == 1
    assert client.get('/reports/export?days=100000000', headers=headers).status_code == 200


def test_report_export_download(client, app_instance):
    headers = jwt_headers(app_instance, ['RPT.READ'])
    seed_ticket(seed_customer()['id'], status='picked_up', actualCost=42)
    resp = client.get('/reports/export?days=90', headers=headers)
    assert resp.status_code == 200
    assert resp.mimetype == 'application/json'
    today = utcnow().date().isoformat()
    disposition = resp.headers['Content-Disposition']
    assert disposition.startswith('attachment')
    assert f'repair-report-{today}.json' in disposition
    document = json.loads(resp.data)
    assert document['dateRange'] == '90 days'
    assert document['generatedAt'].endswith('Z')
    assert document['metrics']['totalRevenue'] == 42
    for key in ('statusDistribution', 'priorityDistribution', 'deviceTypeAnalysis', 'technicianPerformance',
                'revenueTrend'):
        assert key in document


def test_reports_require_permission(client, app_instance):
    headers = jwt_headers(app_instance, ['RPR.READ'])
    assert client.get('/reports/metrics', headers=headers).status_code == 403
    assert client.get('/reports/export', headers=headers).status_code == 403
