from tests.helpers import jwt_headers, seed_customer, seed_technician, seed_ticket

PERMS = ['TECH.READ', 'TECH.MANAGE', 'RPR.READ', 'RPR.MANAGE']


def test_technician_crud(client, app_instance):
    headers = jwt_headers(app_instance, PERMS)
    resp = client.post('/technicians', json={'name': 'Quinn Solder', 'email': 'quinn@shop.example.com',
                                             'specialties': 'phones, consoles'}, headers=headers)
    assert resp.status_code == 201
    tech = resp.get_json()
    assert tech['specialties'] == ['phones', 'consoles']
    assert tech['activeTickets'] == 0

    resp = client.patch(f"/technicians/{tech['id']}", json={'specialties': ['laptops']}, headers=headers)
    assert resp.get_json()['specialties'] == ['laptops']
    assert resp.get_json()['name'] == 'Quinn Solder'

    assert client.get(f"/technicians/{tech['id']}", headers=headers).status_code == 200
    assert client.delete(f"/technicians/{tech['id']}", headers=headers).status_code == 204
    assert client.get(f"/technicians/{tech['id']}", headers=headers).status_code == 404


def test_technician_list_order_and_counts(client, app_instance):
    headers = jwt_headers(app_instance, PERMS)
    customer = seed_customer()
    zed = seed_technician('Zed Zimmer')
    amy = seed_technician('Amy Archer')
    seed_ticket(customer['id'], zed['id'])
    seed_ticket(customer['id'], zed['id'], status='completed')
    resp = client.get('/technicians', headers=headers)
    rows = resp.get_json()['data']
    assert [t['name'] for t in rows] == ['Amy Archer', 'Zed Zimmer']
    assert {t['id']: t['activeTickets'] for t in rows} == {amy['id']: 0, zed['id']: 1}
    resp = client.get('/technicians?sort=-activeTickets', headers=headers)
    assert resp.get_json()['data'][0]['id'] == zed['id']


def test_workload_view(client, app_instance):
    headers = jwt_headers(app_instance, PERMS)
    customer = seed_customer()
    busy = seed_technician('Busy Body')
    seed_technician('Free Time')
    for priority in ('urgent', 'medium', 'low'):
        seed_ticket(customer['id'], busy['id'], priority=priority, estimatedCost=100)
    seed_ticket(customer['id'])
    resp = client.get('/technicians/workload', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['summary'] == {'technicians': 2, 'activeTickets': 4, 'unassignedTickets': 1, 'averageLoad': 2}
    rows = {r['technician']['name']: r for r in body['technicians']}
    assert rows['Busy Body']['level'] == 'moderate'
    assert rows['Busy Body']['metrics'] == {'total': 3, 'urgent': 1, 'inProgress': 0, 'totalValue': 300}
    assert rows['Free Time']['level'] == 'idle'
    assert [t['id'] for t in body['unassigned']] == ['RPR-004']
    assert 'display' in body['unassigned'][0]


def test_workload_needs_ticket_read(client, app_instance):
    headers = jwt_headers(app_instance, ['TECH.READ'])
    assert client.get('/technicians/workload', headers=headers).status_code == 403


def test_deleting_technician_unassigns_tickets(client, app_instance):
    headers = jwt_headers(app_instance, PERMS)
    tech = seed_technician('Gone Tomorrow')
    ticket = seed_ticket(seed_customer()['id'], tech['id'])
    assert client.delete(f"/technicians/{tech['id']}", headers=headers).status_code == 204
    body = client.get(f"/tickets/{ticket['id']}", headers=headers).get_json()
    assert body['technicianId'] is None
    assert body['technicianName'] is None
