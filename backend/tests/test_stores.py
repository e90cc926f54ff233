import pytest
from repairdesk import get_db
from repairdesk.errors import NotFoundError, ConstraintError
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.services.stores import (
    CustomerStore, TechnicianStore, TicketStore, parse_ticket_number, format_ticket_id, UNKNOWN_CUSTOMER,
)
from repairdesk.utils.timestamps import parse_iso
from tests.helpers import seed_customer, seed_technician, seed_ticket


def test_customer_round_trip_uses_camel_case():
    created = seed_customer('Fox Mulder', phone='555-0199')
    assert created['id']
    assert created['createdAt'].endswith('Z')
    fetched = CustomerStore().get(created['id'])
    assert fetched == created
    assert set(fetched) == {'id', 'name', 'email', 'phone', 'address', 'createdAt'}


def test_customer_sparse_update_keeps_other_fields():
    created = seed_customer('Walter Skinner')
    updated = CustomerStore().update(created['id'], {'phone': '555-0222'})
    assert updated['phone'] == '555-0222'
    for key in ('id', 'name', 'email', 'address', 'createdAt'):
        assert updated[key] == created[key]


def test_missing_ids_raise_not_found():
    store = CustomerStore()
    with pytest.raises(NotFoundError):
        store.get('does-not-exist')
    with pytest.raises(NotFoundError):
        store.update('does-not-exist', {'name': 'x'})
    with pytest.raises(NotFoundError):
        store.delete('does-not-exist')
    with pytest.raises(NotFoundError):
        TicketStore().get('RPR-999')


def test_ticket_ids_increment_from_one():
    customer = seed_customer()
    first = seed_ticket(customer['id'])
    second = seed_ticket(customer['id'])
    assert first['id'] == 'RPR-001'
    assert second['id'] == 'RPR-002'


def test_ticket_id_follows_previous_maximum():
    customer = seed_customer()
    session = get_db()
    session.add(RepairTicket(id='RPR-012', customer_id=customer['id'], device_type='Laptop',
                             device_model='X1', issue_description='No power', images=[]))
    session.commit()
    assert seed_ticket(customer['id'])['id'] == 'RPR-013'


def test_deleted_ticket_ids_are_not_reused():
    customer = seed_customer()
    seed_ticket(customer['id'])
    newest = seed_ticket(customer['id'])
    TicketStore().delete(newest['id'])
    assert seed_ticket(customer['id'])['id'] == 'RPR-003'


def test_ticket_number_helpers():
    assert parse_ticket_number('RPR-007') == 7
    assert parse_ticket_number('RPR-1000') == 1000
    assert parse_ticket_number('bogus') is None
    assert parse_ticket_number(None) is None
    assert format_ticket_id(13) == 'RPR-013'
    assert format_ticket_id(1234) == 'RPR-1234'


def test_get_all_returns_newest_first():
    customer = seed_customer()
    seed_ticket(customer['id'])
    seed_ticket(customer['id'])
    newest = seed_ticket(customer['id'])
    ids = [t['id'] for t in TicketStore().get_all()]
    assert ids[0] == newest['id']
    assert ids == ['RPR-003', 'RPR-002', 'RPR-001']


def test_ticket_projects_customer_and_technician_names():
    customer = seed_customer('Dana Scully')
    tech = seed_technician('Alex Krycek')
    ticket = seed_ticket(customer['id'], tech['id'])
    assert ticket['customerName'] == 'Dana Scully'
    assert ticket['technicianName'] == 'Alex Krycek'
    CustomerStore().update(customer['id'], {'name': 'Dana K. Scully'})
    assert TicketStore().get(ticket['id'])['customerName'] == 'Dana K. Scully'


def test_ticket_update_changes_only_the_patched_field():
    customer = seed_customer()
    ticket = seed_ticket(customer['id'], serialNumber='SN-1', grade='good')
    before = TicketStore().get(ticket['id'])
    after = TicketStore().update(ticket['id'], {'deviceModel': 'Pixel 8'})
    assert after['deviceModel'] == 'Pixel 8'
    for key, value in before.items():
        if key in ('deviceModel', 'updatedAt'):
            continue
        assert after[key] == value, key
    assert parse_iso(after['updatedAt']) >= parse_iso(before['updatedAt'])


def test_completed_status_stamps_completed_at():
    customer = seed_customer()
    ticket = seed_ticket(customer['id'])
    assert ticket['completedAt'] is None
    done = TicketStore().update(ticket['id'], {'status': 'completed'})
    assert done['completedAt'] is not None
    assert parse_iso(done['completedAt']) >= parse_iso(done['createdAt'])


def test_created_as_completed_is_stamped():
    customer = seed_customer()
    ticket = seed_ticket(customer['id'], status='completed', actualCost=80)
    assert ticket['completedAt'] is not None
    assert parse_iso(ticket['completedAt']) >= parse_iso(ticket['createdAt'])


def test_create_ignores_caller_completed_at():
    customer = seed_customer()
    received = TicketStore().create({'customerId': customer['id'], 'deviceType': 'Phone', 'deviceModel': 'X',
                                     'issueDescription': 'Dead', 'status': 'received',
                                     'completedAt': '2020-01-01T00:00:00Z'})
    assert received['completedAt'] is None
    completed = seed_ticket(customer['id'], status='completed', completedAt='2020-01-01T00:00:00Z')
    assert completed['completedAt'] is not None
    assert parse_iso(completed['completedAt']) >= parse_iso(completed['createdAt'])


def test_completion_stamp_follows_workflow():
    customer = seed_customer()
    store = TicketStore()
    ticket = seed_ticket(customer['id'])
    completed = store.update(ticket['id'], {'status': 'completed'})
    stamp = completed['completedAt']
    ready = store.update(ticket['id'], {'status': 'ready_for_pickup'})
    assert ready['completedAt'] == stamp
    cancelled = store.update(ticket['id'], {'status': 'cancelled'})
    assert cancelled['completedAt'] == stamp
    reopened = store.update(ticket['id'], {'status': 'in_progress'})
    assert reopened['completedAt'] is None
    picked = store.update(ticket['id'], {'status': 'picked_up'})
    assert picked['completedAt'] is not None


def test_invalid_references_and_enums_are_constraint_errors():
    customer = seed_customer()
    with pytest.raises(ConstraintError):
        seed_ticket('no-such-customer')
    with pytest.raises(ConstraintError):
        seed_ticket(customer['id'], status='lost')
    ticket = seed_ticket(customer['id'])
    with pytest.raises(ConstraintError):
        TicketStore().update(ticket['id'], {'priority': 'whenever'})
    # the failed writes left the stored ticket alone
    assert TicketStore().get(ticket['id'])['priority'] == 'medium'


def test_failed_create_does_not_consume_a_ticket_number():
    customer = seed_customer()
    with pytest.raises(ConstraintError):
        seed_ticket('no-such-customer')
    assert seed_ticket(customer['id'])['id'] == 'RPR-001'


def test_customer_with_tickets_cannot_be_deleted():
    customer = seed_customer('Held Customer')
    ticket = seed_ticket(customer['id'])
    with pytest.raises(ConstraintError):
        CustomerStore().delete(customer['id'])
    assert CustomerStore().get(customer['id'])['name'] == 'Held Customer'
    assert TicketStore().get(ticket['id'])['customerName'] == 'Held Customer'


def test_unknown_customer_name_fallback():
    assert UNKNOWN_CUSTOMER == 'Unknown Customer'


def test_technician_active_tickets_are_derived():
    customer = seed_customer()
    tech = seed_technician('Busy Bee')
    assert tech['activeTickets'] == 0
    seed_ticket(customer['id'], tech['id'])
    seed_ticket(customer['id'], tech['id'], status='in_progress')
    seed_ticket(customer['id'], tech['id'], status='picked_up', actualCost=50)
    seed_ticket(customer['id'], tech['id'], status='cancelled')
    assert TechnicianStore().get(tech['id'])['activeTickets'] == 2
    listed = {t['id']: t for t in TechnicianStore().get_all()}
    assert listed[tech['id']]['activeTickets'] == 2


def test_technicians_are_listed_by_name():
    seed_technician('Zed Zulu')
    seed_technician('Amy Alpha')
    seed_technician('Mo Middle')
    names = [t['name'] for t in TechnicianStore().get_all()]
    assert names == ['Amy Alpha', 'Mo Middle', 'Zed Zulu']


def test_deleting_technician_unassigns_tickets():
    customer = seed_customer()
    tech = seed_technician('Short Stay')
    ticket = seed_ticket(customer['id'], tech['id'])
    TechnicianStore().delete(tech['id'])
    reloaded = TicketStore().get(ticket['id'])
    assert reloaded['technicianId'] is None
    assert reloaded['technicianName'] is None


def test_technician_specialties_update():
    tech = seed_technician('List Keeper', specialties=['phones'])
    updated = TechnicianStore().update(tech['id'], {'specialties': ['phones', 'tablets']})
    assert updated['specialties'] == ['phones', 'tablets']
    assert updated['email'] == tech['email']


def test_ticket_images_are_lists():
    customer = seed_customer()
    ticket = seed_ticket(customer['id'], images='front.jpg, back.jpg')
    assert ticket['images'] == ['front.jpg', 'back.jpg']
    updated = TicketStore().update(ticket['id'], {'images': ['side.jpg']})
    assert updated['images'] == ['side.jpg']
