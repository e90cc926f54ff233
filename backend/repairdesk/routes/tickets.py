from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.forms import ticket_patch_from_form
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.services.analytics import decorate_ticket
from repairdesk.services.repair_system import get_request_system, load_request_system
from repairdesk.utils.filters import apply_filters, ticket_matches_search
from repairdesk.utils.listing import list_response, make_cached_entity_response
from repairdesk.utils.sorting import apply_multi_sort
from repairdesk.utils.timestamps import parse_iso

tkt_bp = Blueprint('tickets', __name__)

TICKET_FILTERS = {
    'search': {'match': ticket_matches_search},
    'status': {'match': lambda t, v: t['status'] == v, 'validate': lambda v: v in RepairTicket.ALL_STATUSES},
    'priority': {'match': lambda t, v: t['priority'] == v, 'validate': lambda v: v in RepairTicket.ALL_PRIORITIES},
    'technician_id': {'match': lambda t, v: t.get('technicianId') == v},
    'customer_id': {'match': lambda t, v: t.get('customerId') == v},
}
SORTABLE = {'id', 'createdAt', 'updatedAt', 'status', 'priority', 'estimatedCost', 'customerName', 'deviceType'}


@tkt_bp.get('')
@require_permissions('RPR.READ')
def list_tickets():
    system = load_request_system()
    rows = apply_filters(system.tickets, TICKET_FILTERS, request.args)
    rows = apply_multi_sort(rows, request.args.get('sort'), SORTABLE)
    return list_response([decorate_ticket(t) for t in rows], 'updatedAt')


@tkt_bp.get('/<ticket_id>')
@require_permissions('RPR.READ')
def get_ticket(ticket_id: str):
    ticket = get_request_system().ticket_store.get(ticket_id)
    return make_cached_entity_response(decorate_ticket(ticket), parse_iso(ticket['updatedAt']))


@tkt_bp.post('')
@require_permissions('RPR.MANAGE')
def create_ticket():
    fields = ticket_patch_from_form(request.get_json(silent=True) or {}, 'create')
    return get_request_system().create_ticket(fields), 201


@tkt_bp.patch('/<ticket_id>')
@require_permissions('RPR.MANAGE')
def update_ticket(ticket_id: str):
    patch = ticket_patch_from_form(request.get_json(silent=True) or {}, 'edit')
    return get_request_system().update_ticket(ticket_id, patch)


@tkt_bp.post('/<ticket_id>/assign')
@require_permissions('RPR.MANAGE')
def assign_ticket(ticket_id: str):
    data = request.get_json(silent=True) or {}
    return get_request_system().assign_ticket(ticket_id, data.get('technicianId') or None)


@tkt_bp.delete('/<ticket_id>')
@require_permissions('RPR.MANAGE')
def delete_ticket(ticket_id: str):
    get_request_system().delete_ticket(ticket_id)
    return '', 204
