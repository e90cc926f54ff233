from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.forms import technician_patch_from_form
from repairdesk.services.analytics import (
    decorate_ticket, technician_workload, unassigned_tickets, workload_summary,
)
from repairdesk.services.repair_system import get_request_system, load_request_system
from repairdesk.utils.listing import list_response, make_cached_entity_response
from repairdesk.utils.sorting import apply_multi_sort

tech_bp = Blueprint('technicians', __name__)

SORTABLE = {'name', 'email', 'activeTickets'}


@tech_bp.get('')
@require_permissions('TECH.READ')
def list_technicians():
    system = load_request_system()
    rows = apply_multi_sort(system.technicians, request.args.get('sort'), SORTABLE)
    return list_response(rows)


@tech_bp.get('/workload')
@require_permissions('TECH.READ', 'RPR.READ')
def workload():
    system = load_request_system()
    rows = technician_workload(system.technicians, system.tickets)
    for row in rows:
        row['tickets'] = [decorate_ticket(t) for t in row['tickets']]
    return {
        'summary': workload_summary(system.technicians, system.tickets),
        'technicians': rows,
        'unassigned': [decorate_ticket(t) for t in unassigned_tickets(system.tickets)],
    }


@tech_bp.get('/<technician_id>')
@require_permissions('TECH.READ')
def get_technician(technician_id: str):
    return make_cached_entity_response(get_request_system().technician_store.get(technician_id))


@tech_bp.post('')
@require_permissions('TECH.MANAGE')
def create_technician():
    fields = technician_patch_from_form(request.get_json(silent=True) or {}, 'create')
    return get_request_system().create_technician(fields), 201


@tech_bp.patch('/<technician_id>')
@require_permissions('TECH.MANAGE')
def update_technician(technician_id: str):
    patch = technician_patch_from_form(request.get_json(silent=True) or {}, 'edit')
    return get_request_system().update_technician(technician_id, patch)


@tech_bp.delete('/<technician_id>')
@require_permissions('TECH.MANAGE')
def delete_technician(technician_id: str):
    get_request_system().delete_technician(technician_id)
    return '', 204
