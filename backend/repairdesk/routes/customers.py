from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.forms import customer_patch_from_form
from repairdesk.services.repair_system import get_request_system, load_request_system
from repairdesk.utils.filters import apply_filters, customer_matches_search
from repairdesk.utils.listing import list_response, make_cached_entity_response
from repairdesk.utils.sorting import apply_multi_sort

cus_bp = Blueprint('customers', __name__)

CUSTOMER_FILTERS = {
    'search': {'match': customer_matches_search},
}
SORTABLE = {'name', 'email', 'createdAt'}


@cus_bp.get('')
@require_permissions('CUS.READ')
def list_customers():
    system = load_request_system()
    rows = apply_filters(system.customers, CUSTOMER_FILTERS, request.args)
    rows = apply_multi_sort(rows, request.args.get('sort'), SORTABLE)
    return list_response(rows)


@cus_bp.get('/<customer_id>')
@require_permissions('CUS.READ')
def get_customer(customer_id: str):
    customer = get_request_system().customer_store.get(customer_id)
    return make_cached_entity_response(customer)


@cus_bp.post('')
@require_permissions('CUS.MANAGE')
def create_customer():
    fields = customer_patch_from_form(request.get_json(silent=True) or {}, 'create')
    return get_request_system().create_customer(fields), 201


@cus_bp.patch('/<customer_id>')
@require_permissions('CUS.MANAGE')
def update_customer(customer_id: str):
    patch = customer_patch_from_form(request.get_json(silent=True) or {}, 'edit')
    return get_request_system().update_customer(customer_id, patch)


@cus_bp.delete('/<customer_id>')
@require_permissions('CUS.MANAGE')
def delete_customer(customer_id: str):
    get_request_system().delete_customer(customer_id)
    return '', 204
