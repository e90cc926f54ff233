"""Turn submitted editor drafts into store patches.

A draft is the JSON body a ticket / customer / technician editor posts. In ``create`` mode
missing fields get the editor's initial values; in ``edit`` mode only the submitted keys are
kept (a sparse patch). The only checks are the ones a native input enforces: numbers must
parse, lists must be lists. Everything else (enum values, empty names, negative costs) goes to
the store untouched and the store decides.
"""
from __future__ import annotations
import math
from typing import Any, Dict, Iterable

from repairdesk.errors import FormError
from repairdesk.models.repair_ticket import RepairTicket

MODES = ('create', 'edit')

TICKET_FIELDS = (
    'customerId', 'deviceType', 'deviceModel', 'serialNumber', 'issueDescription', 'estimatedCost',
    'actualCost', 'status', 'priority', 'grade', 'gradeNotes', 'technicianId', 'images',
)
TICKET_DEFAULTS = {
    'customerId': '',
    'deviceType': '',
    'deviceModel': '',
    'serialNumber': None,
    'issueDescription': '',
    'estimatedCost': 0,
    'actualCost': None,
    'status': RepairTicket.STATUS_RECEIVED,
    'priority': RepairTicket.PRIORITY_MEDIUM,
    'grade': None,
    'gradeNotes': None,
    'technicianId': None,
    'images': [],
}
CUSTOMER_FIELDS = ('name', 'email', 'phone', 'address')
TECHNICIAN_FIELDS = ('name', 'email', 'specialties')

# Select inputs post '' for "none selected"
OPTIONAL_REFERENCES = ('technicianId', 'grade')


def _number(field: str, value, required: bool):
    if value is None or value == '':
        if required:
            return 0
        return None
    if isinstance(value, bool):
        raise FormError(field, 'must be a number')
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise FormError(field, 'must be a number')
    # nan / inf parse as floats but no number input produces them
    if isinstance(value, float) and not math.isfinite(value):
        raise FormError(field, 'must be a number')
    return value


def _string_list(field: str, value):
    if value is None:
        return []
    if isinstance(value, str):
        # comma separated text input
        return [part.strip() for part in value.split(',') if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise FormError(field, 'must be a list')
    return [str(v) for v in value]


def _pick(data: Dict[str, Any], fields: Iterable[str], mode: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
    if mode not in MODES:
        raise ValueError(f"unknown editor mode {mode}")
    if not isinstance(data, dict):
        raise FormError('body', 'must be a JSON object')
    if mode == 'create':
        draft = dict(defaults)
        draft.update({k: data[k] for k in fields if k in data})
        return draft
    return {k: data[k] for k in fields if k in data}


def ticket_patch_from_form(data: Dict[str, Any], mode: str = 'create') -> Dict[str, Any]:
    draft = _pick(data, TICKET_FIELDS, mode, TICKET_DEFAULTS)
    if 'estimatedCost' in draft:
        draft['estimatedCost'] = _number('estimatedCost', draft['estimatedCost'], required=True)
    if 'actualCost' in draft:
        draft['actualCost'] = _number('actualCost', draft['actualCost'], required=False)
    if 'images' in draft:
        draft['images'] = _string_list('images', draft['images'])
    for key in OPTIONAL_REFERENCES:
        if draft.get(key) == '':
            draft[key] = None
    return draft


def customer_patch_from_form(data: Dict[str, Any], mode: str = 'create') -> Dict[str, Any]:
    return _pick(data, CUSTOMER_FIELDS, mode, {k: '' for k in CUSTOMER_FIELDS})


def technician_patch_from_form(data: Dict[str, Any], mode: str = 'create') -> Dict[str, Any]:
    draft = _pick(data, TECHNICIAN_FIELDS, mode, {'name': '', 'email': '', 'specialties': []})
    if 'specialties' in draft:
        draft['specialties'] = _string_list('specialties', draft['specialties'])
    return draft


__all__ = ['ticket_patch_from_form', 'customer_patch_from_form', 'technician_patch_from_form']
