from __future__ import annotations
from typing import Any, Dict, List
from flask import abort

ALL = 'all'


def apply_filters(rows: List[dict], specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]) -> List[dict]:
    """Generic in-memory filter builder.

    specs: { param_name: { 'match': callable(row, value)->bool, 'validate': callable(optional) } }
    A param that is missing, empty or 'all' does not filter.
    """
    for name, meta in specs.items():
        val = params.get(name)
        if val is None or val == '' or val == ALL:
            continue
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        rows = [r for r in rows if meta['match'](r, val)]
    return rows


def _contains(value, term: str) -> bool:
    return term in (value or '').lower()


def ticket_matches_search(ticket: dict, term: str) -> bool:
    term = term.lower()
    return any(_contains(ticket.get(k), term) for k in ('id', 'customerName', 'deviceType', 'deviceModel'))


def customer_matches_search(customer: dict, term: str) -> bool:
    # phone numbers are matched as typed
    return (
        _contains(customer.get('name'), term.lower())
        or _contains(customer.get('email'), term.lower())
        or term in (customer.get('phone') or '')
    )
