"""Shared seeding and auth helpers for the repair desk tests.

Seeding goes through the store adapters (the same path the app uses) so ids, timestamps and
the ticket number watermark behave exactly as in production.
"""
from __future__ import annotations
from typing import Dict, Iterable, Optional
from flask_jwt_extended import create_access_token
from repairdesk.constants.permissions import ALL_PERMISSION_CODES
from repairdesk.forms import ticket_patch_from_form
from repairdesk.services.stores import CustomerStore, TechnicianStore, TicketStore

# ---------- Auth ---------- #

def jwt_headers(app, perms: Iterable[str] = ALL_PERMISSION_CODES, subject: str = 'tester') -> Dict[str, str]:
    with app.app_context():
        token = create_access_token(identity=subject, additional_claims={'perms': list(perms)})
    return {'Authorization': f'Bearer {token}'}


# ---------- Seeding ---------- #

def seed_customer(name: str = 'Dana Scully', **overrides):
    fields = {
        'name': name,
        'email': f"{name.split()[0].lower()}@example.com",
        'phone': '555-0100',
        'address': '1 Main St',
    }
    fields.update(overrides)
    return CustomerStore().create(fields)


def seed_technician(name: str = 'Tess Tech', specialties=None, **overrides):
    fields = {
        'name': name,
        'email': f"{name.split()[0].lower()}@shop.example.com",
        'specialties': specialties if specialties is not None else ['phones'],
    }
    fields.update(overrides)
    return TechnicianStore().create(fields)


def seed_ticket(customer_id: str, technician_id: Optional[str] = None, **overrides):
    draft = {
        'customerId': customer_id,
        'deviceType': 'Smartphone',
        'deviceModel': 'Pixel 7',
        'issueDescription': 'Cracked screen',
        'estimatedCost': 120,
        'technicianId': technician_id,
    }
    draft.update(overrides)
    return TicketStore().create(ticket_patch_from_form(draft, 'create'))
