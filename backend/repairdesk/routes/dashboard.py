from __future__ import annotations
from flask import Blueprint
from repairdesk.decorators.auth import require_permissions
from repairdesk.services.analytics import dashboard_stats, dashboard_cards, recent_tickets, decorate_ticket
from repairdesk.services.repair_system import load_request_system

dash_bp = Blueprint('dashboard', __name__)


@dash_bp.get('')
@require_permissions('RPR.READ')
def dashboard():
    system = load_request_system()
    stats = dashboard_stats(system.tickets)
    return {
        'stats': stats,
        'cards': dashboard_cards(stats),
        'recentTickets': [decorate_ticket(t) for t in recent_tickets(system.tickets)],
    }
