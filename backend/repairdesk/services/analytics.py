"""Aggregations behind the dashboard, workload and report views.

Every function is pure and recomputes from the full ticket / technician collections it is
given (entity dicts as produced by the store adapters). Nothing is cached between calls.
Ratios with an empty denominator are 0.
"""
from __future__ import annotations
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.utils.formatters import (
    format_currency, status_color, priority_color, grade_color, workload_level, humanize_status,
)
from repairdesk.utils.timestamps import utcnow, parse_iso, to_iso

Ticket = Dict[str, Any]

RECENT_LIMIT = 5


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if not denominator:
        return 0
    return numerator / denominator * scale


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_active(ticket: Ticket) -> bool:
    return ticket.get('status') not in RepairTicket.CLOSED_STATUSES


def is_finished(ticket: Ticket) -> bool:
    return ticket.get('status') in RepairTicket.FINISHED_STATUSES


def active_tickets(tickets: Iterable[Ticket]) -> List[Ticket]:
    return [t for t in tickets if is_active(t)]


def ticket_value(ticket: Ticket) -> float:
    """Billable value: the actual cost once known, otherwise the estimate."""
    if ticket.get('actualCost') is not None:
        return ticket['actualCost']
    return ticket.get('estimatedCost') or 0


def decorate_ticket(ticket: Ticket) -> Ticket:
    """Copy of ``ticket`` with the display tags the list views render."""
    out = dict(ticket)
    out['display'] = {
        'status': humanize_status(ticket.get('status')),
        'statusTag': status_color(ticket.get('status')),
        'priorityTag': priority_color(ticket.get('priority')),
        'gradeTag': grade_color(ticket.get('grade')) if ticket.get('grade') else None,
        'estimatedCost': format_currency(ticket.get('estimatedCost')),
        'actualCost': format_currency(ticket['actualCost']) if ticket.get('actualCost') is not None else None,
    }
    return out


# ---------- Dashboard ---------- #

def dashboard_stats(tickets: List[Ticket], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    today = now.date()
    active = active_tickets(tickets)
    completed_today = [
        t for t in tickets
        if t.get('completedAt') and parse_iso(t['completedAt']).date() == today
    ]
    urgent = [t for t in active if t.get('priority') == RepairTicket.PRIORITY_URGENT]
    revenue = sum(
        t['actualCost'] for t in tickets
        if t.get('status') == RepairTicket.STATUS_PICKED_UP and t.get('actualCost')
    )
    return {
        'activeRepairs': len(active),
        'completedToday': len(completed_today),
        'urgentPriority': len(urgent),
        'monthlyRevenue': revenue,
    }


def dashboard_cards(stats: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {'key': 'activeRepairs', 'label': 'Active Repairs', 'value': stats['activeRepairs'], 'display': str(stats['activeRepairs'])},
        {'key': 'completedToday', 'label': 'Completed Today', 'value': stats['completedToday'], 'display': str(stats['completedToday'])},
        {'key': 'urgentPriority', 'label': 'Urgent Priority', 'value': stats['urgentPriority'], 'display': str(stats['urgentPriority'])},
        {'key': 'monthlyRevenue', 'label': 'Monthly Revenue', 'value': stats['monthlyRevenue'], 'display': format_currency(stats['monthlyRevenue'])},
    ]


def recent_tickets(tickets: List[Ticket], limit: int = RECENT_LIMIT) -> List[Ticket]:
    ordered = sorted(tickets, key=lambda t: parse_iso(t['updatedAt']), reverse=True)
    return ordered[:limit]


# ---------- Technician workload ---------- #

def technician_tickets(tickets: List[Ticket], technician_id: str) -> List[Ticket]:
    return [t for t in tickets if t.get('technicianId') == technician_id and is_active(t)]


def unassigned_tickets(tickets: List[Ticket]) -> List[Ticket]:
    return [t for t in tickets if not t.get('technicianId') and is_active(t)]


def workload_metrics(tickets: List[Ticket], technician_id: str) -> Dict[str, Any]:
    assigned = technician_tickets(tickets, technician_id)
    return {
        'total': len(assigned),
        'urgent': sum(1 for t in assigned if t.get('priority') == RepairTicket.PRIORITY_URGENT),
        'inProgress': sum(1 for t in assigned if t.get('status') == RepairTicket.STATUS_IN_PROGRESS),
        'totalValue': sum(t.get('estimatedCost') or 0 for t in assigned),
    }


def technician_workload(technicians: List[Dict[str, Any]], tickets: List[Ticket]) -> List[Dict[str, Any]]:
    rows = []
    for tech in technicians:
        metrics = workload_metrics(tickets, tech['id'])
        rows.append({
            'technician': tech,
            'tickets': technician_tickets(tickets, tech['id']),
            'metrics': metrics,
            'level': workload_level(metrics['total']),
        })
    return rows


def workload_summary(technicians: List[Dict[str, Any]], tickets: List[Ticket]) -> Dict[str, Any]:
    active = active_tickets(tickets)
    assigned = [t for t in active if t.get('technicianId')]
    return {
        'technicians': len(technicians),
        'activeTickets': len(active),
        'unassignedTickets': len(active) - len(assigned),
        'averageLoad': _round_half_up(len(assigned) / len(technicians)) if technicians else 0,
    }


def count_active_by_technician(tickets: List[Ticket]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for t in active_tickets(tickets):
        if t.get('technicianId'):
            counts[t['technicianId']] = counts.get(t['technicianId'], 0) + 1
    return counts


# ---------- Reports ---------- #

def filter_by_window(tickets: List[Ticket], days: int, now: Optional[datetime] = None) -> List[Ticket]:
    """Tickets created within the trailing ``days`` window ending at ``now``."""
    cutoff = (now or utcnow()) - timedelta(days=days)
    return [t for t in tickets if parse_iso(t['createdAt']) >= cutoff]


def report_metrics(window: List[Ticket]) -> Dict[str, Any]:
    finished = [t for t in window if is_finished(t)]
    revenue = sum(ticket_value(t) for t in finished)
    completion_days = [
        (parse_iso(t['completedAt']) - parse_iso(t['createdAt'])).total_seconds() / 86400
        for t in finished if t.get('completedAt')
    ]
    return {
        'totalTickets': len(window),
        'completedTickets': len(finished),
        'activeTickets': len(active_tickets(window)),
        'totalRevenue': revenue,
        'avgTicketValue': _ratio(revenue, len(finished)),
        'avgCompletionTime': _ratio(sum(completion_days), len(completion_days)),
        'completionRate': _ratio(len(finished), len(window), 100),
    }


def distribution(window: List[Ticket], key: str) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for t in window:
        counts[t.get(key)] = counts.get(t.get(key), 0) + 1
    return [
        {key: value, 'count': count, 'percentage': _ratio(count, len(window), 100)}
        for value, count in counts.items()
    ]


def device_type_analysis(window: List[Ticket]) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, float]] = {}
    for t in window:
        group = groups.setdefault(t.get('deviceType'), {'count': 0, 'revenue': 0})
        group['count'] += 1
        group['revenue'] += ticket_value(t)
    rows = [
        {'deviceType': device, 'count': g['count'], 'revenue': g['revenue'], 'avgValue': _ratio(g['revenue'], g['count'])}
        for device, g in groups.items()
    ]
    return sorted(rows, key=lambda r: r['count'], reverse=True)


def technician_performance(technicians: List[Dict[str, Any]], window: List[Ticket]) -> List[Dict[str, Any]]:
    rows = []
    for tech in technicians:
        assigned = [t for t in window if t.get('technicianId') == tech['id']]
        finished = [t for t in assigned if is_finished(t)]
        rows.append({
            'technicianId': tech['id'],
            'name': tech['name'],
            'totalTickets': len(assigned),
            'completedTickets': len(finished),
            'revenue': sum(ticket_value(t) for t in finished),
            'completionRate': _ratio(len(finished), len(assigned), 100),
        })
    return sorted(rows, key=lambda r: r['revenue'], reverse=True)


def week_start(moment: datetime) -> str:
    """ISO date of the Sunday starting the week that contains ``moment``."""
    day = moment.date()
    return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()


def revenue_trend(window: List[Ticket]) -> List[Dict[str, Any]]:
    weeks: Dict[str, float] = {}
    for t in window:
        if not is_finished(t):
            continue
        key = week_start(parse_iso(t.get('completedAt') or t['updatedAt']))
        weeks[key] = weeks.get(key, 0) + ticket_value(t)
    return [{'week': week, 'revenue': weeks[week]} for week in sorted(weeks)]


def build_report(tickets: List[Ticket], technicians: List[Dict[str, Any]], days: int,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
    window = filter_by_window(tickets, days, now)
    return {
        'metrics': report_metrics(window),
        'statusDistribution': distribution(window, 'status'),
        'priorityDistribution': distribution(window, 'priority'),
        'deviceTypeAnalysis': device_type_analysis(window),
        'technicianPerformance': technician_performance(technicians, window),
        'revenueTrend': revenue_trend(window),
    }


def export_report(tickets: List[Ticket], technicians: List[Dict[str, Any]], days: int,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    document = {'dateRange': f"{days} days", 'generatedAt': to_iso(now)}
    document.update(build_report(tickets, technicians, days, now))
    return document


def export_filename(now: Optional[datetime] = None) -> str:
    return f"repair-report-{(now or utcnow()).date().isoformat()}.json"


__all__ = [
    'is_active', 'active_tickets', 'ticket_value', 'decorate_ticket', 'dashboard_stats', 'dashboard_cards',
    'recent_tickets', 'technician_tickets', 'unassigned_tickets', 'workload_metrics', 'technician_workload',
    'workload_summary', 'count_active_by_technician', 'filter_by_window', 'report_metrics', 'distribution',
    'device_type_analysis', 'technician_performance', 'week_start', 'revenue_trend', 'build_report',
    'export_report', 'export_filename',
]
