"""Display helpers shared by the dashboard, workload and report views.

All functions are pure; unknown enum values fall back to the neutral grey tag so a new
status added in the store never breaks rendering.
"""
from __future__ import annotations
from typing import Optional

from repairdesk.utils.timestamps import parse_iso

NEUTRAL_TAG = 'bg-gray-100 text-gray-800'

STATUS_TAGS = {
    'received': 'bg-blue-100 text-blue-800',
    'diagnosed': 'bg-purple-100 text-purple-800',
    'in_progress': 'bg-yellow-100 text-yellow-800',
    'awaiting_parts': 'bg-orange-100 text-orange-800',
    'testing': 'bg-indigo-100 text-indigo-800',
    'completed': 'bg-green-100 text-green-800',
    'ready_for_pickup': 'bg-emerald-100 text-emerald-800',
    'picked_up': 'bg-gray-100 text-gray-800',
    'cancelled': 'bg-red-100 text-red-800',
}

PRIORITY_TAGS = {
    'low': 'bg-gray-100 text-gray-700',
    'medium': 'bg-blue-100 text-blue-700',
    'high': 'bg-amber-100 text-amber-700',
    'urgent': 'bg-red-100 text-red-700',
}

GRADE_TAGS = {
    'excellent': 'bg-green-100 text-green-800',
    'good': 'bg-blue-100 text-blue-800',
    'fair': 'bg-yellow-100 text-yellow-800',
    'poor': 'bg-orange-100 text-orange-800',
    'damaged': 'bg-red-100 text-red-800',
}

# (upper bound inclusive, level) checked in order
WORKLOAD_LEVELS = ((0, 'idle'), (2, 'light'), (4, 'moderate'))
WORKLOAD_HEAVY = 'heavy'


def format_currency(amount) -> str:
    """USD with thousands separators: 1234.5 -> '$1,234.50', -5 -> '-$5.00'."""
    value = float(amount or 0)
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.2f}"


def format_date(value) -> str:
    """'Oct 18, 2026, 02:05 PM' style long timestamp; empty for missing values."""
    dt = parse_iso(value)
    if dt is None:
        return ''
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}, {dt.strftime('%I:%M %p')}"


def format_date_short(value) -> str:
    dt = parse_iso(value)
    if dt is None:
        return ''
    return f"{dt.strftime('%b')} {dt.day}"


def status_color(status: Optional[str]) -> str:
    return STATUS_TAGS.get(status or '', NEUTRAL_TAG)


def priority_color(priority: Optional[str]) -> str:
    return PRIORITY_TAGS.get(priority or '', 'bg-gray-100 text-gray-700')


def grade_color(grade: Optional[str]) -> str:
    return GRADE_TAGS.get(grade or '', NEUTRAL_TAG)


def workload_level(ticket_count: int) -> str:
    for upper, level in WORKLOAD_LEVELS:
        if ticket_count <= upper:
            return level
    return WORKLOAD_HEAVY


def humanize_status(value: Optional[str]) -> str:
    """'ready_for_pickup' -> 'Ready For Pickup'."""
    if not value:
        return ''
    return ' '.join(part.capitalize() for part in value.split('_'))


__all__ = [
    'format_currency', 'format_date', 'format_date_short', 'status_color', 'priority_color',
    'grade_color', 'workload_level', 'humanize_status',
]
