"""Environment backed defaults for the repair desk service.

Values are read once per ``create_app`` call (after ``load_dotenv``); callers and tests
override any of them through the ``config`` mapping passed to the factory.
"""
from __future__ import annotations
from typing import Any, Dict
import os

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

DEFAULT_REPORT_DAYS = 30
# a century; larger windows overflow the date arithmetic
MAX_REPORT_DAYS = 36500
DEFAULT_LOAD_WORKERS = 3


def env_defaults() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///repairdesk.db'),
        'REPAIRDESK_LOAD_WORKERS': int(os.getenv('REPAIRDESK_LOAD_WORKERS', DEFAULT_LOAD_WORKERS)),
        'REPAIRDESK_REPORT_DAYS': int(os.getenv('REPAIRDESK_REPORT_DAYS', DEFAULT_REPORT_DAYS)),
        'REPAIRDESK_LOG_LEVEL': os.getenv('REPAIRDESK_LOG_LEVEL', 'INFO'),
    }


def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset


def parse_report_days(raw, default: int = DEFAULT_REPORT_DAYS) -> int:
    """Trailing window size for reports.

    Non positive values fall back to ``default``; large ones are clamped to ``MAX_REPORT_DAYS``.
    """
    if raw is None or raw == '':
        return default
    try:
        days = int(raw)
    except (TypeError, ValueError):
        raise ValueError('days must be int')
    if days <= 0:
        return default
    return min(days, MAX_REPORT_DAYS)
