"""Permission checks for the blueprints.

Tokens carry their permission codes in a ``perms`` claim (see ``scripts/issue_token.py``);
there is no user table behind them.
"""
from functools import wraps
from typing import List, Set
from flask import abort
from flask_jwt_extended import verify_jwt_in_request, get_jwt


def current_permissions() -> Set[str]:
    return set(get_jwt().get('perms', []))


def missing_permissions(*codes: str) -> List[str]:
    granted = current_permissions()
    return [c for c in codes if c not in granted]


def require_permissions(*codes: str):
    """Route guard: a valid token holding every one of ``codes``."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            missing = missing_permissions(*codes)
            if missing:
                abort(403, description=f"Missing permission {', '.join(missing)}")
            return fn(*args, **kwargs)
        return wrapper
    return outer
