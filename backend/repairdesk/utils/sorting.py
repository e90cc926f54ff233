from __future__ import annotations
from flask import abort


def _sort_key(field: str):
    # missing values sort first ascending, last descending
    return lambda row: (row.get(field) is not None, row.get(field))


def apply_multi_sort(rows: list, sort_expr: str | None, allowed: set) -> list:
    """Apply a multi-field sort to a list of entity dicts.
    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: entity keys that may be sorted on.
    Without a sort expression the collection's own order is kept.
    """
    if not sort_expr:
        return list(rows)
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        if key not in allowed:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append((key, desc))
    out = list(rows)
    # stable sorts applied from the least significant clause up
    for key, desc in reversed(clauses):
        out.sort(key=_sort_key(key), reverse=desc)
    return out
