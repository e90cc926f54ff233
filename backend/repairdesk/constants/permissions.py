"""Central enum-like definitions to avoid typos in permission/service strings.
Extend cautiously; never rename codes silently since issued tokens carry them.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['RPR', 'CUS', 'TECH', 'RPT']

SERVICE_ACTIONS = {
    'RPR': ['READ', 'MANAGE'],
    'CUS': ['READ', 'MANAGE'],
    'TECH': ['READ', 'MANAGE'],
    'RPT': ['READ'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PRESETS: Dict[str, List[str]] = {
    'FrontDesk': ['RPR.READ', 'RPR.MANAGE', 'CUS.READ', 'CUS.MANAGE', 'TECH.READ'],
    'Technician': ['RPR.READ', 'RPR.MANAGE', 'CUS.READ', 'TECH.READ'],
    # Manager: everything the shop exposes, including reporting and staff records
    'Manager': ALL_PERMISSION_CODES,
}


def expand_role(role_name: str) -> List[str]:
    if role_name not in ROLE_PRESETS:
        raise KeyError(f"Unknown role preset {role_name}")
    return list(ROLE_PRESETS[role_name])
