#!/usr/bin/env python
"""Mint an access token for a role preset (there is no login endpoint).

Usage:
    python backend/scripts/issue_token.py --role FrontDesk
    python backend/scripts/issue_token.py --role Manager --subject alice --hours 12
    python backend/scripts/issue_token.py --perms RPR.READ RPT.READ
    python backend/scripts/issue_token.py --show-roles
    python backend/scripts/issue_token.py --init-db           # create tables when migrations were not run
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from datetime import timedelta

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from flask_jwt_extended import create_access_token  # noqa: E402
from repairdesk import create_app, get_db  # type: ignore  # noqa: E402
from repairdesk.constants.permissions import ROLE_PRESETS, ALL_PERMISSION_CODES, expand_role  # noqa: E402


def print_role_summary():
    name_w = max(len(name) for name in ROLE_PRESETS)
    print(f"{'Role'.ljust(name_w)} | Count | Permissions")
    print('-' * (name_w + 40))
    for name, codes in ROLE_PRESETS.items():
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(codes)}")


def resolve_permissions(args):
    if args.perms:
        unknown = [c for c in args.perms if c not in ALL_PERMISSION_CODES]
        if unknown:
            raise SystemExit(f"[ERROR] Unknown permission code(s): {', '.join(unknown)}")
        return list(args.perms)
    try:
        return expand_role(args.role)
    except KeyError as e:
        raise SystemExit(f"[ERROR] {e.args[0]}; choose one of {', '.join(ROLE_PRESETS)}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Issue a JWT carrying repair desk permission codes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  front desk: issue_token.py --role FrontDesk\n  explicit: issue_token.py --perms RPR.READ RPT.READ\n""")
    )
    p.add_argument('--role', default='FrontDesk', help='Role preset whose permissions go into the token')
    p.add_argument('--perms', nargs='+', metavar='CODE', help='Explicit permission codes (overrides --role)')
    p.add_argument('--subject', default='operator', help='Token identity (sub claim)')
    p.add_argument('--hours', type=int, default=8, help='Token lifetime in hours')
    p.add_argument('--show-roles', action='store_true', help='Print role presets and exit')
    p.add_argument('--init-db', action='store_true', help='Create missing tables before issuing the token')
    return p.parse_args()


def main():
    args = parse_args()
    if args.show_roles:
        print_role_summary()
        return
    perms = resolve_permissions(args)
    app = create_app()
    with app.app_context():
        if args.init_db:
            # lightweight bootstrap; in a real environment prefer `alembic upgrade head`
            from repairdesk.models.base import Base
            import repairdesk.models.repair_ticket  # noqa: F401
            Base.metadata.create_all(get_db().get_bind())
            print('[INFO] Tables ensured.')
        token = create_access_token(
            identity=args.subject,
            additional_claims={'perms': perms},
            expires_delta=timedelta(hours=args.hours),
        )
    print(token)


if __name__ == '__main__':
    main()
