from __future__ import annotations
import io
import json
from flask import Blueprint, request, abort, current_app, send_file
from repairdesk.config.settings import parse_report_days
from repairdesk.decorators.auth import require_permissions
from repairdesk.services.analytics import build_report, export_report, export_filename
from repairdesk.services.repair_system import load_request_system
from repairdesk.utils.timestamps import utcnow

rpt_bp = Blueprint('reports', __name__)


def _window_days() -> int:
    try:
        return parse_report_days(request.args.get('days'), current_app.config['REPAIRDESK_REPORT_DAYS'])
    except ValueError as e:
        abort(400, description=str(e))


@rpt_bp.get('/metrics')
@require_permissions('RPT.READ')
def report_metrics():
    days = _window_days()
    system = load_request_system()
    body = {'dateRange': f"{days} days", 'days': days}
    body.update(build_report(system.tickets, system.technicians, days))
    return body


@rpt_bp.get('/export')
@require_permissions('RPT.READ')
def export():
    """Download the report document as a dated JSON attachment."""
    days = _window_days()
    system = load_request_system()
    now = utcnow()
    document = export_report(system.tickets, system.technicians, days, now)
    buf = io.BytesIO(json.dumps(document, indent=2).encode('utf-8'))
    current_app.logger.info('Report exported for %s', document['dateRange'])
    return send_file(buf, as_attachment=True, download_name=export_filename(now), mimetype='application/json')
