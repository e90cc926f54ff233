from __future__ import annotations
from typing import Iterable, List, Optional, Tuple
from flask import request, abort, make_response
from repairdesk.config.settings import normalize_pagination
from repairdesk.utils.timestamps import parse_iso, ensure_utc, to_iso
import hashlib
import json
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    return ensure_utc(dt).replace(microsecond=0)


def latest_timestamp(rows: Iterable[dict], key: str) -> Optional[datetime]:
    stamps = [parse_iso(r.get(key)) for r in rows if r.get(key)]
    return max(stamps) if stamps else None


def paginate(rows: List[dict]) -> Tuple[List[dict], int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    return rows[offset:offset + limit], len(rows), limit, offset


def content_fingerprint(payload) -> str:
    return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()


def compute_etag(ids: Iterable[str], total: int, limit: int, offset: int, fingerprint: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{fingerprint or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    pagination = {'total': total, 'limit': limit, 'offset': offset, 'returned': len(rows)}
    return {'data': rows, 'pagination': pagination}


def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def _set_validators(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_ts:
        latest_c = canonicalize_timestamp(latest_ts)
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = to_iso(latest_c)
    return resp


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    ids = [r.get('id') for r in rows]
    etag = compute_etag(ids, total, limit, offset, content_fingerprint(rows))
    resp = make_response(build_list_payload(rows, total, limit, offset))
    return _set_validators(resp, etag, latest_ts), etag


def make_cached_entity_response(body: dict, latest_ts: Optional[datetime] = None):
    etag = compute_etag([body.get('id')], 1, 1, 0, content_fingerprint(body))
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return _set_validators(make_response(body), etag, latest_ts)


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    try:
        return parse_iso(header_val)
    except ValueError:
        pass
    # HTTP-date form
    try:
        dt = parsedate_to_datetime(header_val)
    except (TypeError, ValueError):
        return None
    return ensure_utc(dt) if dt else None


def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """304 response when the client copy is current, else None.

    A matching If-None-Match wins; If-Modified-Since is consulted only without one and only for
    collections that carry a modification stamp.
    """
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag_value:
        return _set_validators(make_response('', 304), etag_value, latest_ts)
    ims_dt = _parse_if_modified_since(request.headers.get('If-Modified-Since'))
    if ims_dt and latest_ts:
        if canonicalize_timestamp(latest_ts) <= canonicalize_timestamp(ims_dt) + TIMESTAMP_TOLERANCE:
            return _set_validators(make_response('', 304), etag_value, latest_ts)
    return None


def list_response(rows: List[dict], timestamp_key: Optional[str] = None):
    """Paginate ``rows`` and answer with validators, or 304 when the client copy is current.

    ``timestamp_key`` names the modification stamp used for Last-Modified; entities without
    one are validated by ETag only.
    """
    page, total, limit, offset = paginate(rows)
    latest_ts = latest_timestamp(page, timestamp_key) if timestamp_key else None
    resp, etag = make_cached_list_response(page, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp
