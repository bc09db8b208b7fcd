"""
API boundary - transport-independent request/response layer.

    handle('POST', '/api/contacts', body={...}) -> Response(201, {...})

An HTTP server (or anything else) parses the request, calls handle(), and
writes the Response back. Engine errors are mapped to status codes here and
nowhere else.
"""

import logging
import re
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from boothcrm.db.store import RecordStore, resolve_store
from boothcrm.engine import crm, engagement, qr_tracker, reports
from boothcrm.errors import ConflictError, NotFoundError, StorageError, ValidationError
from boothcrm.models import Contact, LoummelSignup, QRCode, WheelResult, to_record

logger = logging.getLogger(__name__)


@dataclass
class Response:
    status: int
    body: Any
    content_type: str = 'application/json'


@dataclass
class Request:
    method: str
    path: str
    params: Dict[str, str]
    body: Dict[str, Any]
    query: Dict[str, str]
    store: RecordStore


def _build(cls, body: Dict[str, Any]):
    """Dataclass from request body; unknown keys and server-managed fields are dropped."""
    managed = {'id', 'created_at', 'updated_at', 'scanned_at', 'status', 'scan_count', 'promo_code'}
    allowed = {f.name for f in fields(cls)} - managed
    return cls(**{k: v for k, v in body.items() if k in allowed})


def _int_param(query: Dict[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = query.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", field=name)


def _bool_field(body: Dict[str, Any], name: str, default: bool) -> bool:
    raw = body.get(name, default)
    if not isinstance(raw, bool):
        raise ValidationError(f"{name} must be true or false", field=name)
    return raw


def _page(items: List[Any], total: int, offset: int, limit: Optional[int]) -> Dict[str, Any]:
    return {'items': [to_record(i) for i in items], 'total': total, 'offset': offset, 'limit': limit}


# =============================================================================
# CONTACTS
# =============================================================================

def create_contact(req: Request) -> Response:
    contact = crm.create_contact(_build(Contact, req.body), store=req.store)
    return Response(201, {'success': True, 'contact': to_record(contact)})


def list_contacts(req: Request) -> Response:
    offset = _int_param(req.query, 'offset', 0)
    limit = _int_param(req.query, 'limit', None)
    items, total = crm.search_contacts(
        status=req.query.get('status') or None,
        search=req.query.get('search'),
        offset=offset,
        limit=limit,
        store=req.store,
    )
    return Response(200, _page(items, total, offset, limit))


def export_contacts(req: Request) -> Response:
    return Response(200, crm.export_contacts_csv(store=req.store), content_type='text/csv')


def get_contact(req: Request) -> Response:
    return Response(200, to_record(crm.get_contact(req.params['id'], store=req.store)))


def update_contact(req: Request) -> Response:
    contact = crm.update_contact(req.params['id'], dict(req.body), store=req.store)
    return Response(200, {'success': True, 'contact': to_record(contact)})


def delete_contact(req: Request) -> Response:
    crm.delete_contact(req.params['id'], store=req.store)
    return Response(200, {'success': True})


# =============================================================================
# QR CODES
# =============================================================================

def create_qr_code(req: Request) -> Response:
    qr = qr_tracker.create_qr_code(_build(QRCode, req.body), store=req.store)
    return Response(201, to_record(qr))


def list_qr_codes(req: Request) -> Response:
    return Response(200, [to_record(q) for q in qr_tracker.list_qr_codes(store=req.store)])


def top_qr_codes(req: Request) -> Response:
    limit = _int_param(req.query, 'limit', None)
    return Response(200, qr_tracker.top_qr_codes(limit=limit, store=req.store))


def qr_code_stats(req: Request) -> Response:
    return Response(200, qr_tracker.stats_for(req.params['id'], store=req.store))


def convert_scan(req: Request) -> Response:
    return Response(200, to_record(qr_tracker.mark_scan_converted(req.params['id'], store=req.store)))


def record_scan(req: Request) -> Response:
    scan = qr_tracker.record_scan(
        req.params['id'],
        user_agent=req.body.get('user_agent'),
        ip_address=req.body.get('ip_address'),
        converted=_bool_field(req.body, 'converted', False),
        store=req.store,
    )
    return Response(201, to_record(scan))


# =============================================================================
# ENGAGEMENT
# =============================================================================

def create_signup(req: Request) -> Response:
    signup = engagement.create_signup(_build(LoummelSignup, req.body), store=req.store)
    return Response(201, {'success': True, 'signup': to_record(signup), 'promo_code': signup.promo_code})


def list_signups(req: Request) -> Response:
    offset = _int_param(req.query, 'offset', 0)
    limit = _int_param(req.query, 'limit', None)
    items, total = engagement.list_signups(offset=offset, limit=limit, store=req.store)
    return Response(200, _page(items, total, offset, limit))


def create_wheel_result(req: Request) -> Response:
    result = engagement.record_wheel_result(_build(WheelResult, req.body), store=req.store)
    return Response(201, to_record(result))


def wheel_stats(req: Request) -> Response:
    return Response(200, engagement.wheel_stats(store=req.store))


# =============================================================================
# ANALYTICS
# =============================================================================

def dashboard(req: Request) -> Response:
    return Response(200, reports.dashboard_kpis(store=req.store))


def report(req: Request) -> Response:
    return Response(200, reports.generate_report(req.params['kind'], store=req.store))


# =============================================================================
# ROUTING
# =============================================================================

def _route(method: str, pattern: str, view: Callable[[Request], Response]) -> Tuple[str, Pattern, Callable]:
    regex = re.sub(r'\{(\w+)\}', r'(?P<\1>[^/]+)', pattern)
    return method, re.compile(f'^{regex}$'), view


# Order matters: literal segments before {id} captures.
ROUTES = [
    _route('POST',   '/api/contacts',              create_contact),
    _route('GET',    '/api/contacts',              list_contacts),
    _route('GET',    '/api/contacts/export',       export_contacts),
    _route('GET',    '/api/contacts/{id}',         get_contact),
    _route('PUT',    '/api/contacts/{id}',         update_contact),
    _route('DELETE', '/api/contacts/{id}',         delete_contact),
    _route('POST',   '/api/qrcodes',               create_qr_code),
    _route('GET',    '/api/qrcodes',               list_qr_codes),
    _route('GET',    '/api/qrcodes/top',           top_qr_codes),
    _route('GET',    '/api/qrcodes/{id}/stats',    qr_code_stats),
    _route('POST',   '/api/qrcodes/{id}/scan',     record_scan),
    _route('POST',   '/api/scans/{id}/convert',      convert_scan),
    _route('POST',   '/api/loummel/signup',        create_signup),
    _route('GET',    '/api/loummel/signups',       list_signups),
    _route('POST',   '/api/wheel/results',         create_wheel_result),
    _route('GET',    '/api/wheel/stats',           wheel_stats),
    _route('GET',    '/api/dashboard',             dashboard),
    _route('GET',    '/api/reports/{kind}',        report),
]


def handle(
    method: str,
    path: str,
    body: Optional[Dict[str, Any]] = None,
    query: Optional[Dict[str, str]] = None,
    store: Optional[RecordStore] = None,
) -> Response:
    """Dispatch one request and translate engine errors into responses."""
    method = method.upper()
    path = path.rstrip('/') or '/'

    for route_method, regex, view in ROUTES:
        if route_method != method:
            continue
        match = regex.match(path)
        if not match:
            continue

        if body is not None and not isinstance(body, dict):
            return Response(400, {'error': 'Request body must be a JSON object'})

        req = Request(
            method=method, path=path, params=match.groupdict(),
            body=body or {}, query=query or {}, store=resolve_store(store),
        )
        try:
            return view(req)
        except ValidationError as e:
            logger.warning(f"{method} {path} rejected: {e.message}")
            return Response(400, {'error': e.message, 'field': e.field})
        except NotFoundError as e:
            logger.warning(f"{method} {path}: {e.message}")
            return Response(404, {'error': e.message})
        except ConflictError as e:
            logger.warning(f"{method} {path} conflict: {e.message}")
            return Response(409, {'error': e.message, 'field': e.field})
        except StorageError as e:
            logger.error(f"{method} {path} storage failure: {e}", exc_info=True)
            return Response(500, {'error': 'Server error'})

    logger.debug(f"No route for {method} {path}")
    return Response(404, {'error': f'No route for {method} {path}'})
