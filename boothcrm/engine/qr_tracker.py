"""
QR Tracker - QR codes, scans, and scan statistics.

Each QR code carries a denormalized scan_count that must always equal the
number of Scan records pointing at it; record_scan keeps the two in step.
"""

import logging
from typing import Any, Dict, List, Optional

from boothcrm.bus.events import bus, EVENT_QR_CODE_CREATED, EVENT_SCAN_RECORDED, EVENT_SCAN_CONVERTED
from boothcrm.config import config
from boothcrm.db.store import RecordStore, resolve_store
from boothcrm.engine.clock import local_now
from boothcrm.engine.validation import check_choice, check_url, require
from boothcrm.errors import NotFoundError, StorageError, ValidationError
from boothcrm.logging_config import log_call
from boothcrm.models import QR_CODES, QR_TYPES, SCANS, QRCode, Scan, from_record, to_record

logger = logging.getLogger(__name__)


# =============================================================================
# QR CODES
# =============================================================================

@log_call
def create_qr_code(qr: QRCode, store: Optional[RecordStore] = None) -> QRCode:
    """Register a new QR code. The counter always starts at zero."""
    require(qr, 'name', 'url')
    check_choice(qr.type, QR_TYPES, 'type')
    check_url(qr.url)

    qr.scan_count = 0
    qr.created_at = local_now()

    record = resolve_store(store).append(QR_CODES, to_record(qr))
    created = from_record(QRCode, record)
    logger.info(f"Created QR code {created.id}: {created.name} ({created.type})")

    bus.emit(EVENT_QR_CODE_CREATED, {'qr_code_id': created.id, 'qr_code': record})
    return created


def get_qr_code(qr_code_id: str, store: Optional[RecordStore] = None) -> QRCode:
    return from_record(QRCode, resolve_store(store).get(QR_CODES, qr_code_id))


def list_qr_codes(active: Optional[bool] = None, store: Optional[RecordStore] = None) -> List[QRCode]:
    """All QR codes in creation order, optionally only active/inactive ones."""
    records = resolve_store(store).snapshot(QR_CODES)
    if active is not None:
        records = [r for r in records if bool(r.get('active', True)) == active]
    return [from_record(QRCode, r) for r in records]


# =============================================================================
# SCANS
# =============================================================================

@log_call
def record_scan(
    qr_code_id: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    converted: bool = False,
    store: Optional[RecordStore] = None,
) -> Scan:
    """
    Log a scan and bump the code's scan_count.
    Raises NotFoundError for unknown codes, ValidationError for inactive ones.
    """
    store = resolve_store(store)
    qr = get_qr_code(qr_code_id, store=store)
    if not qr.active:
        raise ValidationError(f"QR code '{qr_code_id}' is inactive", field='qr_code_id')

    scan = Scan(
        qr_code_id=qr_code_id,
        user_agent=user_agent,
        ip_address=ip_address,
        scanned_at=local_now(),
        converted=bool(converted),
    )
    record = store.append(SCANS, to_record(scan))

    try:
        store.update(QR_CODES, qr_code_id, lambda r: {'scan_count': int(r.get('scan_count', 0)) + 1})
    except (StorageError, NotFoundError):
        # Counter and scan log must agree: take the scan back out.
        logger.error(f"Scan counter update failed for QR {qr_code_id}, removing scan {record['id']}")
        store.delete(SCANS, record['id'])
        raise

    created = from_record(Scan, record)
    logger.info(f"Recorded scan {created.id} for QR {qr_code_id}")
    bus.emit(EVENT_SCAN_RECORDED, {'scan_id': created.id, 'qr_code_id': qr_code_id})
    return created


@log_call
def mark_scan_converted(scan_id: str, store: Optional[RecordStore] = None) -> Scan:
    """Flag a scan as having led to the desired action. Idempotent."""
    record = resolve_store(store).update(SCANS, scan_id, {'converted': True})
    logger.info(f"Scan {scan_id} marked converted")
    bus.emit(EVENT_SCAN_CONVERTED, {'scan_id': scan_id, 'qr_code_id': record.get('qr_code_id')})
    return from_record(Scan, record)


def list_scans(qr_code_id: Optional[str] = None, store: Optional[RecordStore] = None) -> List[Scan]:
    records = resolve_store(store).snapshot(SCANS)
    if qr_code_id is not None:
        records = [r for r in records if r.get('qr_code_id') == qr_code_id]
    return [from_record(Scan, r) for r in records]


# =============================================================================
# SCAN AGGREGATOR
# =============================================================================

def conversion_rate(conversions: int, total: int) -> float:
    """Percentage rounded to 2 decimals; 0 when there is nothing to divide by."""
    if not total:
        return 0
    return round(conversions / total * 100, 2)


def scan_stats(scans: List[Dict[str, Any]], qr_code_id: str) -> Dict[str, Any]:
    """Totals for one code over an already-loaded scan log."""
    matching = [s for s in scans if s.get('qr_code_id') == qr_code_id]
    total_scans = len(matching)
    conversions = sum(1 for s in matching if s.get('converted'))
    return {
        'total_scans': total_scans,
        'conversions': conversions,
        'conversion_rate': conversion_rate(conversions, total_scans),
    }


def stats_for(qr_code_id: str, store: Optional[RecordStore] = None) -> Dict[str, Any]:
    """Scan totals and conversion rate for one QR code. Raises NotFoundError."""
    store = resolve_store(store)
    store.get(QR_CODES, qr_code_id)
    return scan_stats(store.snapshot(SCANS), qr_code_id)


def rank_qr_codes(qr_codes: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    """Most-scanned first; ties keep creation order (sorted() is stable)."""
    ranked = sorted(qr_codes, key=lambda q: int(q.get('scan_count', 0)), reverse=True)
    return [{'name': q.get('name'), 'scans': int(q.get('scan_count', 0))} for q in ranked[:max(limit, 0)]]


def top_qr_codes(limit: Optional[int] = None, store: Optional[RecordStore] = None) -> List[Dict[str, Any]]:
    """Top-N QR codes by scan count as [{name, scans}]."""
    if limit is None:
        limit = config.TOP_QR_LIMIT
    return rank_qr_codes(resolve_store(store).snapshot(QR_CODES), limit)
