"""
Reports - dashboard KPIs and the daily / event / ROI summaries.
Every report is a projection over snapshots read at call time; nothing here
writes to the store.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from boothcrm.config import config
from boothcrm.db.store import RecordStore, resolve_store
from boothcrm.engine.clock import local_midnight, local_now, local_tz, parse_timestamp
from boothcrm.engine.qr_tracker import conversion_rate, rank_qr_codes
from boothcrm.errors import ValidationError
from boothcrm.logging_config import log_call
from boothcrm.models import (
    CONTACTS, QR_CODES, SCANS, SIGNUPS, WHEEL_RESULTS,
    CONTACT_STATUSES, STATUS_HOT,
)

logger = logging.getLogger(__name__)

REPORT_KINDS = ('daily', 'event', 'roi')


def _count_since(records: List[Dict[str, Any]], field: str, since: datetime) -> int:
    count = 0
    for record in records:
        ts = parse_timestamp(record.get(field))
        if ts is not None and ts >= since:
            count += 1
    return count


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# =============================================================================
# DASHBOARD
# =============================================================================

@log_call
def dashboard_kpis(now: Optional[datetime] = None, store: Optional[RecordStore] = None) -> Dict[str, Any]:
    """Today vs all-time counts; today starts at local midnight."""
    store = resolve_store(store)
    midnight = local_midnight(parse_timestamp(now) or local_now())

    contacts = store.snapshot(CONTACTS)
    scans = store.snapshot(SCANS)
    signups = store.snapshot(SIGNUPS)
    plays = store.snapshot(WHEEL_RESULTS)

    return {
        'total_contacts': len(contacts),
        'today_contacts': _count_since(contacts, 'created_at', midnight),
        'total_scans': len(scans),
        'today_scans': _count_since(scans, 'scanned_at', midnight),
        'total_signups': len(signups),
        'today_signups': _count_since(signups, 'created_at', midnight),
        'total_wheel_plays': len(plays),
        'today_wheel_plays': _count_since(plays, 'created_at', midnight),
        'hot_leads': sum(1 for c in contacts if c.get('status') == STATUS_HOT),
        'qr_codes': len(store.snapshot(QR_CODES)),
    }


# =============================================================================
# REPORTS
# =============================================================================

def daily_report(now: Optional[datetime] = None, store: Optional[RecordStore] = None) -> Dict[str, Any]:
    store = resolve_store(store)
    today = (parse_timestamp(now) or local_now()).astimezone(local_tz()).date()
    contacts = len(store.snapshot(CONTACTS))
    signups = len(store.snapshot(SIGNUPS))
    return {
        'type': 'daily',
        'date': today.isoformat(),
        'contacts': contacts,
        'scans': len(store.snapshot(SCANS)),
        'signups': signups,
        'conversion_rate': conversion_rate(signups, contacts),
    }


def event_report(store: Optional[RecordStore] = None) -> Dict[str, Any]:
    store = resolve_store(store)
    contacts = store.snapshot(CONTACTS)
    leads = {status: 0 for status in CONTACT_STATUSES}
    for contact in contacts:
        status = contact.get('status')
        if status in leads:
            leads[status] += 1
    return {
        'type': 'event',
        'totals': {
            'contacts': len(contacts),
            'scans': len(store.snapshot(SCANS)),
            'signups': len(store.snapshot(SIGNUPS)),
        },
        'leads': leads,
        'top_qr_codes': rank_qr_codes(store.snapshot(QR_CODES), config.TOP_QR_LIMIT),
    }


def roi_report(store: Optional[RecordStore] = None) -> Dict[str, Any]:
    """
    Projected return on the booth, from the configured business constants.
    roi_percent is None when there is no lead cost to divide by
    (no contacts yet, or COST_PER_LEAD of zero).
    """
    contacts = len(resolve_store(store).snapshot(CONTACTS))
    estimated_customers = _round_half_up(contacts * config.ROI_CONVERSION_RATE)
    estimated_revenue = estimated_customers * config.AVG_CUSTOMER_VALUE
    total_cost = contacts * config.COST_PER_LEAD

    roi_percent = None
    if total_cost:
        roi_percent = round(estimated_revenue / total_cost * 100, 2)
    else:
        logger.info("roi_report: no lead cost yet, ROI undefined")

    return {
        'type': 'roi',
        'contacts': contacts,
        'avg_customer_value': config.AVG_CUSTOMER_VALUE,
        'conversion_rate': config.ROI_CONVERSION_RATE,
        'cost_per_lead': config.COST_PER_LEAD,
        'estimated_customers': estimated_customers,
        'estimated_revenue': estimated_revenue,
        'total_cost': total_cost,
        'roi_percent': roi_percent,
    }


_GENERATORS: Dict[str, Callable[..., Dict[str, Any]]] = {
    'daily': daily_report,
    'event': event_report,
    'roi': roi_report,
}


@log_call
def generate_report(kind: str, store: Optional[RecordStore] = None) -> Dict[str, Any]:
    """Dispatch by kind. Unknown kinds are rejected, never defaulted."""
    generator = _GENERATORS.get(kind)
    if generator is None:
        raise ValidationError(f"Unknown report type '{kind}'. Choose from: {', '.join(REPORT_KINDS)}", field='type')
    return generator(store=store)
