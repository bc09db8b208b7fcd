"""
Engagement - Loummel marketplace signups and prize wheel results.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from boothcrm.bus.events import bus, EVENT_SIGNUP_CREATED, EVENT_WHEEL_PLAYED
from boothcrm.db.store import RecordStore, resolve_store
from boothcrm.engine.clock import local_now
from boothcrm.engine.promo import generate_promo_code
from boothcrm.engine.validation import check_email, require
from boothcrm.logging_config import log_call
from boothcrm.models import SIGNUPS, WHEEL_RESULTS, LoummelSignup, WheelResult, from_record, to_record

logger = logging.getLogger(__name__)


# =============================================================================
# LOUMMEL SIGNUPS
# =============================================================================

@log_call
def create_signup(signup: LoummelSignup, store: Optional[RecordStore] = None) -> LoummelSignup:
    """
    Register a marketplace signup and hand out a promo code.
    A second signup with the same email raises ConflictError; nothing is stored.
    """
    require(signup, 'name', 'email', 'phone')
    check_email(signup.email)

    signup.email = signup.email.strip()
    signup.promo_code = generate_promo_code()
    signup.created_at = local_now()

    record = resolve_store(store).append(SIGNUPS, to_record(signup), unique_on='email')
    created = from_record(LoummelSignup, record)
    logger.info(f"Created signup {created.id}: {created.email} -> {created.promo_code}")

    bus.emit(EVENT_SIGNUP_CREATED, {'signup_id': created.id, 'signup': record})
    return created


def list_signups(
    offset: int = 0,
    limit: Optional[int] = None,
    store: Optional[RecordStore] = None,
) -> Tuple[List[LoummelSignup], int]:
    records, total = resolve_store(store).list(SIGNUPS, offset=offset, limit=limit)
    return [from_record(LoummelSignup, r) for r in records], total


# =============================================================================
# PRIZE WHEEL
# =============================================================================

@log_call
def record_wheel_result(result: WheelResult, store: Optional[RecordStore] = None) -> WheelResult:
    """Store one spin of the wheel. Repeat players are allowed."""
    require(result, 'name', 'email', 'prize')
    check_email(result.email)

    result.prize = result.prize.strip()
    result.created_at = local_now()

    record = resolve_store(store).append(WHEEL_RESULTS, to_record(result))
    created = from_record(WheelResult, record)
    logger.info(f"Wheel result {created.id}: {created.email} won {created.prize!r}")

    bus.emit(EVENT_WHEEL_PLAYED, {'result_id': created.id, 'result': record})
    return created


def list_wheel_results(store: Optional[RecordStore] = None) -> List[WheelResult]:
    return [from_record(WheelResult, r) for r in resolve_store(store).snapshot(WHEEL_RESULTS)]


def wheel_stats(store: Optional[RecordStore] = None) -> Dict[str, Any]:
    """Prize distribution, most frequent first (ties in first-won order)."""
    results = resolve_store(store).snapshot(WHEEL_RESULTS)
    counts = Counter(r.get('prize') for r in results)
    return {
        'total_plays': len(results),
        'distribution': dict(counts.most_common()),
    }
