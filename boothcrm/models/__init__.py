"""
Data Models
Dataclasses for all entities. These are pure Python objects, no storage logic.
Records are persisted as JSON-safe dicts; to_record / from_record convert.
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar

# Collection names in the record store
CONTACTS = 'contacts'
QR_CODES = 'qr_codes'
SCANS = 'scans'
SIGNUPS = 'loummel_signups'
WHEEL_RESULTS = 'wheel_results'

# Lead status tiers
STATUS_HOT = 'hot'
STATUS_WARM = 'warm'
STATUS_COLD = 'cold'
CONTACT_STATUSES = (STATUS_HOT, STATUS_WARM, STATUS_COLD)

CALLBACK_URGENT = 'urgent'
CALLBACK_48H = '48h'
CALLBACK_PREFERENCES = (CALLBACK_URGENT, CALLBACK_48H)

QR_TYPES = ('contact', 'loummel', 'resources', 'vcard', 'appointment', 'social', 'game')


@dataclass
class Contact:
    """Visitor who left their details at the booth"""
    id: Optional[str] = None
    name: str = ''
    surname: Optional[str] = None
    email: str = ''
    phone: str = ''
    company: Optional[str] = None
    position: Optional[str] = None
    sector: Optional[str] = None
    company_size: Optional[str] = None
    needs: Optional[str] = None
    loummel_interest: Optional[str] = None
    callback_preference: Optional[str] = None
    status: str = STATUS_COLD
    source: str = 'web_form'
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class QRCode:
    """Printed QR code pointing at one of the booth pages"""
    id: Optional[str] = None
    name: str = ''
    type: str = 'contact'
    url: str = ''
    scan_count: int = 0
    active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Scan:
    """One scan of a QR code. Only `converted` may change after creation."""
    id: Optional[str] = None
    qr_code_id: str = ''
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    scanned_at: Optional[datetime] = None
    converted: bool = False


@dataclass
class LoummelSignup:
    """Marketplace signup; email is unique across all signups"""
    id: Optional[str] = None
    name: str = ''
    email: str = ''
    phone: str = ''
    promo_code: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class WheelResult:
    """Prize wheel outcome; the same visitor may play again"""
    id: Optional[str] = None
    name: str = ''
    email: str = ''
    prize: str = ''
    created_at: Optional[datetime] = None


T = TypeVar('T')


def to_record(entity) -> Dict[str, Any]:
    """Dataclass -> JSON-safe dict (datetimes as ISO-8601 strings)."""
    record = asdict(entity)
    for key, value in record.items():
        if isinstance(value, datetime):
            record[key] = value.isoformat()
    return record


def from_record(cls: Type[T], record: Dict[str, Any]) -> T:
    """Stored dict -> dataclass. Unknown keys are ignored."""
    known = {f.name for f in fields(cls)}
    values = {k: v for k, v in record.items() if k in known}
    for key, value in values.items():
        if key.endswith('_at') and isinstance(value, str) and value:
            values[key] = datetime.fromisoformat(value)
    return cls(**values)
