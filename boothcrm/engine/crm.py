"""
CRM Engine - Contact Operations
Create, read, update, delete and export the leads collected at the booth.
Side effects (confirmation email, CRM sync) happen through the event bus only.
"""

import csv
import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from boothcrm.bus.events import bus, EVENT_CONTACT_CREATED, EVENT_CONTACT_UPDATED, EVENT_CONTACT_DELETED
from boothcrm.db.store import RecordStore, resolve_store
from boothcrm.engine.clock import local_now
from boothcrm.engine.leads import classify
from boothcrm.engine.validation import check_allowed_fields, check_choice, check_email, require
from boothcrm.errors import ValidationError
from boothcrm.logging_config import log_call
from boothcrm.models import CONTACTS, CONTACT_STATUSES, Contact, from_record, to_record

logger = logging.getLogger(__name__)

# Fields an explicit update may touch. id and timestamps are managed here.
_CONTACT_COLUMNS = {
    'name', 'surname', 'email', 'phone', 'company', 'position', 'sector',
    'company_size', 'needs', 'loummel_interest', 'callback_preference',
    'status', 'source',
}


# =============================================================================
# CONTACT OPERATIONS
# =============================================================================

@log_call
def create_contact(contact: Contact, store: Optional[RecordStore] = None) -> Contact:
    """
    Validate, classify and store a new contact.
    Returns: the stored contact with id and timestamps set.
    """
    require(contact, 'name', 'email', 'phone')
    check_email(contact.email)
    if contact.callback_preference is not None and not isinstance(contact.callback_preference, str):
        raise ValidationError("callback_preference must be text", field='callback_preference')

    now = local_now()
    contact.status = classify(contact.callback_preference)
    contact.created_at = now
    contact.updated_at = now

    record = resolve_store(store).append(CONTACTS, to_record(contact))
    created = from_record(Contact, record)
    logger.info(f"Created contact {created.id}: {created.email} ({created.status})")

    bus.emit(EVENT_CONTACT_CREATED, {'contact_id': created.id, 'contact': to_record(created)})
    return created


def get_contact(contact_id: str, store: Optional[RecordStore] = None) -> Contact:
    """Get contact by id. Raises NotFoundError."""
    return from_record(Contact, resolve_store(store).get(CONTACTS, contact_id))


@log_call
def update_contact(contact_id: str, updates: Dict[str, Any], store: Optional[RecordStore] = None) -> Contact:
    """
    Update contact fields.
    Status is only changed when given explicitly; a new callback preference
    does not re-classify the lead.
    """
    if not updates:
        raise ValidationError("No fields to update")

    # Guard: only known fields may be patched
    check_allowed_fields(updates, _CONTACT_COLUMNS, 'contact')
    if 'status' in updates:
        check_choice(updates['status'], CONTACT_STATUSES, 'status')
    if 'email' in updates:
        check_email(updates['email'])
    for field in ('name', 'email', 'phone'):
        if field in updates and not (isinstance(updates[field], str) and updates[field].strip()):
            raise ValidationError(f"{field} is required", field=field)

    changes = dict(updates)
    changes['updated_at'] = local_now().isoformat()

    record = resolve_store(store).update(CONTACTS, contact_id, changes)
    logger.info(f"Updated contact {contact_id}: {sorted(updates)}")
    bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact_id, 'updates': dict(updates)})
    return from_record(Contact, record)


@log_call
def delete_contact(contact_id: str, store: Optional[RecordStore] = None) -> None:
    """Erase a contact for good. Raises NotFoundError."""
    resolve_store(store).delete(CONTACTS, contact_id)
    logger.info(f"Deleted contact {contact_id}")
    bus.emit(EVENT_CONTACT_DELETED, {'contact_id': contact_id})


def search_contacts(
    status: Optional[str] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
    store: Optional[RecordStore] = None,
) -> Tuple[List[Contact], int]:
    """
    Search contacts with optional status filter and free-text search
    (name, surname, email, company).
    Returns (page of contacts, total matches).
    """
    if status is not None:
        check_choice(status, CONTACT_STATUSES, 'status')

    records, total = resolve_store(store).list(
        CONTACTS, filters={'status': status}, search=search, offset=offset, limit=limit
    )
    logger.debug(f"search_contacts: {len(records)}/{total} results (status={status}, search={search!r})")
    return [from_record(Contact, r) for r in records], total


# =============================================================================
# EXPORT
# =============================================================================

@log_call
def export_contacts_csv(store: Optional[RecordStore] = None) -> str:
    """
    All contacts as CSV. Header lists field names in first-seen order;
    values containing a comma, quote or newline are quoted.
    """
    records = resolve_store(store).snapshot(CONTACTS)
    if not records:
        return ''

    df = pd.DataFrame(records, dtype=object)
    return df.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
