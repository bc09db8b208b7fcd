#!/usr/bin/env python3
"""
Booth CRM Contact Importer
Bulk-loads contacts from a CSV file (a previous export, or the web form's
own spreadsheet) into the record store.

Features:
- Accepts both export column names and the web form's camelCase names
- Deduplication by email (case-insensitive), against the store and the file
- Every row goes through the normal create path, so leads are classified
- Dry-run mode
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from tqdm import tqdm

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from boothcrm.db.store import RecordStore, resolve_store  # noqa: E402
from boothcrm.engine import crm  # noqa: E402
from boothcrm.errors import BoothCRMError  # noqa: E402
from boothcrm.models import CONTACTS, Contact  # noqa: E402

# Web form column -> Contact field
COLUMN_ALIASES = {
    'firstname': 'name',
    'lastname': 'surname',
    'companySize': 'company_size',
    'loummelInterest': 'loummel_interest',
    'callbackPreference': 'callback_preference',
    'callback': 'callback_preference',
}

_IMPORTABLE = {
    'name', 'surname', 'email', 'phone', 'company', 'position', 'sector',
    'company_size', 'needs', 'loummel_interest', 'callback_preference', 'source',
}


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename web form columns to Contact field names."""
    return df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns})


def row_to_contact(row: Dict[str, str]) -> Contact:
    """One CSV row -> Contact. Blank cells become None; unknown columns are dropped."""
    values = {}
    for key, value in row.items():
        if key not in _IMPORTABLE:
            continue
        text = '' if pd.isna(value) else str(value).strip()
        values[key] = text or None
    if not values.get('source'):
        values['source'] = 'csv_import'
    for required in ('name', 'email', 'phone'):
        if values.get(required) is None:
            values[required] = ''
    return Contact(**values)


def import_contacts(csv_path: Path, dry_run: bool = False, store: Optional[RecordStore] = None) -> Dict[str, int]:
    """
    Import every row of csv_path. Returns counts of created / skipped / errors.
    """
    store = resolve_store(store)
    df = normalize_columns(pd.read_csv(csv_path, dtype=str, keep_default_na=False))

    seen = {str(r.get('email', '')).strip().lower() for r in store.snapshot(CONTACTS)}
    stats = {'created': 0, 'skipped': 0, 'errors': 0}

    for row in tqdm(df.to_dict(orient='records'), desc="Importing contacts", unit="contact"):
        contact = row_to_contact(row)
        key = contact.email.strip().lower()

        if key and key in seen:
            logging.info(f"Skipping duplicate email {contact.email}")
            stats['skipped'] += 1
            continue

        if dry_run:
            logging.info(f"[DRY-RUN] Would create contact {contact.email} ({contact.name})")
            stats['created'] += 1
            seen.add(key)
            continue

        try:
            crm.create_contact(contact, store=store)
        except BoothCRMError as e:
            logging.error(f"Row {contact.email or '(no email)'} rejected: {e}")
            stats['errors'] += 1
            continue

        seen.add(key)
        stats['created'] += 1

    return stats


# =============================================================================
# MAIN IMPORT ORCHESTRATOR
# =============================================================================

def run_import(csv_path: Path, dry_run: bool = False, log_level: str = "INFO") -> int:
    """Main import function."""

    log_file = project_root / "logs" / f"import_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    log_file.parent.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logging.info("=" * 80)
    logging.info("BOOTH CRM CONTACT IMPORT")
    logging.info("=" * 80)
    logging.info(f"Mode: {'DRY-RUN' if dry_run else 'LIVE'}")
    logging.info(f"Source: {csv_path}")
    logging.info("=" * 80)

    if not csv_path.exists():
        logging.error(f"CSV file not found: {csv_path}")
        return 1

    try:
        stats = import_contacts(csv_path, dry_run=dry_run)
    except (OSError, ValueError, BoothCRMError) as e:
        logging.error(f"Import failed: {e}", exc_info=True)
        return 1

    logging.info("=" * 80)
    logging.info("IMPORT COMPLETE")
    logging.info(f"Contacts created: {stats['created']}")
    logging.info(f"Contacts skipped: {stats['skipped']}")
    logging.info(f"Errors: {stats['errors']}")
    logging.info("=" * 80)

    return 0 if stats['errors'] == 0 else 1


def main():
    parser = argparse.ArgumentParser(description="Import contacts from a CSV file into Booth CRM")
    parser.add_argument('csv_path', type=Path, help="CSV file to import")
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help="Show what would be imported without writing to the store"
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help="Logging level (default: INFO)"
    )

    args = parser.parse_args()

    sys.exit(run_import(args.csv_path, dry_run=args.dry_run, log_level=args.log_level))


if __name__ == "__main__":
    main()
