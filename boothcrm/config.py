"""
Booth CRM Configuration
Loads settings from environment variables with sensible defaults.
"""

import logging
import os
from pathlib import Path
from urllib.parse import urlparse
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Load .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

_LOCAL_HOSTS = {'localhost', '127.0.0.1', '::1'}


class Config:
    """Application configuration."""

    # Storage: 'memory' (cleared on restart) or 'json' (one snapshot file per collection)
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'json').strip().lower()
    if STORAGE_BACKEND not in ('memory', 'json'):
        _logger.critical(f"Unknown STORAGE_BACKEND '{STORAGE_BACKEND}', expected 'memory' or 'json'.")
        raise ValueError(f"STORAGE_BACKEND must be 'memory' or 'json', got '{STORAGE_BACKEND}'")

    DATA_DIR = Path(os.getenv('DATA_DIR') or Path(__file__).parent.parent / 'data')

    # Timezone for "today" splits; empty = host local time
    TIMEZONE = os.getenv('TIMEZONE', '')

    # Listing
    DEFAULT_PAGE_LIMIT = int(os.getenv('DEFAULT_PAGE_LIMIT', '50'))
    TOP_QR_LIMIT = int(os.getenv('TOP_QR_LIMIT', '5'))

    # Marketplace promo codes
    PROMO_CODE_PREFIX = os.getenv('PROMO_CODE_PREFIX', 'LOUMMEL')

    # ROI report constants (business assumptions, not computed)
    AVG_CUSTOMER_VALUE = float(os.getenv('AVG_CUSTOMER_VALUE', '150.0'))
    ROI_CONVERSION_RATE = float(os.getenv('ROI_CONVERSION_RATE', '0.15'))
    COST_PER_LEAD = float(os.getenv('COST_PER_LEAD', '25.0'))

    # Email Configuration (confirmation emails)
    SMTP_HOST = os.getenv('SMTP_HOST', '')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    EMAIL_FROM = os.getenv('EMAIL_FROM', 'contact@booth.local')

    # CRM sync webhook; empty disables sync
    CRM_WEBHOOK_URL = os.getenv('CRM_WEBHOOK_URL', '')
    CRM_WEBHOOK_TIMEOUT = float(os.getenv('CRM_WEBHOOK_TIMEOUT', '10'))
    if CRM_WEBHOOK_URL:
        _parsed = urlparse(CRM_WEBHOOK_URL)
        if _parsed.scheme == 'http' and _parsed.hostname not in _LOCAL_HOSTS:
            _logger.warning(
                f"CRM_WEBHOOK_URL uses plain HTTP to {_parsed.hostname}. "
                "Contact data will be sent unencrypted. Use HTTPS for remote hosts."
            )

    # Background notification workers
    NOTIFY_WORKERS = int(os.getenv('NOTIFY_WORKERS', '2'))


# Singleton instance
config = Config()
