"""
Unit tests for application configuration (boothcrm/config.py).

Config is a class with attributes set at class-body parse time, and a module-level
singleton created immediately after. Testing different env var states requires
re-importing the module, with load_dotenv mocked to a no-op so the .env file on
disk doesn't override what we set in the test environment.
"""

import importlib
import logging
import sys
from pathlib import Path

import pytest
from unittest.mock import patch


# ---------------------------------------------------------------------------
# Helper: reload boothcrm.config with a controlled environment
# ---------------------------------------------------------------------------

def _reload_config(env_overrides: dict):
    """
    Re-import boothcrm.config with a specific set of environment variables.
    load_dotenv is patched to a no-op so the real .env file is ignored.
    Always restores the original module in sys.modules afterward.
    """
    original = sys.modules.get('boothcrm.config')
    try:
        with patch.dict('os.environ', env_overrides, clear=True), \
             patch('dotenv.load_dotenv'):
            sys.modules.pop('boothcrm.config', None)
            return importlib.import_module('boothcrm.config')
    finally:
        if original is not None:
            sys.modules['boothcrm.config'] = original
        elif 'boothcrm.config' in sys.modules:
            del sys.modules['boothcrm.config']


# ---------------------------------------------------------------------------
# STORAGE_BACKEND guard
# ---------------------------------------------------------------------------

def test_storage_backend_defaults_to_json():
    assert _reload_config({}).Config.STORAGE_BACKEND == 'json'


@pytest.mark.parametrize('value', ['memory', 'MEMORY', ' json '])
def test_storage_backend_accepts_known_values(value):
    mod = _reload_config({'STORAGE_BACKEND': value})
    assert mod.Config.STORAGE_BACKEND in ('memory', 'json')


def test_unknown_storage_backend_raises_value_error():
    with pytest.raises(ValueError, match='STORAGE_BACKEND'):
        _reload_config({'STORAGE_BACKEND': 'postgres'})


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

def test_defaults():
    cfg = _reload_config({}).Config
    assert cfg.DEFAULT_PAGE_LIMIT == 50
    assert cfg.TOP_QR_LIMIT == 5
    assert cfg.PROMO_CODE_PREFIX == 'LOUMMEL'
    assert cfg.AVG_CUSTOMER_VALUE == 150.0
    assert cfg.ROI_CONVERSION_RATE == 0.15
    assert cfg.COST_PER_LEAD == 25.0
    assert cfg.SMTP_PORT == 587
    assert cfg.SMTP_HOST == ''
    assert cfg.CRM_WEBHOOK_URL == ''
    assert cfg.TIMEZONE == ''
    assert cfg.NOTIFY_WORKERS == 2


def test_data_dir_defaults_to_project_data():
    cfg = _reload_config({}).Config
    assert cfg.DATA_DIR.name == 'data'


# ---------------------------------------------------------------------------
# Custom env var values are picked up
# ---------------------------------------------------------------------------

def test_custom_values():
    cfg = _reload_config({
        'DATA_DIR': '/var/lib/booth',
        'TIMEZONE': 'Africa/Douala',
        'DEFAULT_PAGE_LIMIT': '20',
        'PROMO_CODE_PREFIX': 'FAIR',
        'COST_PER_LEAD': '40',
    }).Config
    assert cfg.DATA_DIR == Path('/var/lib/booth')
    assert cfg.TIMEZONE == 'Africa/Douala'
    assert cfg.DEFAULT_PAGE_LIMIT == 20
    assert cfg.PROMO_CODE_PREFIX == 'FAIR'
    assert cfg.COST_PER_LEAD == 40.0


# ---------------------------------------------------------------------------
# CRM webhook plaintext HTTP warning
# ---------------------------------------------------------------------------

def test_non_local_http_webhook_triggers_warning(caplog):
    with caplog.at_level(logging.WARNING, logger='boothcrm.config'):
        _reload_config({'CRM_WEBHOOK_URL': 'http://crm.example.cm/hook'})
    assert any('HTTPS' in r.message for r in caplog.records)


@pytest.mark.parametrize('url', [
    'http://localhost:8000/hook',
    'http://127.0.0.1:8000/hook',
    'https://crm.example.cm/hook',
])
def test_safe_webhook_no_warning(caplog, url):
    with caplog.at_level(logging.WARNING, logger='boothcrm.config'):
        _reload_config({'CRM_WEBHOOK_URL': url})
    assert not any('HTTPS' in r.message for r in caplog.records)
