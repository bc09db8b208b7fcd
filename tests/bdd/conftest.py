"""
Shared fixtures and step definitions for BDD tests.

- runner, mock_crm, context: available to all scenario files in this directory
- no_side_effects: autouse, prevents log file creation and notification wiring
- 'the output contains' step: shared across all feature files
"""

import pytest
from unittest.mock import patch
from click.testing import CliRunner
from pytest_bdd import then, parsers


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_crm():
    with patch("boothcrm.cli.main.crm") as mock:
        yield mock


@pytest.fixture
def context():
    """Mutable dict shared between Given/When/Then steps within a scenario."""
    return {}


@pytest.fixture(autouse=True)
def no_side_effects():
    with patch("boothcrm.cli.main.configure_logging"), \
         patch("boothcrm.cli.main.notifier"), \
         patch("boothcrm.bus.events.bus.emit"):
        yield


@then(parsers.parse('the output contains "{text}"'))
def output_contains(context, text):
    assert text in context["result"].output, (
        f"Expected {text!r} in output:\n{context['result'].output}"
    )
