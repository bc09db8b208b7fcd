"""
Notifier - confirmation emails and CRM sync.

Listens on the event bus; never called directly by the engine. Delivery is
best-effort and at-most-once: a failure raises NotificationError, which the
bus logs and drops. Nothing is retried.
"""

import logging
import smtplib
import weakref
from email.message import EmailMessage
from typing import Any, Dict

import requests

from boothcrm.bus.events import (
    EventBus, bus as default_bus,
    EVENT_CONTACT_CREATED, EVENT_SIGNUP_CREATED, EVENT_WHEEL_PLAYED,
    EVENT_EMAIL_SENT, EVENT_CRM_SYNCED,
)
from boothcrm.config import config
from boothcrm.errors import NotificationError

logger = logging.getLogger(__name__)


# =============================================================================
# EMAIL TEMPLATES
# =============================================================================

TEMPLATES = {
    'contact_received': (
        "Thanks for visiting our booth, {name}",
        "Hello {name},\n\n"
        "Thank you for leaving your details at our stand. "
        "A member of our team will get back to you shortly.\n\n"
        "See you soon!",
    ),
    'signup_welcome': (
        "Welcome to Loummel, {name}",
        "Hello {name},\n\n"
        "Your Loummel marketplace account request is registered.\n"
        "Your promo code: {promo_code}\n\n"
        "Present it at checkout to claim your launch offer.",
    ),
    'wheel_prize': (
        "You won: {prize}",
        "Congratulations {name}!\n\n"
        "The wheel landed on: {prize}.\n"
        "Show this email at the booth to collect your prize.",
    ),
}


def render(template: str, context: Dict[str, Any]):
    """Return (subject, body) for a template name."""
    if template not in TEMPLATES:
        raise NotificationError(f"Unknown email template '{template}'")
    subject, body = TEMPLATES[template]
    try:
        return subject.format(**context), body.format(**context)
    except KeyError as e:
        raise NotificationError(f"Template '{template}' missing value for {e}") from e


# =============================================================================
# DELIVERY
# =============================================================================

def send_email(recipient: str, template: str, context: Dict[str, Any]) -> bool:
    """
    Send one templated email over SMTP (STARTTLS).
    Returns False when SMTP is not configured, True once handed to the server.
    """
    if not config.SMTP_HOST:
        logger.info(f"SMTP_HOST not set, skipping '{template}' email to {recipient}")
        return False

    subject, body = render(template, context)
    message = EmailMessage()
    message['From'] = config.EMAIL_FROM
    message['To'] = recipient
    message['Subject'] = subject
    message.set_content(body)

    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as smtp:
            smtp.starttls()
            if config.SMTP_USERNAME:
                smtp.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Email '{template}' to {recipient} failed: {e}")
        raise NotificationError(f"Failed to send email to {recipient}: {e}") from e

    logger.info(f"Sent '{template}' email to {recipient}")
    default_bus.emit(EVENT_EMAIL_SENT, {'recipient': recipient, 'template': template})
    return True


def sync_contact(snapshot: Dict[str, Any]) -> bool:
    """
    Push a contact snapshot to the CRM webhook.
    Returns False when no webhook is configured.
    """
    if not config.CRM_WEBHOOK_URL:
        logger.debug("CRM_WEBHOOK_URL not set, skipping CRM sync")
        return False

    try:
        response = requests.post(
            config.CRM_WEBHOOK_URL,
            json=snapshot,
            timeout=(5, config.CRM_WEBHOOK_TIMEOUT),
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"CRM sync failed for contact {snapshot.get('id')}: {e}")
        raise NotificationError(f"CRM sync failed: {e}") from e

    logger.info(f"Synced contact {snapshot.get('id')} to CRM")
    default_bus.emit(EVENT_CRM_SYNCED, {'contact_id': snapshot.get('id')})
    return True


# =============================================================================
# EVENT HANDLERS
# =============================================================================

def on_contact_created(event_data: Dict[str, Any]):
    contact = event_data['contact']
    send_email(contact['email'], 'contact_received', contact)


def on_contact_created_sync(event_data: Dict[str, Any]):
    sync_contact(event_data['contact'])


def on_signup_created(event_data: Dict[str, Any]):
    signup = event_data['signup']
    send_email(signup['email'], 'signup_welcome', signup)


def on_wheel_played(event_data: Dict[str, Any]):
    result = event_data['result']
    send_email(result['email'], 'wheel_prize', result)


_registered = weakref.WeakSet()


def register_handlers(event_bus: EventBus = None):
    """Wire notifications to the bus. Safe to call more than once."""
    event_bus = event_bus or default_bus
    if event_bus in _registered:
        return
    event_bus.on(EVENT_CONTACT_CREATED, on_contact_created)
    event_bus.on(EVENT_CONTACT_CREATED, on_contact_created_sync)
    event_bus.on(EVENT_SIGNUP_CREATED, on_signup_created)
    event_bus.on(EVENT_WHEEL_PLAYED, on_wheel_played)
    _registered.add(event_bus)
    logger.debug("Notification handlers registered")
