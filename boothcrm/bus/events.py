"""
Event Bus - Decoupled Module Communication
Engine modules emit events, side-effect modules (email, CRM sync) listen.
Handlers are fire-and-forget: a failing handler is logged, never surfaced.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Any, Optional
import logging
import threading

from boothcrm.config import config

logger = logging.getLogger(__name__)


class EventBus:
    """
    Simple event bus for decoupled module communication.
    Modules emit events, other modules register handlers to listen.

    With background=True handlers run on a small worker pool and emit()
    returns immediately; with background=False they run inline.
    """

    def __init__(self, background: bool = False, max_workers: int = 2):
        self._handlers: Dict[str, List[Callable]] = {}
        self._background = background
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def on(self, event_name: str, handler: Callable):
        """
        Register a handler for an event.

        Args:
            event_name: Name of the event to listen for
            handler: Callable that receives event_data dict
        """
        if event_name not in self._handlers:
            self._handlers[event_name] = []
        self._handlers[event_name].append(handler)
        logger.debug(f"Registered handler for event '{event_name}': {handler.__name__}")

    def emit(self, event_name: str, event_data: Dict[str, Any] = None):
        """
        Emit an event to all registered handlers.

        Args:
            event_name: Name of the event
            event_data: Optional dict of data to pass to handlers
        """
        if event_data is None:
            event_data = {}

        logger.debug(f"Emitting event '{event_name}' with data: {event_data}")

        for handler in list(self._handlers.get(event_name, [])):
            if self._background:
                self._get_executor().submit(self._dispatch, event_name, handler, event_data)
            else:
                self._dispatch(event_name, handler, event_data)

    def _dispatch(self, event_name: str, handler: Callable, event_data: Dict[str, Any]):
        try:
            handler(event_data)
        except Exception as e:
            logger.error(f"Error in handler {handler.__name__} for event '{event_name}': {e}")

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix='boothcrm-notify'
                )
            return self._executor

    def shutdown(self, wait: bool = True):
        """Stop the worker pool. With wait=True, pending handlers finish first."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def clear(self):
        """Clear all handlers (useful for testing)."""
        self._handlers.clear()


# Singleton instance
bus = EventBus(background=True, max_workers=config.NOTIFY_WORKERS)


# =============================================================================
# STANDARD EVENTS
# =============================================================================

# Contact Events
EVENT_CONTACT_CREATED = 'contact_created'
EVENT_CONTACT_UPDATED = 'contact_updated'
EVENT_CONTACT_DELETED = 'contact_deleted'

# QR Tracking Events
EVENT_QR_CODE_CREATED = 'qr_code_created'
EVENT_SCAN_RECORDED = 'scan_recorded'
EVENT_SCAN_CONVERTED = 'scan_converted'

# Engagement Events
EVENT_SIGNUP_CREATED = 'signup_created'
EVENT_WHEEL_PLAYED = 'wheel_played'

# Notifier Events
EVENT_EMAIL_SENT = 'email_sent'
EVENT_CRM_SYNCED = 'crm_synced'
