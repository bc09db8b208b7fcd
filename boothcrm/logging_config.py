"""
Booth logging.

Everything under the `boothcrm` package logs to one rotating file,
logs/boothcrm.log. Modules take `logging.getLogger(__name__)`, so the
record names (boothcrm.engine.qr_tracker, boothcrm.bus.events, ...) show
which part of the booth wrote the line. The CLI root group configures the
file once per invocation; the API layer and the engine never configure
logging themselves, they only emit.

Engine entry points (create_contact, record_scan, create_signup,
generate_report, ...) are wrapped in @log_call, which leaves a CALL / OK /
FAIL trail. Visitor form values can be long, so argument reprs are clipped.

    2026-10-19 14:32:01 | DEBUG    | boothcrm.engine.qr_tracker | CALL record_scan | args=('5f1c...', converted=True)
    2026-10-19 14:32:01 | INFO     | boothcrm.engine.qr_tracker | OK   record_scan | 2ms
    2026-10-19 14:32:02 | ERROR    | boothcrm.engine.engagement | FAIL create_signup | ConflictError: ... | 1ms

LOG_LEVEL picks the level (DEBUG shows the CALL lines); anything that is
not a logging level name means INFO.
"""

import functools
import logging
import logging.handlers
import os
import time
from pathlib import Path

_ROOT_LOGGER = "boothcrm"
_LOG_DIR = Path(__file__).parent.parent / "logs"
_LOG_FILE = _LOG_DIR / "boothcrm.log"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_BACKUP_COUNT = 3
_MAX_ARG_CHARS = 200


def _level_from_env() -> int:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    """Attach the rotating file handler to the boothcrm logger, once."""
    _LOG_DIR.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(_ROOT_LOGGER)
    if logger.handlers:
        return logger

    logger.setLevel(_level_from_env())
    handler = logging.handlers.RotatingFileHandler(
        _LOG_FILE,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def _clip(value) -> str:
    text = repr(value)
    if len(text) > _MAX_ARG_CHARS:
        return text[:_MAX_ARG_CHARS] + "..."
    return text


def log_call(func):
    """
    Trace an engine entry point: CALL at DEBUG, OK with timing at INFO,
    FAIL with the exception at ERROR before re-raising. Lines go to the
    logger of the module that defines `func` when it lives in boothcrm.
    """
    module = func.__module__ or ""
    logger_name = module if module.startswith(_ROOT_LOGGER) else _ROOT_LOGGER

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(logger_name)
        name = func.__name__
        start = time.perf_counter()

        parts = [_clip(a) for a in args] + [f"{k}={_clip(v)}" for k, v in kwargs.items()]
        logger.debug(f"CALL {name} | args=({', '.join(parts) if parts else '—'})")

        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            ms = int((time.perf_counter() - start) * 1000)
            logger.error(f"FAIL {name} | {type(exc).__name__}: {exc} | {ms}ms")
            raise
        ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"OK   {name} | {ms}ms")
        return result

    return wrapper
