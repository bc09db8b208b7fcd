"""
Input checks shared by the engine modules.
Each failure raises ValidationError naming the offending field.
"""

import re
from typing import Any, Iterable, Optional

from boothcrm.errors import ValidationError

_EMAIL_RE = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
_URL_RE = re.compile(r'^https?://\S+$')


def require(entity: Any, *field_names: str) -> None:
    """Every named attribute must be a non-blank string."""
    for name in field_names:
        value = getattr(entity, name, None)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} is required", field=name)


def check_email(value: Optional[str], field: str = 'email') -> None:
    if not value or not _EMAIL_RE.match(value.strip()):
        raise ValidationError(f"{field} is not a valid email address", field=field)


def check_url(value: Optional[str], field: str = 'url') -> None:
    if not value or not _URL_RE.match(value.strip()):
        raise ValidationError(f"{field} must be an http(s) URL", field=field)


def check_choice(value: Any, choices: Iterable[str], field: str) -> None:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}", field=field)


def check_allowed_fields(updates: dict, allowed: set, entity: str) -> None:
    """Raise ValidationError if any key in updates is not an allowed field name."""
    invalid = set(updates.keys()) - allowed
    if invalid:
        raise ValidationError(f"Invalid {entity} fields: {sorted(invalid)}", field=sorted(invalid)[0])
