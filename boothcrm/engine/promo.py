"""
Promo Code Generator
Codes look like LOUMMEL-7KQ2ZD. Uniqueness is probabilistic only: the
email check on signup is what actually keeps signups unique.
"""

import secrets
import string
from typing import Optional

from boothcrm.config import config

SUFFIX_LENGTH = 6
_ALPHABET = string.ascii_uppercase + string.digits


def generate_promo_code(prefix: Optional[str] = None) -> str:
    prefix = prefix if prefix is not None else config.PROMO_CODE_PREFIX
    suffix = ''.join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix}-{suffix}"
