"""
Lead Classifier
Maps a visitor's stated callback preference to a priority tier.
Called once, when the contact is created.
"""

from typing import Optional

from boothcrm.models import CALLBACK_48H, CALLBACK_URGENT, STATUS_COLD, STATUS_HOT, STATUS_WARM

_TIERS = {
    CALLBACK_URGENT: STATUS_HOT,
    CALLBACK_48H: STATUS_WARM,
}


def classify(callback_preference: Optional[str]) -> str:
    """urgent -> hot, 48h -> warm, anything else (or nothing) -> cold."""
    if not isinstance(callback_preference, str):
        return STATUS_COLD
    return _TIERS.get(callback_preference, STATUS_COLD)
