"""
QR payload rules for treasure markers.

Printed markers carry `"geohunt:<treasureId>"`. A scan is only accepted when
the decoded payload names exactly the treasure the player is hunting;
comparison is case-sensitive with no trimming.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from src.modules.shared.constants import QR_NAMESPACE, QR_SEPARATOR

PAYLOAD_PREFIX = f"{QR_NAMESPACE}{QR_SEPARATOR}"


class ScanClassification(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    MALFORMED = "malformed"


def encode(treasure_id: str) -> str:
    """Payload to print on the marker for `treasure_id`."""
    if not treasure_id:
        raise ValueError("treasure_id must be non-empty")
    return f"{PAYLOAD_PREFIX}{treasure_id}"


def parse(payload: Any) -> Optional[str]:
    """Treasure id carried by a GeoHunt payload, or None for anything else."""
    if not isinstance(payload, str) or not payload.startswith(PAYLOAD_PREFIX):
        return None
    treasure_id = payload[len(PAYLOAD_PREFIX):]
    return treasure_id or None


def classify(payload: Any, target_id: str) -> ScanClassification:
    """
    Decide what a decoded payload means for the current hunt.

    >>> classify("geohunt:grand-library", "grand-library")
    <ScanClassification.MATCH: 'match'>
    >>> classify("geohunt:heritage-arch", "grand-library")
    <ScanClassification.MISMATCH: 'mismatch'>
    >>> classify("https://example.com", "grand-library")
    <ScanClassification.MALFORMED: 'malformed'>
    """
    treasure_id = parse(payload)
    if treasure_id is None:
        return ScanClassification.MALFORMED
    if treasure_id == target_id:
        return ScanClassification.MATCH
    return ScanClassification.MISMATCH
