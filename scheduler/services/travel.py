"""
Travel-time estimates between UK postcodes.

``PostcodeHashEstimator`` is a placeholder that derives a stable pseudo
distance from the postcode characters. A real mapping provider can replace
it by implementing ``DistanceEstimator``.
"""

from __future__ import annotations

import re
from typing import Optional, Protocol

POSTCODE_RE = re.compile(r"([A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2})", re.IGNORECASE)

DEFAULT_TRAVEL_MINUTES = 45
DEFAULT_BUFFER_MINUTES = 15


def extract_postcode(address: Optional[str]) -> Optional[str]:
    """First UK postcode in ``address``, upper-cased with spaces removed."""
    if not address:
        return None
    match = POSTCODE_RE.search(address)
    if not match:
        return None
    return re.sub(r"\s", "", match.group(1).upper())


class DistanceEstimator(Protocol):
    def travel_minutes(self, from_postcode: Optional[str], to_postcode: Optional[str]) -> int: ...


class PostcodeHashEstimator:
    """20 to 89 minutes from the character-sum difference of two postcodes."""

    def travel_minutes(self, from_postcode: Optional[str], to_postcode: Optional[str]) -> int:
        if not from_postcode or not to_postcode:
            return DEFAULT_TRAVEL_MINUTES
        diff = abs(sum(map(ord, from_postcode)) - sum(map(ord, to_postcode)))
        return 20 + diff % 70


def get_distance_estimator() -> DistanceEstimator:
    return PostcodeHashEstimator()


def calculate_start_time(
    default_start: str,
    start_location: Optional[str],
    job_address: Optional[str],
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
    estimator: DistanceEstimator | None = None,
) -> str:
    """Shift start minus travel time and a pre-start buffer, as HH:MM.

    Returns ``default_start`` unchanged when either postcode is unknown.
    The result wraps around midnight.
    """
    from_postcode = extract_postcode(start_location)
    to_postcode = extract_postcode(job_address)
    if not from_postcode or not to_postcode:
        return default_start

    estimator = estimator or get_distance_estimator()
    total = estimator.travel_minutes(from_postcode, to_postcode) + buffer_minutes

    hours, _, minutes = default_start.partition(":")
    try:
        start = int(hours or 8) * 60 + int(minutes or 0)
    except ValueError:
        start = 8 * 60
    start = (start - total) % (24 * 60)
    return f"{start // 60:02d}:{start % 60:02d}"
