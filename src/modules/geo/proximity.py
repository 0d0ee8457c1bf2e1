"""
Geographic proximity rules.

Purpose
-------
Great-circle distance between two WGS84 points and the "close enough to
scan" gate. All functions are pure and synchronous.

Notes
-----
- Haversine with a spherical Earth of radius 6,371,000 m.
- The haversine term is clamped to [0, 1] so floating-point drift on
  antipodal points never produces NaN.
- A missing current position is infinitely far away, never in range.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Protocol, Sequence, Tuple, TypeVar

from src.modules.shared.constants import EARTH_RADIUS_METERS, PROXIMITY_THRESHOLD_METERS


class HasPosition(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


class HasIdAndPosition(HasPosition, Protocol):
    @property
    def id(self) -> str: ...


P = TypeVar("P", bound=HasIdAndPosition)


def distance_meters(a: HasPosition, b: HasPosition) -> float:
    """Haversine distance in meters; 0.0 for identical points."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_to(current: Optional[HasPosition], target: HasPosition) -> float:
    """Distance from an optional fix; `math.inf` when there is no fix."""
    if current is None:
        return math.inf
    return distance_meters(current, target)


def is_within_range(
    current: Optional[HasPosition],
    target: HasPosition,
    threshold: float = PROXIMITY_THRESHOLD_METERS,
) -> bool:
    """True only when the distance is strictly below `threshold` meters."""
    return distance_to(current, target) < threshold


def nearest_target(
    current: Optional[HasPosition],
    targets: Sequence[P],
    exclude_ids: Iterable[str] = (),
) -> Optional[Tuple[P, float]]:
    """
    Closest target not in `exclude_ids`, with its distance.

    Ties keep the earlier target. Returns None without a fix or when every
    target is excluded.
    """
    if current is None:
        return None

    excluded = set(exclude_ids)
    best: Optional[Tuple[P, float]] = None
    for target in targets:
        if target.id in excluded:
            continue
        dist = distance_meters(current, target)
        if best is None or dist < best[1]:
            best = (target, dist)
    return best


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(meters: float) -> str:
    """
    Human-friendly distance label.

    >>> format_distance(30)
    'Very close!'
    >>> format_distance(72.4)
    '72m away'
    >>> format_distance(640)
    '640m'
    >>> format_distance(1530)
    '1.5km'
    """
    if not math.isfinite(meters):
        return "Unknown"
    if meters < PROXIMITY_THRESHOLD_METERS:
        return "Very close!"
    if meters < 100:
        return f"{_round_half_up(meters)}m away"
    if meters < 1000:
        return f"{_round_half_up(meters)}m"
    return f"{meters / 1000:.1f}km"
