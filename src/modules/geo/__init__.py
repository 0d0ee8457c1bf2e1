"""
Geo module.

Distance math for the proximity gate and an async watcher over the device
position stream.
"""

from .location_watch import (
    LocationWatch,
    PositionFix,
    PositionPermissionDenied,
    PositionSource,
    WatchState,
)
from .proximity import (
    distance_meters,
    distance_to,
    format_distance,
    is_within_range,
    nearest_target,
)

__all__ = [
    "distance_meters",
    "distance_to",
    "is_within_range",
    "nearest_target",
    "format_distance",
    "LocationWatch",
    "PositionFix",
    "PositionPermissionDenied",
    "PositionSource",
    "WatchState",
]
