"""
Dead Reckoning
==============

Extrapolates position and trip log from the last polled fix assuming
constant speed and course since that fix.

Flat-earth (rhumb-line, small-angle) approximation: valid over the short
windows between two polls, degrades with elapsed time and near the poles.
"""

import math
import time
from dataclasses import dataclass
from typing import Optional

from .units import METERS_PER_NM

# Below this cos(latitude) the longitude increment is dropped
MIN_COS_LATITUDE = 1e-9


@dataclass(frozen=True)
class Extrapolation:
    """Dead-reckoned position and trip log."""
    latitude: float     # Decimal degrees
    longitude: float    # Decimal degrees
    trip_log: float     # Meters


class DeadReckoningEstimator:
    """
    Constant-velocity extrapolation from a single fix.

    Stateless apart from its clock, so one instance can serve the own
    boat and every tracked competitor.
    """

    def __init__(self, clock=time.time):
        self._clock = clock

    def extrapolate(self, latitude: float, longitude: float,
                    sog: float, cog: float, trip_log: float,
                    timestamp: float, now: Optional[float] = None) -> Extrapolation:
        """
        Extrapolate from a fix.

        Args:
            latitude: Fix latitude (degrees)
            longitude: Fix longitude (degrees)
            sog: Speed over ground (m/s)
            cog: Course over ground (radians true)
            trip_log: Trip log at the fix (meters)
            timestamp: Time of the fix (epoch seconds)
            now: Extrapolation time, defaults to the estimator clock

        Returns:
            Extrapolation at ``now``
        """
        if now is None:
            now = self._clock()
        # A fix stamped in the future is treated as current
        elapsed_s = max(0.0, now - timestamp)

        distance_nm = sog * elapsed_s / METERS_PER_NM
        dlat = distance_nm / 60.0 * math.cos(cog)

        cos_lat = math.cos(math.radians(latitude))
        if abs(cos_lat) < MIN_COS_LATITUDE:
            dlon = 0.0
        else:
            dlon = distance_nm / 60.0 * math.sin(cog) / cos_lat

        return Extrapolation(
            latitude=latitude + dlat,
            longitude=longitude + dlon,
            trip_log=trip_log + sog * elapsed_s,
        )
