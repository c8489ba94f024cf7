"""
Wind Triangle
=============

Resolves apparent wind from true wind and boat velocity.

The apparent wind vector is the true wind vector added to the boat's
negative velocity vector. All angles are radians, all speeds m/s.
"""

import math
from typing import NamedTuple

from .units import deg_to_rad


class ApparentWind(NamedTuple):
    """Apparent wind angle (radians, +ve starboard) and speed (m/s)."""
    angle: float
    speed: float


def normalize_true_wind_angle(twd: float, heading: float) -> float:
    """
    Compute true wind angle from true wind direction and heading.

    The raw TWA field of the upstream feed is unreliable, so the angle is
    always rebuilt from TWD and HDG and folded into (-180, 180].

    Args:
        twd: True wind direction (degrees)
        heading: Boat heading (degrees)

    Returns:
        True wind angle in radians, range (-pi, pi]
    """
    twa = (180.0 + twd - heading) % 360.0 - 180.0
    if twa == -180.0:
        twa = 180.0
    return deg_to_rad(twa)


def apparent_wind(tws: float, twa: float, sog: float) -> ApparentWind:
    """
    Calculate apparent wind from true wind.

    Args:
        tws: True wind speed (m/s)
        twa: True wind angle (radians, signed)
        sog: Boat speed over ground (m/s)

    Returns:
        ApparentWind(angle, speed)
    """
    # Boat reference: x forward, y starboard
    aw_x = sog + tws * math.cos(twa)
    aw_y = tws * math.sin(twa)

    return ApparentWind(
        angle=math.atan2(aw_y, aw_x),
        speed=math.sqrt(aw_x**2 + aw_y**2),
    )
