"""
Great-Circle Geodesy
====================

Haversine distance and forward azimuth between latitude/longitude pairs.

Both functions accept scalars or numpy arrays so the fleet tracker can
process a whole ranking batch at once.
"""

import numpy as np

EARTH_RADIUS_M = 6371000.0


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Great circle distance in meters.

    Args:
        lat1, lon1: Start position (degrees)
        lat2, lon2: End position (degrees)

    Returns:
        Distance in meters (float or ndarray)
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat_rad = np.radians(np.subtract(lat2, lat1))
    dlon_rad = np.radians(np.subtract(lon2, lon1))

    a = (np.sin(dlat_rad / 2) ** 2 +
         np.cos(lat1_rad) * np.cos(lat2_rad) *
         np.sin(dlon_rad / 2) ** 2)
    # Rounding can push a marginally outside [0, 1] for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def initial_bearing(lat1, lon1, lat2, lon2):
    """
    Initial bearing from point 1 to point 2.

    Returns:
        Bearing in radians, range [0, 2*pi) (float for scalar inputs)
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlon_rad = np.radians(np.subtract(lon2, lon1))

    x = np.sin(dlon_rad) * np.cos(lat2_rad)
    y = (np.cos(lat1_rad) * np.sin(lat2_rad) -
         np.sin(lat1_rad) * np.cos(lat2_rad) * np.cos(dlon_rad))

    bearing = np.mod(np.arctan2(x, y), 2 * np.pi)
    # mod can return exactly 2*pi for tiny negative angles
    bearing = np.where(bearing >= 2 * np.pi, 0.0, bearing)
    if np.ndim(bearing) == 0:
        return float(bearing)
    return bearing
