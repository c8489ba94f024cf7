"""
Navigation Modules
==================

Pure numeric helpers used by the derivation engine:
unit conversion, wind triangle, dead reckoning and great-circle geodesy.
"""

from .units import (
    deg_to_rad,
    rad_to_deg,
    knots_to_mps,
    mps_to_knots,
    nm_to_meters,
)
from .wind import ApparentWind, apparent_wind, normalize_true_wind_angle
from .dead_reckoning import DeadReckoningEstimator, Extrapolation
from .geodesy import EARTH_RADIUS_M, haversine_distance, initial_bearing

__all__ = [
    'deg_to_rad', 'rad_to_deg', 'knots_to_mps', 'mps_to_knots', 'nm_to_meters',
    'ApparentWind', 'apparent_wind', 'normalize_true_wind_angle',
    'DeadReckoningEstimator', 'Extrapolation',
    'EARTH_RADIUS_M', 'haversine_distance', 'initial_bearing',
]
