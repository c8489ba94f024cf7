"""
Unit Conversion
===============

Conversions between the upstream feed units (degrees, knots, nautical miles)
and the SI units published on the bus (radians, m/s, meters).
"""

import math

KNOTS_TO_MPS = 0.51444
METERS_PER_NM = 1852.0


def deg_to_rad(deg: float) -> float:
    return deg * math.pi / 180.0


def rad_to_deg(rad: float) -> float:
    return rad * 180.0 / math.pi


def knots_to_mps(knots: float) -> float:
    return knots * KNOTS_TO_MPS


def mps_to_knots(mps: float) -> float:
    return mps / KNOTS_TO_MPS


def nm_to_meters(nm: float) -> float:
    return nm * METERS_PER_NM
