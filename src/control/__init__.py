"""
Control Modules
===============

Autopilot mode handling for the virtual boat.

Components:
    - PilotMode: Upstream pilot mode enumeration
    - AutopilotCommand: Normalized command published on the bus
    - map_autopilot: Mode/target to command mapping
"""

from .autopilot_mode import (
    PilotMode,
    AutopilotCommand,
    map_autopilot,
    accepts_waypoint,
    WAYPOINT_MODE_THRESHOLD,
)

__all__ = [
    'PilotMode',
    'AutopilotCommand',
    'map_autopilot',
    'accepts_waypoint',
    'WAYPOINT_MODE_THRESHOLD',
]
