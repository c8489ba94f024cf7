"""
Autopilot Mode Mapper
=====================

Maps the upstream numeric pilot mode / pilot target pair onto a
normalized autopilot command (state, target, waypoint).
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, List
import logging

logger = logging.getLogger(__name__)

# Modes above this threshold follow a waypoint
WAYPOINT_MODE_THRESHOLD = 2


class PilotMode(IntEnum):
    """Upstream pilot modes (PIM)."""
    NONE = 0        # No autopilot active
    HEADING = 1     # Hold a true heading
    WIND = 2        # Hold a true wind angle
    TRACK = 3       # Great circle to waypoint (ortho)
    VMG = 4         # Best VMG towards waypoint
    VBVMG = 5       # Best VMG with tacks/gybes towards waypoint

    @property
    def follows_waypoint(self) -> bool:
        return self > WAYPOINT_MODE_THRESHOLD

    @classmethod
    def from_code(cls, code) -> Optional['PilotMode']:
        """
        Decode a raw PIM value.

        Missing values map to NONE; codes outside the enum return None so
        an unknown mode stays distinguishable from no mode.
        """
        if code is None:
            return cls.NONE
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return None


STATE_NAMES = {
    PilotMode.NONE: "none",
    PilotMode.HEADING: "auto",
    PilotMode.WIND: "wind",
    PilotMode.TRACK: "track",
    PilotMode.VMG: "vmg",
    PilotMode.VBVMG: "vbvmg",
}


@dataclass(frozen=True)
class AutopilotCommand:
    """Normalized autopilot command derived from the pilot mode."""
    state: str
    heading_target: Optional[float] = None      # Radians true
    wind_angle_target: Optional[float] = None   # Radians, +ve starboard
    waypoint: Optional[Tuple[float, float]] = None  # (lat, lon) degrees

    def to_values(self) -> List[Tuple[str, object]]:
        """Convert to (path, value) pairs for publishing."""
        values = [('steering.autopilot.state', self.state)]
        if self.heading_target is not None:
            values.append(('steering.autopilot.target.headingTrue', self.heading_target))
        if self.wind_angle_target is not None:
            values.append(('steering.autopilot.target.windAngleTrueGround',
                           self.wind_angle_target))
        if self.waypoint is not None:
            values.append(('navigation.courseGreatCircle.nextPoint.position', {
                'latitude': self.waypoint[0],
                'longitude': self.waypoint[1],
            }))
        return values


def map_autopilot(mode: Optional[PilotMode], target: Optional[float],
                  waypoint: Optional[Tuple[float, float]] = None) -> Optional[AutopilotCommand]:
    """
    Build the autopilot command for a pilot mode.

    Args:
        mode: Decoded pilot mode, None for an unknown code
        target: Pilot target (radians), used by HEADING and WIND
        waypoint: Current waypoint (lat, lon), used by waypoint modes

    Returns:
        AutopilotCommand, or None for an unknown mode
    """
    if mode is None:
        return None

    state = STATE_NAMES[mode]

    if mode == PilotMode.HEADING:
        return AutopilotCommand(state=state, heading_target=target)
    elif mode == PilotMode.WIND:
        # Upstream sign convention is opposite to the bus
        wind_angle = -target if target is not None else None
        return AutopilotCommand(state=state, wind_angle_target=wind_angle)
    elif mode.follows_waypoint:
        return AutopilotCommand(state=state, waypoint=waypoint)
    return AutopilotCommand(state=state)


def accepts_waypoint(mode: Optional[PilotMode]) -> bool:
    """Waypoint changes are only meaningful in waypoint-following modes."""
    return mode is not None and mode.follows_waypoint
