"""
Telemetry State
===============

Records shared between the ingest and publish tasks.

EngineState is immutable: ingest tasks build a new one and the engine
swaps the reference, so a publish task never sees a half-written snapshot.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Optional, Tuple, Mapping, Dict

from ..control.autopilot_mode import PilotMode


@dataclass(frozen=True)
class OwnBoatFix:
    """
    Last polled ground truth for the own boat.

    All angles in radians, speeds in m/s, distances in meters.
    """
    timestamp: float                  # Epoch seconds of the fetch
    latitude: float                   # Decimal degrees
    longitude: float                  # Decimal degrees
    speed_over_ground: float = 0.0
    course_over_ground: float = 0.0   # True
    true_wind_speed: float = 0.0
    true_wind_direction: float = 0.0
    true_wind_angle: float = 0.0      # (-pi, pi], +ve starboard
    trip_log: float = 0.0
    pilot_mode: Optional[PilotMode] = PilotMode.NONE   # None = unknown code
    pilot_target: Optional[float] = None
    waypoint: Optional[Tuple[float, float]] = None     # (lat, lon) degrees

    # Identity carried from the same record
    boat_name: str = ""
    boat_id: str = ""
    race_id: str = ""


@dataclass(frozen=True)
class VesselTrack:
    """Kinematic track of one competing boat."""
    id: str                           # Stable key from the ranking feed
    mmsi: str                         # Synthetic AIS-like identity
    name: str
    flag: str
    latitude: float
    longitude: float
    derived_course: float             # Radians true, [0, 2*pi)
    derived_speed: float              # m/s
    trip_log: float                   # Meters
    last_seen_at: float               # Epoch seconds


def _freeze(tracks: Mapping[str, VesselTrack]) -> Mapping[str, VesselTrack]:
    return MappingProxyType(dict(tracks))


@dataclass(frozen=True)
class EngineState:
    """Own fix plus fleet table, replaced wholesale on every ingest."""
    own_fix: Optional[OwnBoatFix] = None
    fleet: Mapping[str, VesselTrack] = field(default_factory=lambda: _freeze({}))

    def with_own_fix(self, fix: OwnBoatFix) -> 'EngineState':
        return replace(self, own_fix=fix)

    def with_fleet(self, tracks: Dict[str, VesselTrack]) -> 'EngineState':
        return replace(self, fleet=_freeze(tracks))

    def with_waypoint(self, latitude: float, longitude: float) -> 'EngineState':
        """Record a waypoint accepted by the remote service."""
        if self.own_fix is None:
            return self
        return replace(self, own_fix=replace(self.own_fix, waypoint=(latitude, longitude)))
