"""
Telemetry Engine
================

Turns sparse VLM samples into a continuous Signal K stream.

Tasks:
- ingest_own_boat: fetch the boat record, commit a new OwnBoatFix
- publish_own_boat: dead-reckoned position/log, wind triangle, autopilot
- ingest_fleet: fetch the race ranking, derive competitor kinematics
- publish_fleet: one delta per competitor
- set_waypoint: push a pending waypoint change to VLM

Ingest tasks build a new EngineState from the committed one and swap it
in a single step; publish tasks only read the committed state.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Any
import logging

from .state import EngineState, OwnBoatFix
from ..control.autopilot_mode import map_autopilot, accepts_waypoint
from ..fleet.tracker import FleetKinematicsTracker
from ..navigation.dead_reckoning import DeadReckoningEstimator
from ..navigation.wind import apparent_wind
from ..signalk.delta import Delta, vessel_context
from ..signalk.sink import DeltaSink
from ..vlm.client import VLMClient
from ..vlm.records import decode_boat_info, decode_ranking

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_ID = "vlm-signalk-bridge"

# Errors raised by the decoders on an unexpected response shape
DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


@dataclass(frozen=True)
class WaypointRequest:
    """Waypoint requested from the bus, formatted with 7 decimals."""
    latitude: str
    longitude: str

    @classmethod
    def from_position(cls, latitude: float, longitude: float) -> 'WaypointRequest':
        return cls(latitude=f"{latitude:.7f}", longitude=f"{longitude:.7f}")

    def matches(self, waypoint: Optional[Tuple[float, float]]) -> bool:
        """True if the waypoint is already the requested one."""
        if waypoint is None:
            return False
        return self == WaypointRequest.from_position(*waypoint)


def own_boat_values(fix: OwnBoatFix, estimator: DeadReckoningEstimator,
                    now: float) -> List[Tuple[str, Any]]:
    """
    Derive the own boat values at a given time.

    Args:
        fix: Last committed fix
        estimator: Dead reckoning estimator
        now: Publication time (epoch seconds)

    Returns:
        (path, value) pairs
    """
    position = estimator.extrapolate(
        fix.latitude, fix.longitude,
        fix.speed_over_ground, fix.course_over_ground,
        fix.trip_log, fix.timestamp, now=now
    )
    wind = apparent_wind(fix.true_wind_speed, fix.true_wind_angle, fix.speed_over_ground)

    values = [
        ('navigation.position', {
            'longitude': position.longitude,
            'latitude': position.latitude,
        }),
        ('navigation.speedOverGround', fix.speed_over_ground),
        ('navigation.courseOverGroundTrue', fix.course_over_ground),
        ('environment.wind.speedTrue', fix.true_wind_speed),
        ('environment.wind.directionTrue', fix.true_wind_direction),
        ('environment.wind.angleTrueGround', fix.true_wind_angle),
        ('navigation.trip.log', position.trip_log),
        ('environment.wind.angleApparent', wind.angle),
        ('environment.wind.speedApparent', wind.speed),
    ]

    command = map_autopilot(fix.pilot_mode, fix.pilot_target, fix.waypoint)
    if command is not None:
        values.extend(command.to_values())
    return values


def fleet_deltas(state: EngineState, estimator: DeadReckoningEstimator,
                 now: float, source: str = DEFAULT_SOURCE_ID) -> List[Delta]:
    """Build one delta per tracked competitor, positions dead-reckoned to now."""
    deltas = []
    for track in state.fleet.values():
        position = estimator.extrapolate(
            track.latitude, track.longitude,
            track.derived_speed, track.derived_course,
            track.trip_log, track.last_seen_at, now=now
        )
        deltas.append(Delta(
            context=vessel_context(track.mmsi),
            source=source,
            timestamp=now,
            values=[
                ('', {'name': track.name}),
                ('', {'mmsi': track.mmsi}),
                ('flag', track.flag),
                ('navigation.position', {
                    'longitude': position.longitude,
                    'latitude': position.latitude,
                }),
                ('navigation.speedOverGround', track.derived_speed),
                ('navigation.courseOverGroundTrue', track.derived_course),
                ('navigation.trip.log', position.trip_log),
            ],
        ))
    return deltas


class TelemetryEngine:
    """
    Owns the EngineState for the lifetime of a polling session.

    Ingest tasks are the only writers. Each kind of task is expected to run
    one invocation at a time (see Scheduler).
    """

    def __init__(self, client: VLMClient, sink: DeltaSink,
                 source_id: str = DEFAULT_SOURCE_ID,
                 tracker: Optional[FleetKinematicsTracker] = None,
                 estimator: Optional[DeadReckoningEstimator] = None,
                 clock: Callable[[], float] = time.time):
        self.client = client
        self.sink = sink
        self.source_id = source_id
        self.tracker = tracker or FleetKinematicsTracker()
        self.estimator = estimator or DeadReckoningEstimator(clock=clock)
        self._clock = clock

        self._state = EngineState()
        self._lock = threading.Lock()

        # Waypoint requested from the bus, not yet sent
        self._pending_waypoint: Optional[WaypointRequest] = None
        self._waypoint_callbacks: List[Callable[[], None]] = []

        # Statistics
        self._ingest_count = 0
        self._ingest_failures = 0
        self._fleet_ingest_count = 0
        self._fleet_ingest_failures = 0
        self._publish_count = 0
        self._waypoints_set = 0
        self._last_ingest_time = 0.0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        """Most recently committed state."""
        with self._lock:
            return self._state

    # ------------------------------------------------------------------
    # Own boat
    # ------------------------------------------------------------------

    def ingest_own_boat(self) -> bool:
        """
        Fetch and commit a new own boat fix.

        Returns:
            True if a new fix was committed. On failure the previous fix
            is kept and published as is.
        """
        logger.debug("Fetching own boat record")
        raw = self.client.fetch_boat_info()
        if raw is None:
            self._ingest_failures += 1
            return False

        now = self._clock()
        try:
            fix = decode_boat_info(raw, now)
        except DECODE_ERRORS as e:
            self._ingest_failures += 1
            logger.error(f"Unexpected boat record from VLM: {e!r}")
            return False

        with self._lock:
            self._state = self._state.with_own_fix(fix)
        self._ingest_count += 1
        self._last_ingest_time = now
        logger.info(
            f"Fix {fix.boat_name}: {fix.latitude:.4f},{fix.longitude:.4f} "
            f"pilot={fix.pilot_mode.name if fix.pilot_mode is not None else 'UNKNOWN'}"
        )

        if fix.boat_name:
            self.sink.publish(Delta(values=[('name', fix.boat_name)],
                                    source=self.source_id, timestamp=now))
        return True

    def publish_own_boat(self) -> Optional[Delta]:
        """Publish the derived own boat state, None before the first fix."""
        fix = self.state.own_fix
        if fix is None:
            logger.debug("No fix yet, nothing to publish")
            return None

        now = self._clock()
        delta = Delta(values=own_boat_values(fix, self.estimator, now),
                      source=self.source_id, timestamp=now)
        self.sink.publish(delta)
        self._publish_count += 1
        return delta

    # ------------------------------------------------------------------
    # Fleet
    # ------------------------------------------------------------------

    def ingest_fleet(self) -> bool:
        """
        Fetch the ranking of the current race and update the fleet table.

        Requires an own boat fix for the race id and the seed SOG/COG.
        """
        state = self.state
        fix = state.own_fix
        if fix is None or not fix.race_id:
            logger.debug("No race known yet, fleet ingest skipped")
            return False

        raw = self.client.fetch_ranking(fix.race_id)
        if raw is None:
            self._fleet_ingest_failures += 1
            return False

        now = self._clock()
        try:
            entries = decode_ranking(raw)
        except DECODE_ERRORS as e:
            self._fleet_ingest_failures += 1
            logger.error(f"Unexpected ranking from VLM: {e!r}")
            return False

        tracks = self.tracker.update(
            state.fleet, entries,
            own_sog=fix.speed_over_ground, own_cog=fix.course_over_ground,
            now=now, own_boat_id=fix.boat_id
        )
        # Re-read: an own boat ingest may have committed meanwhile
        with self._lock:
            self._state = self._state.with_fleet(tracks)
        self._fleet_ingest_count += 1
        logger.info(f"Fleet updated: {len(entries)} ranked, {len(tracks)} tracked")
        return True

    def publish_fleet(self) -> List[Delta]:
        deltas = fleet_deltas(self.state, self.estimator, self._clock(), self.source_id)
        for delta in deltas:
            self.sink.publish(delta)
        return deltas

    # ------------------------------------------------------------------
    # Waypoint
    # ------------------------------------------------------------------

    def add_waypoint_callback(self, callback: Callable[[], None]):
        """Register a callback run when a waypoint request is queued."""
        self._waypoint_callbacks.append(callback)

    def on_waypoint_notification(self, latitude: float, longitude: float,
                                 source: Optional[str] = None) -> bool:
        """
        Handle a waypoint change seen on the bus.

        Echoes of our own publications are ignored.

        Returns:
            True if the waypoint was queued
        """
        if source == self.source_id:
            return False

        request = WaypointRequest.from_position(latitude, longitude)
        with self._lock:
            self._pending_waypoint = request
        logger.debug(f"New waypoint target received: {request.latitude},{request.longitude}")

        for callback in self._waypoint_callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Waypoint callback error: {e}")
        return True

    @property
    def pending_waypoint(self) -> Optional[WaypointRequest]:
        with self._lock:
            return self._pending_waypoint

    def set_waypoint(self) -> bool:
        """
        Send the pending waypoint to VLM.

        Skipped without error when nothing is pending, when the waypoint is
        already set, or when the pilot is not in a waypoint mode. A rejected
        request is dropped, not retried.

        Returns:
            True if VLM accepted a new waypoint
        """
        with self._lock:
            request = self._pending_waypoint
            fix = self._state.own_fix

        if request is None:
            logger.debug("No new waypoint to set")
            return False
        if fix is not None and request.matches(fix.waypoint):
            logger.debug("Same waypoint already set")
            self._clear_pending(request)
            return False
        if fix is None or not accepts_waypoint(fix.pilot_mode):
            logger.debug("Pilot mode should be ortho, VMG or VBVMG to set waypoint")
            self._clear_pending(request)
            return False

        accepted = self.client.set_target(request.latitude, request.longitude)
        self._clear_pending(request)
        if not accepted:
            return False

        with self._lock:
            self._state = self._state.with_waypoint(
                float(request.latitude), float(request.longitude)
            )
        self._waypoints_set += 1
        logger.info(f"Waypoint set to {request.latitude},{request.longitude}")
        return True

    def _clear_pending(self, request: WaypointRequest):
        # Keep a newer request that arrived during the round trip
        with self._lock:
            if self._pending_waypoint == request:
                self._pending_waypoint = None

    @property
    def stats(self) -> dict:
        """Get engine statistics."""
        state = self.state
        return {
            "ingest_count": self._ingest_count,
            "ingest_failures": self._ingest_failures,
            "fleet_ingest_count": self._fleet_ingest_count,
            "fleet_ingest_failures": self._fleet_ingest_failures,
            "publish_count": self._publish_count,
            "waypoints_set": self._waypoints_set,
            "last_ingest_time": self._last_ingest_time,
            "has_fix": state.own_fix is not None,
            "fleet_size": len(state.fleet),
            "client": self.client.stats,
            "tracker": self.tracker.stats,
        }
