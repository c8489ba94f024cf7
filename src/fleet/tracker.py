"""
Fleet Kinematics Tracker
========================

Builds an AIS-like picture of competing boats from race rankings.

The ranking feed carries positions only, so course and speed are derived
from the great-circle displacement between two successive sightings of
the same boat. A first sighting has no history and borrows the own
boat's SOG/COG.
"""

from typing import Optional, Dict, Mapping, Sequence, List
import logging

import numpy as np

from ..bridge.state import VesselTrack
from ..navigation.geodesy import haversine_distance, initial_bearing
from ..vlm.records import RankingEntry

logger = logging.getLogger(__name__)

# Synthetic MMSI = MMSI_BASE - boat id (or rank when the feed has no id)
MMSI_BASE = 999999999


def synthetic_mmsi(entry: RankingEntry) -> str:
    """Derive a 9-digit AIS-like identity for a ranking entry."""
    if entry.boat_id is not None and entry.boat_id.isdigit():
        number = int(entry.boat_id)
    else:
        number = entry.rank
    return str(MMSI_BASE - number)


class FleetKinematicsTracker:
    """
    Maintains derived course/speed for every boat of a ranking.

    Tracks are keyed by the stable per-boat id of the feed; rank is only
    used when the feed has no id. Tracks are never pruned: a boat missing
    from a ranking keeps its last track.
    """

    def __init__(self):
        # Statistics
        self._update_count = 0
        self._new_vessels = 0

    def update(self, tracks: Mapping[str, VesselTrack],
               entries: Sequence[RankingEntry],
               own_sog: float, own_cog: float, now: float,
               own_boat_id: Optional[str] = None) -> Dict[str, VesselTrack]:
        """
        Apply a ranking to the fleet table.

        Args:
            tracks: Current fleet table (not modified)
            entries: Decoded ranking entries
            own_sog: Own boat speed over ground (m/s), seeds new tracks
            own_cog: Own boat course over ground (radians), seeds new tracks
            now: Time of the ranking fetch (epoch seconds)
            own_boat_id: Own boat id, excluded from the fleet

        Returns:
            New fleet table
        """
        result = dict(tracks)
        known: List[RankingEntry] = []
        seen = set()

        for entry in entries:
            key = entry.key
            if own_boat_id and entry.boat_id == own_boat_id:
                continue
            if key in seen:
                logger.warning(f"Duplicate ranking entry for {key}, ignored")
                continue
            seen.add(key)

            if key in tracks:
                known.append(entry)
            else:
                result[key] = self._first_sighting(entry, own_sog, own_cog, now)
                self._new_vessels += 1
                logger.debug(f"New vessel {entry.boat_name} ({key})")

        if known:
            self._update_known(result, tracks, known, now)

        self._update_count += 1
        return result

    def _first_sighting(self, entry: RankingEntry, own_sog: float,
                        own_cog: float, now: float) -> VesselTrack:
        return VesselTrack(
            id=entry.key,
            mmsi=synthetic_mmsi(entry),
            name=entry.boat_name,
            flag=entry.flag,
            latitude=entry.latitude,
            longitude=entry.longitude,
            derived_course=own_cog,
            derived_speed=own_sog,
            trip_log=entry.trip_log,
            last_seen_at=now,
        )

    def _update_known(self, result: Dict[str, VesselTrack],
                      tracks: Mapping[str, VesselTrack],
                      entries: List[RankingEntry], now: float):
        """Derive course/speed for every re-sighted boat in one batch."""
        previous = [tracks[entry.key] for entry in entries]

        prev_lat = np.array([t.latitude for t in previous])
        prev_lon = np.array([t.longitude for t in previous])
        prev_time = np.array([t.last_seen_at for t in previous])
        lat = np.array([e.latitude for e in entries])
        lon = np.array([e.longitude for e in entries])

        distances = haversine_distance(prev_lat, prev_lon, lat, lon)
        bearings = initial_bearing(prev_lat, prev_lon, lat, lon)
        elapsed = now - prev_time

        for i, entry in enumerate(entries):
            track = previous[i]
            if elapsed[i] > 0:
                speed = float(distances[i] / elapsed[i])
                course = float(bearings[i])
            else:
                # Same ranking seen twice, nothing to derive
                speed = track.derived_speed
                course = track.derived_course

            result[entry.key] = VesselTrack(
                id=track.id,
                mmsi=track.mmsi,
                name=entry.boat_name,
                flag=entry.flag,
                latitude=entry.latitude,
                longitude=entry.longitude,
                derived_course=course,
                derived_speed=speed,
                trip_log=entry.trip_log,
                last_seen_at=now,
            )

    @property
    def stats(self) -> dict:
        return {
            "update_count": self._update_count,
            "new_vessels": self._new_vessels,
        }
