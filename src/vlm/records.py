"""
VLM Record Decoding
===================

Decodes the JSON records of the Virtual Loup-de-Mer web services into
engine types. Field names follow the upstream feed.

Malformed records surface as KeyError / TypeError / ValueError /
AttributeError; callers treat those like a transport failure.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, List, Dict, Any
import logging

from ..bridge.state import OwnBoatFix
from ..control.autopilot_mode import PilotMode
from ..navigation.units import deg_to_rad, knots_to_mps, nm_to_meters
from ..navigation.wind import normalize_true_wind_angle

logger = logging.getLogger(__name__)

# LAT/LON are transmitted as thousandths of a degree
COORDINATE_SCALE = 1000.0


def parse_waypoint(pip) -> Optional[Tuple[float, float]]:
    """
    Parse a waypoint-mode PIP value.

    Format is ``"lat,lon@heading"``; only the part before '@' is used.

    Returns:
        (lat, lon) in degrees, or None if the value is not a waypoint
    """
    if not isinstance(pip, str):
        return None
    position = pip.split("@")[0].split(",")
    if len(position) < 2:
        return None
    try:
        return float(position[0]), float(position[1])
    except ValueError:
        return None


def decode_boat_info(raw: Dict[str, Any], timestamp: float) -> OwnBoatFix:
    """
    Decode a ``boatinfo.php`` record.

    Args:
        raw: Decoded JSON body
        timestamp: Fetch time (epoch seconds)

    Returns:
        OwnBoatFix with SI units
    """
    heading = float(raw["HDG"])
    twd = float(raw["TWD"])

    mode = PilotMode.from_code(raw.get("PIM"))
    pilot_target = None
    waypoint = None
    if mode in (PilotMode.HEADING, PilotMode.WIND):
        pilot_target = deg_to_rad(float(raw["PIP"]))
    else:
        waypoint = parse_waypoint(raw.get("PIP"))
        if mode is not None and mode.follows_waypoint and waypoint is None:
            logger.warning(f"Unparseable waypoint in PIP: {raw.get('PIP')!r}")
    if mode is None:
        logger.warning(f"Unknown pilot mode: {raw.get('PIM')!r}")

    return OwnBoatFix(
        timestamp=timestamp,
        latitude=float(raw["LAT"]) / COORDINATE_SCALE,
        longitude=float(raw["LON"]) / COORDINATE_SCALE,
        speed_over_ground=knots_to_mps(float(raw["BSP"])),
        course_over_ground=deg_to_rad(heading),
        true_wind_speed=knots_to_mps(float(raw["TWS"])),
        true_wind_direction=deg_to_rad(twd),
        true_wind_angle=normalize_true_wind_angle(twd, heading),
        trip_log=nm_to_meters(float(raw["LOC"])),
        pilot_mode=mode,
        pilot_target=pilot_target,
        waypoint=waypoint,
        boat_name=str(raw.get("IDB", "")),
        boat_id=str(raw.get("IDU", "")),
        race_id=str(raw.get("RAC", "")),
    )


@dataclass(frozen=True)
class RankingEntry:
    """One competitor in a race ranking."""
    rank: int
    boat_name: str
    flag: str
    latitude: float       # Decimal degrees
    longitude: float      # Decimal degrees
    trip_log: float       # Meters
    boat_id: Optional[str] = None   # Upstream per-boat id (idusers), if any

    @property
    def key(self) -> str:
        """Stable identity: the boat id when the feed carries one, else the rank."""
        if self.boat_id:
            return self.boat_id
        return f"rank-{self.rank}"


def _ranking_items(raw) -> List[Tuple[int, Optional[str], Dict[str, Any]]]:
    """Normalize the ranking container into (rank, boat id, entry) triples."""
    if isinstance(raw, dict) and "ranking" in raw:
        raw = raw["ranking"]

    if isinstance(raw, dict):
        # Keyed by boat id; feed order is rank order
        pairs = [(str(key), entry) for key, entry in raw.items()]
    else:
        pairs = [(None, entry) for entry in raw]
    return [(int(entry.get("rank", position)), key, entry)
            for position, (key, entry) in enumerate(pairs, start=1)]


def decode_ranking(raw) -> List[RankingEntry]:
    """
    Decode a ``ranking.php`` record.

    Accepts either a mapping or a list of entries, optionally wrapped in a
    ``ranking`` field.
    """
    entries = []
    for rank, key, entry in _ranking_items(raw):
        boat_id = entry.get("idusers")
        if boat_id in (None, ""):
            boat_id = key
        entries.append(RankingEntry(
            rank=rank,
            boat_name=str(entry["boatname"]),
            flag=str(entry.get("country", "")),
            latitude=float(entry["latitude"]),
            longitude=float(entry["longitude"]),
            trip_log=nm_to_meters(float(entry["loch"])),
            boat_id=str(boat_id) if boat_id not in (None, "") else None,
        ))
    entries.sort(key=lambda e: e.rank)
    return entries
