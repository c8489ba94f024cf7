"""
Shared test fixtures for bridge unit tests.
"""

import time
import pytest
from unittest.mock import Mock

from src.bridge.state import OwnBoatFix
from src.control.autopilot_mode import PilotMode
from src.navigation.units import deg_to_rad, knots_to_mps
from src.signalk.sink import CallbackSink
from src.vlm.client import VLMClient, VLMConfig


class FakeClock:
    """Manually advanced clock for deterministic timing."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_boat_record():
    """Raw boatinfo.php record, boat in ortho mode."""
    return {
        "IDU": "4242",
        "IDB": "Virtual Pogo",
        "RAC": "20240915",
        "LAT": 47123,
        "LON": -3456,
        "BSP": 8.5,
        "HDG": 270.0,
        "TWD": 320.0,
        "TWA": 50.0,
        "TWS": 15.0,
        "LOC": 123.4,
        "PIM": 3,
        "PIP": "46.5,-4.25@-1",
    }


@pytest.fixture
def sample_ranking():
    """Raw ranking.php record keyed by boat id."""
    return {
        "success": True,
        "ranking": {
            "101": {"idusers": "101", "rank": 1, "boatname": "Alpha",
                    "country": "FR", "latitude": 46.9, "longitude": -3.9, "loch": 140.0},
            "4242": {"idusers": "4242", "rank": 2, "boatname": "Virtual Pogo",
                     "country": "CH", "latitude": 47.123, "longitude": -3.456, "loch": 123.4},
            "202": {"idusers": "202", "rank": 3, "boatname": "Bravo",
                    "country": "GB", "latitude": 47.2, "longitude": -3.3, "loch": 110.5},
        },
    }


@pytest.fixture
def sample_fix():
    """Own boat fix in heading mode."""
    return OwnBoatFix(
        timestamp=time.time(),
        latitude=47.0,
        longitude=-3.0,
        speed_over_ground=knots_to_mps(6.0),
        course_over_ground=deg_to_rad(90.0),
        true_wind_speed=knots_to_mps(12.0),
        true_wind_direction=deg_to_rad(45.0),
        true_wind_angle=deg_to_rad(-45.0),
        trip_log=1000.0,
        pilot_mode=PilotMode.HEADING,
        pilot_target=deg_to_rad(95.0),
        boat_name="Virtual Pogo",
        boat_id="4242",
        race_id="20240915",
    )


def _make_response(body=None, error=None):
    """Mock requests.Response returning a JSON body."""
    response = Mock()
    response.json.return_value = body
    if error is not None:
        response.raise_for_status.side_effect = error
    return response


@pytest.fixture
def make_response():
    """Factory for mock HTTP responses."""
    return _make_response


@pytest.fixture
def mock_session():
    """Mock requests.Session; set session.request.return_value per test."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def vlm_config():
    return VLMConfig(login="skipper", password="secret", boat_id="4242")


@pytest.fixture
def vlm_client(vlm_config, mock_session):
    return VLMClient(vlm_config, session=mock_session)


@pytest.fixture
def sink():
    return CallbackSink()
