"""
Tests for the bridge status server.
"""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from vis.status import server
from src.main import VLMBridge, BridgeConfig
from src.vlm.client import VLMConfig


@pytest.fixture
def bridge(sample_boat_record, sample_ranking, sink):
    client = Mock()
    client.fetch_boat_info.return_value = sample_boat_record
    client.fetch_ranking.return_value = sample_ranking
    client.set_target.return_value = True
    client.stats = {"request_count": 0, "error_count": 0}
    config = BridgeConfig(vlm=VLMConfig(login="a", password="b", boat_id="4242"),
                          set_waypoint=True)
    return VLMBridge(config, sink=sink, client=client)


@pytest.fixture
def http(bridge):
    server.init_bridge(bridge)
    server.app.config["TESTING"] = True
    yield server.app.test_client()
    server.init_bridge(None)


class TestWithoutBridge:

    def test_unavailable(self):
        server.init_bridge(None)
        response = server.app.test_client().get('/api/status')
        assert response.status_code == 503
        assert response.get_json()["connected"] is False


class TestStatus:

    def test_status(self, http):
        data = http.get('/api/status').get_json()
        assert data["connected"] is True
        assert data["running"] is False
        assert data["engine"]["has_fix"] is False


class TestOwnBoat:

    def test_no_fix(self, http):
        assert http.get('/api/own').get_json()["fix"] is None

    def test_values(self, http, bridge):
        bridge.engine.ingest_own_boat()

        data = http.get('/api/own').get_json()

        assert data["boat_name"] == "Virtual Pogo"
        assert data["pilot_mode"] == "TRACK"
        assert data["values"]["steering.autopilot.state"] == "track"
        assert "navigation.position" in data["values"]


class TestFleet:

    def test_fleet(self, http, bridge):
        bridge.engine.ingest_own_boat()
        bridge.engine.ingest_fleet()

        data = http.get('/api/fleet').get_json()

        assert data["count"] == 2
        names = {v["name"] for v in data["vessels"]}
        assert names == {"Alpha", "Bravo"}
        assert all(0.0 <= v["cog_deg"] < 360.0 for v in data["vessels"])


class TestWaypoint:

    def test_queues_waypoint(self, http, bridge):
        response = http.post('/api/waypoint', json={"latitude": 46.1, "longitude": -4.2,
                                                    "source": "plotter"})
        data = response.get_json()

        assert response.status_code == 200
        assert data["queued"] is True
        assert data["pending"] == {"latitude": "46.1000000", "longitude": "-4.2000000"}

    def test_echo_not_queued(self, http, bridge):
        response = http.post('/api/waypoint', json={
            "latitude": 46.1, "longitude": -4.2, "source": bridge.config.source_id})
        assert response.get_json()["queued"] is False

    @pytest.mark.parametrize("body", [
        {},
        {"latitude": 46.1},
        {"latitude": "north", "longitude": 1.0},
        {"latitude": 91.0, "longitude": 0.0},
        {"latitude": 0.0, "longitude": 181.0},
    ])
    def test_invalid(self, http, body):
        assert http.post('/api/waypoint', json=body).status_code == 400
