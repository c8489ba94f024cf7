#!/usr/bin/env python3
"""
Bridge Status Server
====================

Flask server that exposes the bridge state and accepts waypoint changes:
- GET  /api/status    bridge and task statistics
- GET  /api/own       latest derived own boat values
- GET  /api/fleet     tracked competitors
- POST /api/waypoint  waypoint change notification {latitude, longitude, source}

Usage:
    python vis/status/server.py --config bridge.json --port 8080
"""

import argparse
import logging
import math
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from src.bridge.engine import own_boat_values
from src.main import VLMBridge, BridgeConfig, load_config
from src.navigation.units import rad_to_deg, mps_to_knots

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Global bridge instance
bridge: Optional[VLMBridge] = None


def init_bridge(instance: Optional[VLMBridge]):
    """Attach the bridge served by the API."""
    global bridge
    bridge = instance


def _no_bridge():
    return jsonify({"connected": False, "error": "Bridge not initialized"}), 503


# =============================================================================
# API routes
# =============================================================================

@app.route('/api/status')
def status():
    """Bridge and task statistics."""
    if bridge is None:
        return _no_bridge()
    return jsonify({"connected": True, **bridge.status})


@app.route('/api/own')
def own_boat():
    """Latest derived own boat values, as published on the bus."""
    if bridge is None:
        return _no_bridge()

    fix = bridge.engine.state.own_fix
    if fix is None:
        return jsonify({"connected": True, "fix": None})

    values = own_boat_values(fix, bridge.engine.estimator, time.time())
    return jsonify({
        "connected": True,
        "fix_age_s": round(time.time() - fix.timestamp, 1),
        "boat_name": fix.boat_name,
        "pilot_mode": fix.pilot_mode.name if fix.pilot_mode is not None else None,
        "values": {path: value for path, value in values},
    })


@app.route('/api/fleet')
def fleet():
    """Tracked competitors, speeds in knots and courses in degrees."""
    if bridge is None:
        return _no_bridge()

    vessels = []
    for track in bridge.engine.state.fleet.values():
        vessels.append({
            "id": track.id,
            "mmsi": track.mmsi,
            "name": track.name,
            "flag": track.flag,
            "latitude": round(track.latitude, 5),
            "longitude": round(track.longitude, 5),
            "sog_kn": round(mps_to_knots(track.derived_speed), 2),
            "cog_deg": round(rad_to_deg(track.derived_course), 1),
            "last_seen_at": track.last_seen_at,
        })
    return jsonify({"connected": True, "count": len(vessels), "vessels": vessels})


@app.route('/api/waypoint', methods=['POST'])
def waypoint():
    """Waypoint change notification from a bus client."""
    if bridge is None:
        return _no_bridge()

    data = request.get_json(silent=True) or {}
    try:
        latitude = float(data["latitude"])
        longitude = float(data["longitude"])
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "latitude and longitude are required"}), 400

    if not (math.isfinite(latitude) and math.isfinite(longitude)) \
            or abs(latitude) > 90 or abs(longitude) > 180:
        return jsonify({"error": "position out of range"}), 400

    queued = bridge.engine.on_waypoint_notification(latitude, longitude, data.get("source"))
    pending = bridge.engine.pending_waypoint
    return jsonify({
        "queued": queued,
        "pending": {"latitude": pending.latitude, "longitude": pending.longitude}
        if pending else None,
    })


def serve_in_background(instance: VLMBridge, host: str = "0.0.0.0", port: int = 8080):
    """Serve the API from a daemon thread next to the bridge loop."""
    init_bridge(instance)
    thread = threading.Thread(
        target=app.run,
        kwargs={"host": host, "port": port, "threaded": True, "use_reloader": False},
        name="status-server",
        daemon=True,
    )
    thread.start()
    logger.info(f"Status server on http://{host}:{port}")
    return thread


def main():
    parser = argparse.ArgumentParser(description="VLM bridge with status server")
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=8080, help="Port to listen on")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = load_config(args.config) if args.config else BridgeConfig()
    instance = VLMBridge(config)
    if not instance.start():
        logger.error("Failed to start VLM bridge")
        sys.exit(1)

    serve_in_background(instance, host=args.host, port=args.port)
    try:
        instance.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        instance.stop()


if __name__ == "__main__":
    main()
