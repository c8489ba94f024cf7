"""
Main Bridge Application
=======================

Main entry point that wires the VLM client, the telemetry engine, the
publishing sink and the scheduler together.
"""

import json
import signal
import sys
import argparse
import logging
from dataclasses import dataclass, field, fields
from typing import Optional
from pathlib import Path

# Local imports
from .vlm.client import VLMClient, VLMConfig
from .signalk.sink import DeltaSink, CallbackSink, MqttSink, MqttSinkConfig
from .bridge.engine import TelemetryEngine, DEFAULT_SOURCE_ID
from .bridge.scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class BridgeConfig:
    """Main bridge configuration."""
    vlm: VLMConfig = field(default_factory=VLMConfig)

    # Task periods (seconds). Keep ingest slow to spare the VLM servers.
    ingest_interval_s: float = 300.0
    publish_interval_s: float = 1.0
    fleet_ingest_interval_s: float = 300.0
    fleet_publish_interval_s: float = 15.0

    # Features
    fleet: bool = True             # Track and publish competitors
    set_waypoint: bool = False     # Forward bus waypoints to VLM (experimental)

    # Publishing
    source_id: str = DEFAULT_SOURCE_ID
    mqtt: Optional[MqttSinkConfig] = None   # None: in-process sink only

    @classmethod
    def from_dict(cls, data: dict) -> 'BridgeConfig':
        """Create from dictionary (unknown keys are ignored)."""
        def pick(dc, values):
            names = {f.name for f in fields(dc)}
            return {k: v for k, v in values.items() if k in names}

        top = pick(cls, data)
        top.pop("vlm", None)
        top.pop("mqtt", None)

        config = cls(vlm=VLMConfig(**pick(VLMConfig, data.get("vlm", {}))), **top)
        if data.get("mqtt") is not None:
            config.mqtt = MqttSinkConfig(**pick(MqttSinkConfig, data["mqtt"]))
        if config.vlm.boat_id != "":
            config.vlm.boat_id = str(config.vlm.boat_id)
        return config


def load_config(path: str) -> BridgeConfig:
    """Load a JSON configuration file."""
    with open(path) as f:
        data = json.load(f)
    return BridgeConfig.from_dict(data)


class VLMBridge:
    """
    Main bridge controller.

    Coordinates:
    - Own boat ingest and publish
    - Fleet ingest and publish
    - Waypoint forwarding from the bus to VLM
    """

    def __init__(self, config: Optional[BridgeConfig] = None,
                 sink: Optional[DeltaSink] = None,
                 client: Optional[VLMClient] = None):
        self.config = config or BridgeConfig()

        if sink is None:
            sink = MqttSink(self.config.mqtt) if self.config.mqtt else CallbackSink()
        self.sink = sink
        self.client = client or VLMClient(self.config.vlm)
        self.engine = TelemetryEngine(self.client, self.sink, source_id=self.config.source_id)
        self.scheduler = Scheduler()

        self._running = False

    def start(self) -> bool:
        """Validate configuration, connect the sink and register tasks."""
        if not self.config.vlm.is_complete:
            logger.error("Login, password and boat id are required")
            return False

        logger.info("Starting VLM bridge...")
        if not self.sink.start():
            logger.error("Sink failed to start")
            return False

        cfg = self.config
        self.scheduler.add("ingest", self.engine.ingest_own_boat,
                           interval_s=cfg.ingest_interval_s, blocking=True)
        self.scheduler.add("publish", self.engine.publish_own_boat,
                           interval_s=cfg.publish_interval_s)

        if cfg.fleet:
            self.scheduler.add("fleet_ingest", self.engine.ingest_fleet,
                               interval_s=cfg.fleet_ingest_interval_s, blocking=True)
            self.scheduler.add("fleet_publish", self.engine.publish_fleet,
                               interval_s=cfg.fleet_publish_interval_s)

        if cfg.set_waypoint:
            self.scheduler.add("set_waypoint", self.engine.set_waypoint, blocking=True)
            self.engine.add_waypoint_callback(lambda: self.scheduler.trigger("set_waypoint"))
            self.sink.set_waypoint_handler(self.engine.on_waypoint_notification)
            logger.info("Waypoint forwarding to VLM enabled")

        self._running = True
        logger.info("VLM bridge started")
        return True

    def run(self):
        """Run the scheduler until stopped."""
        self.scheduler.run()

    def stop(self):
        """Stop the scheduler and the sink."""
        logger.info("Stopping VLM bridge...")
        self.scheduler.stop()
        if self._running:
            self.sink.stop()
        self._running = False
        logger.info("VLM bridge stopped")

    @property
    def status(self) -> dict:
        """Get current bridge status."""
        return {
            "running": self._running,
            "engine": self.engine.stats,
            "tasks": self.scheduler.stats,
        }


def build_config(args: argparse.Namespace) -> BridgeConfig:
    """Build configuration from an optional file and CLI overrides."""
    config = load_config(args.config) if args.config else BridgeConfig()

    if args.login:
        config.vlm.login = args.login
    if args.password:
        config.vlm.password = args.password
    if args.boat_id:
        config.vlm.boat_id = str(args.boat_id)
    if args.set_waypoint:
        config.set_waypoint = True
    if args.no_fleet:
        config.fleet = False
    if args.mqtt_host:
        config.mqtt = config.mqtt or MqttSinkConfig()
        config.mqtt.host = args.mqtt_host
        config.mqtt.port = args.mqtt_port
    return config


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="VLM virtual boat to Signal K bridge")
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--login", help="VLM login")
    parser.add_argument("--password", help="VLM password")
    parser.add_argument("--boat-id", "-b", help="VLM boat id (IDU)")
    parser.add_argument("--set-waypoint", action="store_true",
                        help="Forward bus waypoints to VLM (experimental)")
    parser.add_argument("--no-fleet", action="store_true",
                        help="Do not track competitors")
    parser.add_argument("--mqtt-host", help="Publish to this MQTT broker")
    parser.add_argument("--mqtt-port", type=int, default=1883,
                        help="MQTT broker port (default: 1883)")
    parser.add_argument("--status-port", type=int, default=0,
                        help="Serve the status API on this port (0 = disabled)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.config and not Path(args.config).exists():
        logger.error(f"Config file not found: {args.config}")
        sys.exit(1)

    bridge = VLMBridge(build_config(args))

    # Signal handler for graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        bridge.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not bridge.start():
        logger.error("Failed to start VLM bridge")
        sys.exit(1)

    if args.status_port:
        from vis.status.server import serve_in_background
        serve_in_background(bridge, port=args.status_port)

    logger.info("VLM bridge running. Press Ctrl+C to stop.")
    bridge.run()


if __name__ == "__main__":
    main()
