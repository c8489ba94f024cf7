"""
Publishing Sinks
================

Destinations for the deltas produced by the engine.

A sink may also deliver inbound waypoint change notifications back to
the bridge through a registered handler.
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

import paho.mqtt.client as mqtt

from .delta import Delta, SELF_CONTEXT

logger = logging.getLogger(__name__)

# handler(latitude, longitude, source)
WaypointHandler = Callable[[float, float, Optional[str]], None]


class DeltaSink(ABC):
    """Base class for delta consumers."""

    def __init__(self):
        self._waypoint_handler: Optional[WaypointHandler] = None

    def start(self) -> bool:
        return True

    def stop(self):
        pass

    @abstractmethod
    def publish(self, delta: Delta):
        """Publish one delta."""

    def set_waypoint_handler(self, handler: WaypointHandler):
        """Register the receiver of inbound waypoint notifications."""
        self._waypoint_handler = handler

    def deliver_waypoint(self, latitude: float, longitude: float,
                         source: Optional[str] = None):
        """Forward a waypoint notification to the registered handler."""
        if self._waypoint_handler is None:
            logger.debug("Waypoint notification without handler, dropped")
            return
        self._waypoint_handler(latitude, longitude, source)


class CallbackSink(DeltaSink):
    """
    In-process sink.

    Keeps the deltas it receives and optionally forwards each one to a
    callback, for embedding the bridge in a host process.
    """

    def __init__(self, callback: Optional[Callable[[Delta], None]] = None,
                 max_history: int = 1000):
        super().__init__()
        self._callback = callback
        self._max_history = max_history
        self._lock = threading.Lock()
        self.deltas: List[Delta] = []

    def publish(self, delta: Delta):
        with self._lock:
            self.deltas.append(delta)
            if len(self.deltas) > self._max_history:
                del self.deltas[:-self._max_history]
        if self._callback:
            try:
                self._callback(delta)
            except Exception as e:
                logger.warning(f"Delta callback error: {e}")

    @property
    def last(self) -> Optional[Delta]:
        with self._lock:
            return self.deltas[-1] if self.deltas else None

    def clear(self):
        with self._lock:
            self.deltas.clear()


@dataclass
class MqttSinkConfig:
    """Configuration for the MQTT sink."""
    host: str = "127.0.0.1"
    port: int = 1883
    topic_prefix: str = "signalk"
    qos: int = 0
    retain: bool = False
    keepalive: int = 20


class MqttSink(DeltaSink):
    """
    Publishes deltas to an MQTT broker, one message per value.

    Topic: ``<prefix>/<context>/<path with '.' replaced by '/'>``,
    payload: ``{"value": ..., "$source": ..., "timestamp": ...}``.
    Waypoint notifications are read from the ``nextPoint/position``
    topics of the own vessel.
    """

    def __init__(self, config: Optional[MqttSinkConfig] = None,
                 client: Optional[mqtt.Client] = None):
        super().__init__()
        self.config = config or MqttSinkConfig()
        self._client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message
        self._published = 0

    @property
    def waypoint_topic(self) -> str:
        # Matches courseGreatCircle and courseRhumbline
        return self.topic_for(SELF_CONTEXT, "navigation") + "/+/nextPoint/position"

    def topic_for(self, context: str, path: str) -> str:
        topic = f"{self.config.topic_prefix}/{context}"
        if path:
            topic += "/" + path.replace(".", "/")
        return topic

    def start(self) -> bool:
        try:
            self._client.enable_logger(logger)
            self._client.reconnect_delay_set(min_delay=1, max_delay=30)
            self._client.connect(self.config.host, self.config.port,
                                 keepalive=self.config.keepalive)
        except Exception as e:
            logger.error(f"MQTT connect failed: {e}")
            return False
        self._client.loop_start()
        logger.info(f"MQTT sink connected to {self.config.host}:{self.config.port}")
        return True

    def stop(self):
        self._client.loop_stop()
        self._client.disconnect()
        logger.info("MQTT sink stopped")

    def publish(self, delta: Delta):
        update = delta.to_dict()["updates"][0]
        for path, value in delta.values:
            payload = json.dumps({
                "value": value,
                "$source": delta.source,
                "timestamp": update["timestamp"],
            })
            self._client.publish(self.topic_for(delta.context, path), payload,
                                 qos=self.config.qos, retain=self.config.retain)
            self._published += 1

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        client.subscribe(self.waypoint_topic, qos=self.config.qos)
        logger.debug(f"Subscribed to {self.waypoint_topic}")

    def _on_message(self, client, userdata, msg):
        try:
            payload = json.loads(msg.payload)
            position = payload["value"]
            latitude = float(position["latitude"])
            longitude = float(position["longitude"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed waypoint message on {msg.topic}: {e}")
            return
        self.deliver_waypoint(latitude, longitude, payload.get("$source"))

    @property
    def stats(self) -> dict:
        return {"published": self._published}
