"""
VLM Web Service Client
======================

HTTP client for the Virtual Loup-de-Mer web services.

Fetches the own boat record and the race ranking, and sets the pilot
waypoint. Transport failures are logged and reported as None / False;
the caller keeps its previous snapshot and retries on the next tick.
"""

import json
from dataclasses import dataclass
from typing import Optional, Dict, Any
import logging

import requests

logger = logging.getLogger(__name__)

VERSION = "0.6.0"


@dataclass
class VLMConfig:
    """Configuration for the VLM web service connection."""
    base_url: str = "https://www.v-l-m.org"
    login: str = ""
    password: str = ""
    boat_id: str = ""
    timeout: float = 30.0       # Seconds per request
    user_agent: str = f"vlm-signalk-bridge/{VERSION}"

    @property
    def is_complete(self) -> bool:
        return bool(self.login and self.password and self.boat_id)


class VLMClient:
    """
    Blocking client for the VLM ``ws`` endpoints.

    All endpoints are form-encoded POST/GET requests with HTTP Basic
    authentication and ``forcefmt=json``.
    """

    BOAT_INFO_PATH = "/ws/boatinfo.php"
    RANKING_PATH = "/ws/raceinfo/ranking.php"
    TARGET_SET_PATH = "/ws/boatsetup/target_set.php"

    def __init__(self, config: Optional[VLMConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or VLMConfig()
        self.session = session or requests.Session()
        self.session.auth = (self.config.login, self.config.password)
        self.session.headers.update({"User-Agent": self.config.user_agent})

        # Statistics
        self._request_count = 0
        self._error_count = 0

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + path

    def _request(self, method: str, path: str, **kwargs) -> Optional[Any]:
        """Send a request and decode the JSON body, None on failure."""
        self._request_count += 1
        try:
            response = self.session.request(
                method, self._url(path), timeout=self.config.timeout, **kwargs
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            self._error_count += 1
            logger.error(f"VLM request {path} failed: {e}")
            return None
        except ValueError as e:
            # Body is not JSON
            self._error_count += 1
            logger.error(f"VLM request {path} returned invalid JSON: {e}")
            return None

        logger.debug(f"Received from {path}: {json.dumps(body)}")
        return body

    def fetch_boat_info(self) -> Optional[Dict[str, Any]]:
        """Fetch the raw own boat record."""
        return self._request("POST", self.BOAT_INFO_PATH, data={
            "forcefmt": "json",
            "select_idu": self.config.boat_id,
        })

    def fetch_ranking(self, race_id: str) -> Optional[Any]:
        """Fetch the raw ranking of a race."""
        return self._request("GET", self.RANKING_PATH, params={
            "forcefmt": "json",
            "idr": race_id,
        })

    def set_target(self, latitude: str, longitude: str) -> bool:
        """
        Set the pilot waypoint.

        Args:
            latitude: Waypoint latitude, already formatted (7 decimals)
            longitude: Waypoint longitude, already formatted (7 decimals)

        Returns:
            True if the service accepted the waypoint
        """
        parms = (
            '{"pip":{"targetlat":' + latitude +
            ',"targetlong":' + longitude +
            ',"targetandhdg":-1},"idu":"' + str(self.config.boat_id) + '"}'
        )
        logger.debug(f"New waypoint to VLM: {parms}")

        body = self._request("POST", self.TARGET_SET_PATH, data={
            "forcefmt": "json",
            "select_idu": self.config.boat_id,
            "parms": parms,
        })
        if body is None:
            return False
        if not isinstance(body, dict) or body.get("success") is not True:
            logger.error(f"Error setting waypoint: {json.dumps(body)}")
            return False
        return True

    @property
    def stats(self) -> dict:
        """Get request statistics."""
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
        }
