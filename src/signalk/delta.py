"""
Signal K Deltas
===============

Path/value updates as exchanged on a Signal K bus.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

SELF_CONTEXT = "vessels.self"


def vessel_context(mmsi: str) -> str:
    """Context of another vessel identified by its MMSI."""
    return f"vessels.urn:mrn:imo:mmsi:{mmsi}"


@dataclass
class Delta:
    """One update: a list of (path, value) pairs for a single context."""
    values: List[Tuple[str, Any]]
    context: str = SELF_CONTEXT
    source: str = "vlm-signalk-bridge"
    timestamp: float = field(default_factory=time.time)

    def get(self, path: str) -> Optional[Any]:
        """Value of the first entry for a path, None if absent."""
        for p, value in self.values:
            if p == path:
                return value
        return None

    @property
    def paths(self) -> List[str]:
        return [p for p, _ in self.values]

    def to_dict(self) -> dict:
        """Convert to the Signal K delta JSON structure."""
        stamp = datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        return {
            "context": self.context,
            "updates": [{
                "$source": self.source,
                "timestamp": stamp.isoformat().replace("+00:00", "Z"),
                "values": [{"path": p, "value": v} for p, v in self.values],
            }],
        }
