"""VLM web service client and record decoding."""

from .client import VLMClient, VLMConfig
from .records import (
    RankingEntry,
    decode_boat_info,
    decode_ranking,
    parse_waypoint,
)

__all__ = [
    'VLMClient', 'VLMConfig',
    'RankingEntry', 'decode_boat_info', 'decode_ranking', 'parse_waypoint',
]
