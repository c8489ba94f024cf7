"""Competitor tracking from race rankings."""

from .tracker import FleetKinematicsTracker, synthetic_mmsi, MMSI_BASE

__all__ = ['FleetKinematicsTracker', 'synthetic_mmsi', 'MMSI_BASE']
