"""Derivation engine, state model and scheduler."""
