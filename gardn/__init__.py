"""Authoritative simulation and WebSocket server for a flower-and-petal arena game."""

__version__ = "0.1.0"