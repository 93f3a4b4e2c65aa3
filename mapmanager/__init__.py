"""Map and waypoint management service."""

__version__ = "0.1.0"
