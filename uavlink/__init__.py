"""Telemetry and image link over TCP between a simulated UAV and a ground station."""

__version__ = "0.1.0"
__all__ = ["client", "gcs", "protocol", "server", "simulator"]