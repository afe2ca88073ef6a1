"""Uptime monitor: scheduled URL probes, incident tracking and bounded history."""

__version__ = "1.2.0"
