"""Cached road-distance calculation for the freight brokerage back office."""

__version__ = "0.1.0"
