"""Syndic dashboard authentication and authorization core."""

__version__ = "0.1.0"
