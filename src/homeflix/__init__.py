"""Homeflix: media ingestion and delivery core."""

__version__ = "0.3.0"
