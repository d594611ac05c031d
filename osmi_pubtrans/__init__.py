"""Validation of public transport routes and railway infrastructure in OpenStreetMap data."""

__version__ = "0.1.0"