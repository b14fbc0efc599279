"""Bike Train live ride tracking service."""

__version__ = "2.1.0"
