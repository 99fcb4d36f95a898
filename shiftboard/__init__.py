"""Shift roster, shift-exchange and recurring task service."""

__version__ = "1.0.0"
