"""Appointment availability and slot-reservation engine."""

__version__ = "0.1.0"
