"""Wellness API: request security for the wellness center backend."""

__version__ = "2.0.0"
