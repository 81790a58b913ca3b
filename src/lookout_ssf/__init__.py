"""Lookout to Shared Signals Framework risk relay."""

__version__ = "0.3.0"
