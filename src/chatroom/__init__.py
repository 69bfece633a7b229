"""Presence-tracked chat room backend."""

__version__ = "0.1.0"
