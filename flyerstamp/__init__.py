"""Flyer template placeholder compositing engine."""

__version__ = "0.1.0"
