"""CLI interface for the college football fantasy scoring engine."""

from .scoring import app as main

__all__ = ["main"]
