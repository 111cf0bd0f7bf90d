"""College football fantasy scoring & standings engine."""

__version__ = "0.1.0"
