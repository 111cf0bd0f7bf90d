"""Configuration package."""

from .scoring import ScoringRules
from .settings import Settings, settings

__all__ = ["ScoringRules", "Settings", "settings"]
