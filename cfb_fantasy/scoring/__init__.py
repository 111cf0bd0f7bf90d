"""Scoring & standings engine.

Turns final games into league standings in six stages:
bracket week mapping, school weekly points, league event bonuses, roster
ownership, team weekly points and standings totals. ScoringPipeline runs them
in order; each stage can also be used on its own.
"""

from .bracket import BRACKET_FORMATS, BracketFormat, BracketWeekMapper, get_bracket_format
from .event_bonuses import BracketState, LeagueEventBonusResolver
from .exceptions import (
    DataIntegrityError,
    IntegrityIssue,
    NotFoundError,
    ScoringError,
    TransientWriteError,
    UnknownBracketFormatError,
)
from .ownership import RosterOwnershipTracker
from .persistence import UnitWriter
from .pipeline import RunMode, RunRequest, ScoringPipeline
from .rules import SchoolPointsBreakdown, score_school_game
from .school_points import SchoolWeeklyPointsCalculator
from .standings import StandingRow, StandingsTotalizer
from .summary import RunSummary, StageResult
from .team_points import FantasyTeamPointsAggregator
from .validation import check_game, check_season_games

__all__ = [
    "BRACKET_FORMATS",
    "BracketFormat",
    "BracketState",
    "BracketWeekMapper",
    "DataIntegrityError",
    "FantasyTeamPointsAggregator",
    "IntegrityIssue",
    "LeagueEventBonusResolver",
    "NotFoundError",
    "RosterOwnershipTracker",
    "RunMode",
    "RunRequest",
    "RunSummary",
    "SchoolPointsBreakdown",
    "SchoolWeeklyPointsCalculator",
    "ScoringError",
    "ScoringPipeline",
    "StageResult",
    "StandingRow",
    "StandingsTotalizer",
    "TransientWriteError",
    "UnitWriter",
    "UnknownBracketFormatError",
    "check_game",
    "check_season_games",
    "get_bracket_format",
    "score_school_game",
]
