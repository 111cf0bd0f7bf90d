"""Database package initialization."""

from .connection import build_engine, build_session_factory, session_scope
from .models import (
    Base,
    BonusType,
    FantasyTeam,
    FantasyTeamWeeklyPoints,
    Game,
    GameStatus,
    HeismanWinner,
    League,
    LeagueEventBonus,
    LeagueSettings,
    PlayoffRound,
    RankingSnapshot,
    RosterPeriod,
    School,
    SchoolWeeklyPoints,
    Season,
)

__all__ = [
    "Base",
    "BonusType",
    "FantasyTeam",
    "FantasyTeamWeeklyPoints",
    "Game",
    "GameStatus",
    "HeismanWinner",
    "League",
    "LeagueEventBonus",
    "LeagueSettings",
    "PlayoffRound",
    "RankingSnapshot",
    "RosterPeriod",
    "School",
    "SchoolWeeklyPoints",
    "Season",
    "build_engine",
    "build_session_factory",
    "session_scope",
]
