"""SQLAlchemy database models for the college football fantasy scoring engine.

This file defines the schema the scoring engine reads from and writes to.

Model Categories:
1. Reference data (written by the ingestion collaborators, read-only here):
   Season, School, RankingSnapshot, HeismanWinner, Game
2. League data (written by league/draft/transaction flows, read-only here):
   League, LeagueSettings, FantasyTeam, RosterPeriod
3. Scoring ledger (written only by the engine):
   SchoolWeeklyPoints, LeagueEventBonus, FantasyTeamWeeklyPoints,
   plus the denormalized FantasyTeam.total_points / high_points_winnings

For beginners:

Natural keys: every ledger table has a UniqueConstraint on the composite key
the engine upserts by - (school, season, week), (league, school, season,
week, bonus_type) and (team, week). The database itself then refuses a
duplicate row, so "at most one row per key" is not just a convention.

Nullable vs Non-nullable: scores are nullable because a scheduled game has no
score yet. RosterPeriod.end_week is nullable because an open period runs
through the end of the season.
"""

from enum import Enum

from sqlalchemy import Boolean  # True/False values (is_playoff_game, ...)
from sqlalchemy import CheckConstraint  # Closed enumerations enforced in the database
from sqlalchemy import Column  # Defines table columns with types and constraints
from sqlalchemy import DateTime  # Audit timestamps
from sqlalchemy import Float  # Point values (leagues may use fractional points)
from sqlalchemy import ForeignKey  # References to other tables' primary keys
from sqlalchemy import Index  # Database indexes for query performance
from sqlalchemy import Integer  # Whole numbers (id, week_number, scores)
from sqlalchemy import String  # Text fields with length limits
from sqlalchemy import UniqueConstraint  # Ensures no duplicate combinations exist
from sqlalchemy.orm import declarative_base  # Base class for all models
from sqlalchemy.orm import relationship  # Defines how tables are related
from sqlalchemy.sql import func  # SQL functions like now()

Base = declarative_base()


class GameStatus(str, Enum):
    """Lifecycle status of a game as reported by the results feed."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"
    POSTPONED = "postponed"
    CANCELED = "canceled"


class PlayoffRound(str, Enum):
    """College Football Playoff rounds, in bracket order."""

    FIRST_ROUND = "first_round"
    QUARTERFINAL = "quarterfinal"
    SEMIFINAL = "semifinal"
    CHAMPIONSHIP = "championship"


class BonusType(str, Enum):
    """Closed set of league-configurable special-event bonuses."""

    BOWL_APPEARANCE = "bowl_appearance"
    CFP_FIRST_ROUND = "cfp_first_round"
    CFP_QUARTERFINAL = "cfp_quarterfinal"
    CFP_SEMIFINAL = "cfp_semifinal"
    CHAMPIONSHIP_WIN = "championship_win"
    CHAMPIONSHIP_LOSS = "championship_loss"
    CONF_CHAMPIONSHIP_WIN = "conf_championship_win"
    CONF_CHAMPIONSHIP_LOSS = "conf_championship_loss"
    HEISMAN = "heisman"


def _in_clause(column: str, enum_cls: type[Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class Season(Base):
    """One competition year.

    bracket_format names the versioned round->week mapping used for this
    season's postseason (see cfb_fantasy.scoring.bracket). Changing it and
    re-running the engine is how a schedule correction is applied.
    """

    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, unique=True, nullable=False, index=True)  # 2025
    bracket_format = Column(String(40), nullable=False, default="cfp12_spread")

    games = relationship("Game", back_populates="season")
    leagues = relationship("League", back_populates="season")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class School(Base):
    """A real college football program that fantasy teams draft."""

    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)  # "Indiana"
    conference = Column(String(50), nullable=True, index=True)  # None for independents

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class RankingSnapshot(Base):
    """A school's poll rank as of a given week (absent row = unranked)."""

    __tablename__ = "ranking_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    week_number = Column(Integer, nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    rank = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("season_id", "week_number", "school_id", name="uq_ranking_season_week_school"),
        Index("idx_ranking_season_week", "season_id", "week_number"),
    )


class HeismanWinner(Base):
    """The season's Heisman Trophy winner, credited to the player's school."""

    __tablename__ = "heisman_winners"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    player_name = Column(String(100), nullable=False)

    created_at = Column(DateTime, default=func.now())


class Game(Base):
    """A single college football game.

    Design Features:
    - home/away school references are nullable: opponents outside the tracked
      set of schools (e.g. FCS programs) have no School row
    - home_rank/away_rank are the ranks the feed reported at kickoff; they are
      only a fallback when no ranking snapshot exists for the week
    - week_number of a playoff game is owned by the Bracket Week Mapper once
      playoff_round is known
    """

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    external_game_id = Column(String(40), unique=True, nullable=True)  # Feed identifier

    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False, index=True)

    home_school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    away_school_id = Column(Integer, ForeignKey("schools.id"), nullable=True)
    home_score = Column(Integer)  # None until the game has a score
    away_score = Column(Integer)
    home_rank = Column(Integer)
    away_rank = Column(Integer)

    status = Column(String(20), nullable=False, default=GameStatus.SCHEDULED.value)

    # Postseason classification
    is_bowl_game = Column(Boolean, nullable=False, default=False)
    is_playoff_game = Column(Boolean, nullable=False, default=False)
    playoff_round = Column(String(20), nullable=True)  # PlayoffRound value or None
    bowl_name = Column(String(100), nullable=True)  # "Rose Bowl", "CFP Quarterfinal - Rose Bowl"

    season = relationship("Season", back_populates="games")
    home_school = relationship("School", foreign_keys=[home_school_id])
    away_school = relationship("School", foreign_keys=[away_school_id])

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("status", GameStatus), name="ck_game_status"),
        CheckConstraint(
            "playoff_round IS NULL OR " + _in_clause("playoff_round", PlayoffRound),
            name="ck_game_playoff_round",
        ),
        Index("idx_game_season_week", "season_id", "week_number"),
    )

    @property
    def is_final(self) -> bool:
        """True when the game is final and both scores are present."""
        return (
            self.status == GameStatus.FINAL.value
            and self.home_score is not None
            and self.away_score is not None
        )

    def school_ids(self) -> list[int]:
        """Tracked schools that played in this game."""
        return [sid for sid in (self.home_school_id, self.away_school_id) if sid is not None]


class League(Base):
    """A fantasy league; owns its special-event point values."""

    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False, index=True)

    season = relationship("Season", back_populates="leagues")
    settings = relationship("LeagueSettings", back_populates="league", uselist=False)
    teams = relationship("FantasyTeam", back_populates="league", order_by="FantasyTeam.id")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class LeagueSettings(Base):
    """Per-league point values for special events and the weekly high-points prize."""

    __tablename__ = "league_settings"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), unique=True, nullable=False)

    # Special events - 0 means "not awarded in this league"
    points_conference_championship_win = Column(Float, nullable=False, default=0)
    points_conference_championship_loss = Column(Float, nullable=False, default=0)
    points_bowl_appearance = Column(Float, nullable=False, default=0)
    points_playoff_first_round = Column(Float, nullable=False, default=0)
    points_playoff_quarterfinal = Column(Float, nullable=False, default=0)
    points_playoff_semifinal = Column(Float, nullable=False, default=0)
    points_championship_win = Column(Float, nullable=False, default=0)
    points_championship_loss = Column(Float, nullable=False, default=0)
    points_heisman_winner = Column(Float, nullable=False, default=0)

    # Weekly high-points prize
    high_points_enabled = Column(Boolean, nullable=False, default=False)
    high_points_weekly_amount = Column(Float, nullable=False, default=0)
    high_points_allow_ties = Column(Boolean, nullable=False, default=False)

    league = relationship("League", back_populates="settings")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class FantasyTeam(Base):
    """A fantasy team. total_points is a denormalized, fully recomputed total."""

    __tablename__ = "fantasy_teams"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    total_points = Column(Float, nullable=False, default=0)
    high_points_winnings = Column(Float, nullable=False, default=0)

    league = relationship("League", back_populates="teams")
    roster_periods = relationship("RosterPeriod", back_populates="fantasy_team")
    weekly_points = relationship(
        "FantasyTeamWeeklyPoints", back_populates="fantasy_team", order_by="FantasyTeamWeeklyPoints.week_number"
    )

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class RosterPeriod(Base):
    """An ownership interval: team owns school from start_week to end_week (inclusive).

    end_week = None means owned through the end of the season.
    """

    __tablename__ = "roster_periods"

    id = Column(Integer, primary_key=True, index=True)
    fantasy_team_id = Column(Integer, ForeignKey("fantasy_teams.id"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)
    start_week = Column(Integer, nullable=False)
    end_week = Column(Integer, nullable=True)

    fantasy_team = relationship("FantasyTeam", back_populates="roster_periods")

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint("end_week IS NULL OR end_week >= start_week", name="ck_roster_period_range"),
    )


class SchoolWeeklyPoints(Base):
    """League-agnostic points one school earned in one week.

    Never partially updated: every recompute replaces all component columns.
    """

    __tablename__ = "school_weekly_points"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    week_number = Column(Integer, nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=True)  # Source game

    base_points = Column(Float, nullable=False, default=0)
    conference_bonus = Column(Float, nullable=False, default=0)
    over_50_bonus = Column(Float, nullable=False, default=0)
    shutout_bonus = Column(Float, nullable=False, default=0)
    ranked_25_bonus = Column(Float, nullable=False, default=0)
    ranked_10_bonus = Column(Float, nullable=False, default=0)
    total_points = Column(Float, nullable=False, default=0)

    school = relationship("School")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("school_id", "season_id", "week_number", name="uq_school_weekly_points"),
        Index("idx_school_points_season_week", "season_id", "week_number"),
    )


class LeagueEventBonus(Base):
    """A league-specific special-event bonus credited to a school in a week."""

    __tablename__ = "league_event_bonuses"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    week_number = Column(Integer, nullable=False)
    bonus_type = Column(String(30), nullable=False)
    points = Column(Float, nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=True)  # None for byes and Heisman

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "league_id", "school_id", "season_id", "week_number", "bonus_type",
            name="uq_league_event_bonus",
        ),
        CheckConstraint(_in_clause("bonus_type", BonusType), name="ck_event_bonus_type"),
        Index("idx_event_bonus_league_week", "league_id", "season_id", "week_number"),
    )


class FantasyTeamWeeklyPoints(Base):
    """Points a fantasy team earned in one week, plus the high-points prize flags."""

    __tablename__ = "fantasy_team_weekly_points"

    id = Column(Integer, primary_key=True, index=True)
    fantasy_team_id = Column(Integer, ForeignKey("fantasy_teams.id"), nullable=False)
    week_number = Column(Integer, nullable=False)
    points = Column(Float, nullable=False, default=0)
    is_high_points_winner = Column(Boolean, nullable=False, default=False)
    high_points_amount = Column(Float, nullable=False, default=0)

    fantasy_team = relationship("FantasyTeam", back_populates="weekly_points")

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("fantasy_team_id", "week_number", name="uq_team_weekly_points"),
    )
