"""
Pydantic schemas for API request/response models.

Response schemas expose the scoring engine's read models (school weekly
points, league event bonuses, team weekly points, standings). The one
request schema describes a scoring run.

Key Pydantic Concepts:
- from_attributes: Allows creation from SQLAlchemy ORM objects
- Field(): Validation constraints shown in the OpenAPI docs
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from ..scoring.pipeline import RunMode

# ========== READ MODELS ==========


class StandingResponse(BaseModel):
    """One line of a league table."""

    model_config = ConfigDict(from_attributes=True)  # Built from StandingRow dataclasses

    rank: int  # Tied teams share a rank
    team_id: int
    team_name: str
    total_points: float
    high_points_winnings: float
    weeks_scored: int  # Weeks with a stored FantasyTeamWeeklyPoints row


class TeamWeekResponse(BaseModel):
    """A fantasy team's points for one week."""

    model_config = ConfigDict(from_attributes=True)

    fantasy_team_id: int
    week_number: int
    points: float
    is_high_points_winner: bool
    high_points_amount: float


class SchoolWeekResponse(BaseModel):
    """League-agnostic points one school earned in one week."""

    model_config = ConfigDict(from_attributes=True)

    week_number: int
    game_id: int | None = None
    base_points: float
    conference_bonus: float
    over_50_bonus: float
    shutout_bonus: float
    ranked_25_bonus: float
    ranked_10_bonus: float
    total_points: float


class EventBonusResponse(BaseModel):
    """A league-specific special-event bonus."""

    model_config = ConfigDict(from_attributes=True)

    week_number: int
    bonus_type: str
    points: float
    game_id: int | None = None


class SchoolPointsResponse(BaseModel):
    """Every week of one school's season, plus league bonuses when a league is given."""

    school_id: int
    school_name: str
    season_year: int
    weeks: list[SchoolWeekResponse]
    bonuses: list[EventBonusResponse] = []
    total_points: float  # Weekly points plus any listed bonuses


# ========== SCORING RUNS ==========


class CalculateRequest(BaseModel):
    """Request body for POST /api/points/calculate."""

    mode: RunMode = Field(default=RunMode.WEEK, description="week, season or league")
    year: int = Field(default_factory=lambda: date.today().year, description="Season year")
    week: int | None = Field(default=None, ge=0, description="Week (week and league modes)")
    start_week: int | None = Field(default=None, ge=0, description="First week (season mode)")
    end_week: int | None = Field(default=None, ge=0, description="Last week (season mode)")
    league_id: int | None = Field(default=None, description="League id (league mode)")
    remap_bracket: bool = Field(default=False, description="Remap playoff weeks before scoring")
    bracket_format: str | None = Field(default=None, description="Switch the season's format (with remap)")


class CalculateResponse(BaseModel):
    """What a scoring run did."""

    success: bool
    mode: str
    year: int
    weeks: list[int]
    league_ids: list[int]
    rows_written: int
    rows_deleted: int
    skipped: int
    stages: dict[str, dict[str, int]]
    failures: list[str]
    issues: list[str]
