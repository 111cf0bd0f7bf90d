"""League-agnostic point values for weekly school scoring.

These values drive the School Weekly Points Calculator. They are configuration,
not code: the defaults below match the house rules, and any of them can be
overridden through the environment using the nested delimiter, e.g.

    SCORING__POINTS_WIN=2
    SCORING__POINTS_RANKED_10=3

Special-event values (bowl appearance, playoff rounds, Heisman, ...) are NOT
here - those are configured per league in the ``league_settings`` table.
"""

from pydantic import BaseModel, Field


class ScoringRules(BaseModel):
    """Point values and thresholds for one school's result in one game."""

    # Win scoring
    points_win: float = 1  # Base points for winning
    points_conference_game: float = 1  # Beat a same-conference opponent
    points_over_50: float = 1  # Won by at least over_50_margin
    points_shutout: float = 1  # Held the opponent to zero
    points_ranked_25: float = 1  # Beat an opponent ranked 11-25
    points_ranked_10: float = 2  # Beat an opponent ranked 1-10

    # Loss scoring (usually 0)
    points_loss: float = 0
    points_conference_game_loss: float = 0
    points_over_50_loss: float = 0  # Scored over_50_loss_score or more and still lost
    points_shutout_loss: float = 0  # Got shut out
    points_ranked_25_loss: float = 0
    points_ranked_10_loss: float = 0

    # Thresholds
    over_50_margin: int = Field(50, ge=1)  # Winning margin
    over_50_loss_score: int = Field(50, ge=1)  # Points scored by the losing side
    ranked_10_cutoff: int = Field(10, ge=1)
    ranked_25_cutoff: int = Field(25, ge=1)
    playoff_ranked_cutoff: int = Field(12, ge=1)  # Playoff games only use the top tier
    unranked_sentinel: int = 99  # Feed ranks at or above this mean "unranked"
