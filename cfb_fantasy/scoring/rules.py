"""Fantasy point calculations for a single school in a single game.

Pure functions with no database access. Scoring rules by game type:

- Regular season: win/loss + conference + 50-point margin + shutout + ranked
  opponent bonus (1-10 -> ranked_10 tier, 11-25 -> ranked_25 tier)
- Bowl games: win/loss + 50-point margin + shutout; no conference bonus and
  no ranked bonus
- Playoff games (first round through semifinal): as bowls, plus the
  ranked_10 tier for an opponent ranked within the playoff cutoff (12)
- National championship: no weekly points at all; its outcome is scored by
  the league's championship_win / championship_loss event bonuses

Ranked tiers are exclusive: beating a top-10 opponent earns the ranked_10
tier only, never ranked_25 as well.
"""

from dataclasses import dataclass

from ..config.scoring import ScoringRules
from ..database.models import Game, PlayoffRound


@dataclass
class SchoolPointsBreakdown:
    """Component points for one school in one game (or summed over a week)."""

    school_id: int
    game_id: int | None
    is_win: bool = False
    base_points: float = 0
    conference_bonus: float = 0
    over_50_bonus: float = 0
    shutout_bonus: float = 0
    ranked_25_bonus: float = 0
    ranked_10_bonus: float = 0

    @property
    def total_points(self) -> float:
        return (
            self.base_points
            + self.conference_bonus
            + self.over_50_bonus
            + self.shutout_bonus
            + self.ranked_25_bonus
            + self.ranked_10_bonus
        )

    def add(self, other: "SchoolPointsBreakdown") -> "SchoolPointsBreakdown":
        """Component-wise sum, keeping the later game's reference."""
        return SchoolPointsBreakdown(
            school_id=self.school_id,
            game_id=other.game_id,
            is_win=self.is_win or other.is_win,
            base_points=self.base_points + other.base_points,
            conference_bonus=self.conference_bonus + other.conference_bonus,
            over_50_bonus=self.over_50_bonus + other.over_50_bonus,
            shutout_bonus=self.shutout_bonus + other.shutout_bonus,
            ranked_25_bonus=self.ranked_25_bonus + other.ranked_25_bonus,
            ranked_10_bonus=self.ranked_10_bonus + other.ranked_10_bonus,
        )


def ranked_bonus(
    opponent_rank: int | None,
    rules: ScoringRules,
    is_win: bool,
    is_bowl_game: bool,
    is_playoff_game: bool,
) -> tuple[float, float]:
    """Return (ranked_25_bonus, ranked_10_bonus) for a result against a ranked opponent."""
    if not opponent_rank or (is_bowl_game and not is_playoff_game):
        return 0, 0

    tier_10 = rules.points_ranked_10 if is_win else rules.points_ranked_10_loss
    tier_25 = rules.points_ranked_25 if is_win else rules.points_ranked_25_loss

    if is_playoff_game:
        return (0, tier_10) if opponent_rank <= rules.playoff_ranked_cutoff else (0, 0)
    if opponent_rank <= rules.ranked_10_cutoff:
        return 0, tier_10
    if opponent_rank <= rules.ranked_25_cutoff:
        return tier_25, 0
    return 0, 0


def score_school_game(
    game: Game,
    school_id: int,
    opponent_rank: int | None,
    is_conference_game: bool,
    rules: ScoringRules,
) -> SchoolPointsBreakdown:
    """Calculate points for one school in one final game.

    Args:
        game: A final game with both scores present
        school_id: The school being scored (home or away side)
        opponent_rank: The OPPONENT's rank as of the game's week, or None
        is_conference_game: Both schools share a conference
        rules: League-agnostic point values

    Returns:
        SchoolPointsBreakdown with every component filled in
    """
    is_home = game.home_school_id == school_id
    team_score = game.home_score if is_home else game.away_score
    opponent_score = game.away_score if is_home else game.home_score
    is_win = team_score > opponent_score

    breakdown = SchoolPointsBreakdown(school_id=school_id, game_id=game.id, is_win=is_win)

    if game.playoff_round == PlayoffRound.CHAMPIONSHIP.value:
        return breakdown

    is_postseason = bool(game.is_bowl_game or game.is_playoff_game)

    if is_win:
        breakdown.base_points = rules.points_win
        if is_conference_game and not is_postseason:
            breakdown.conference_bonus = rules.points_conference_game
        if team_score - opponent_score >= rules.over_50_margin:
            breakdown.over_50_bonus = rules.points_over_50
        if opponent_score == 0:
            breakdown.shutout_bonus = rules.points_shutout
    else:
        breakdown.base_points = rules.points_loss
        if is_conference_game and not is_postseason:
            breakdown.conference_bonus = rules.points_conference_game_loss
        if team_score >= rules.over_50_loss_score:
            breakdown.over_50_bonus = rules.points_over_50_loss
        if team_score == 0:
            breakdown.shutout_bonus = rules.points_shutout_loss

    breakdown.ranked_25_bonus, breakdown.ranked_10_bonus = ranked_bonus(
        opponent_rank,
        rules,
        is_win=is_win,
        is_bowl_game=bool(game.is_bowl_game),
        is_playoff_game=bool(game.is_playoff_game),
    )
    return breakdown
