"""Tests for the per-game scoring rules (no database needed)."""

from cfb_fantasy.config import ScoringRules
from cfb_fantasy.database.models import Game, GameStatus
from cfb_fantasy.scoring.rules import ranked_bonus, score_school_game


def _game(home_score, away_score, **kwargs):
    return Game(
        id=1,
        home_school_id=10,
        away_school_id=20,
        home_score=home_score,
        away_score=away_score,
        status=GameStatus.FINAL.value,
        is_bowl_game=kwargs.pop("is_bowl_game", False),
        is_playoff_game=kwargs.pop("is_playoff_game", False),
        **kwargs,
    )


def test_blowout_shutout_conference_win(rules):
    """55-0 over an unranked conference opponent earns every non-ranked component."""
    points = score_school_game(_game(55, 0), 10, None, True, rules)

    assert points.base_points > 0
    assert points.conference_bonus > 0
    assert points.over_50_bonus > 0
    assert points.shutout_bonus > 0
    assert points.ranked_25_bonus == 0
    assert points.ranked_10_bonus == 0
    assert points.total_points == 4


def test_loser_scores_loss_values(rules):
    points = score_school_game(_game(55, 0), 20, None, True, rules)

    assert not points.is_win
    assert points.total_points == 0


def test_loss_values_are_configurable():
    rules = ScoringRules(points_loss=0.5, points_shutout_loss=-1)
    points = score_school_game(_game(55, 0), 20, None, False, rules)

    assert points.base_points == 0.5
    assert points.shutout_bonus == -1
    assert points.total_points == -0.5


def test_losing_side_high_score_uses_its_own_threshold():
    rules = ScoringRules(points_over_50_loss=0.5, over_50_margin=30, over_50_loss_score=60)

    scored_52 = score_school_game(_game(90, 52), 20, None, False, rules)
    scored_63 = score_school_game(_game(90, 63), 20, None, False, rules)
    winner = score_school_game(_game(90, 52), 10, None, False, rules)

    assert scored_52.over_50_bonus == 0, "52 points is below the losing-side threshold of 60"
    assert scored_63.over_50_bonus == 0.5
    assert winner.over_50_bonus == 1, "A 38-point margin clears the winning margin of 30"


def test_margin_of_49_is_not_a_blowout(rules):
    points = score_school_game(_game(56, 7), 10, None, False, rules)

    assert points.over_50_bonus == 0
    assert points.shutout_bonus == 0
    assert points.total_points == 1


def test_top_10_win_gets_only_the_top_tier(rules):
    """Ranked tiers are exclusive: a top-10 win never also earns the top-25 tier."""
    points = score_school_game(_game(24, 21), 10, 5, False, rules)

    assert points.ranked_10_bonus == rules.points_ranked_10
    assert points.ranked_25_bonus == 0


def test_top_25_win(rules):
    points = score_school_game(_game(24, 21), 10, 18, False, rules)

    assert points.ranked_25_bonus == rules.points_ranked_25
    assert points.ranked_10_bonus == 0


def test_unranked_and_tier_boundaries(rules):
    assert ranked_bonus(None, rules, True, False, False) == (0, 0)
    assert ranked_bonus(26, rules, True, False, False) == (0, 0)
    assert ranked_bonus(25, rules, True, False, False) == (rules.points_ranked_25, 0)
    assert ranked_bonus(10, rules, True, False, False) == (0, rules.points_ranked_10)
    assert ranked_bonus(11, rules, True, False, False) == (rules.points_ranked_25, 0)


def test_bowl_game_has_no_conference_or_ranked_bonus(rules):
    game = _game(63, 0, is_bowl_game=True, bowl_name="Gator Bowl")
    points = score_school_game(game, 10, 3, True, rules)

    assert points.conference_bonus == 0
    assert points.ranked_10_bonus == 0
    assert points.ranked_25_bonus == 0
    assert points.over_50_bonus == 1
    assert points.shutout_bonus == 1


def test_playoff_ranked_bonus_uses_playoff_cutoff(rules):
    game = _game(30, 20, is_bowl_game=True, is_playoff_game=True, playoff_round="quarterfinal")

    within = score_school_game(game, 10, 11, False, rules)
    outside = score_school_game(game, 10, 13, False, rules)

    assert within.ranked_10_bonus == rules.points_ranked_10
    assert within.ranked_25_bonus == 0
    assert outside.ranked_10_bonus == 0
    assert outside.ranked_25_bonus == 0


def test_championship_game_earns_no_weekly_points(rules):
    """The title game is scored only by the league's championship bonuses."""
    game = _game(55, 0, is_bowl_game=True, is_playoff_game=True, playoff_round="championship")

    winner = score_school_game(game, 10, 1, True, rules)
    loser = score_school_game(game, 20, 2, True, rules)

    assert winner.is_win
    assert winner.total_points == 0
    assert loser.total_points == 0


def test_tie_is_scored_as_a_loss(rules):
    points = score_school_game(_game(21, 21), 10, None, True, rules)

    assert not points.is_win
    assert points.base_points == rules.points_loss


def test_breakdowns_add_component_wise(rules):
    first = score_school_game(_game(55, 0), 10, None, True, rules)
    second = score_school_game(_game(24, 21), 10, 5, False, rules)

    combined = first.add(second)

    assert combined.base_points == 2
    assert combined.ranked_10_bonus == 2
    assert combined.total_points == first.total_points + second.total_points
