"""Data-quality checks on game rows written by the results ingestor.

Findings are reported, never corrected: the engine scores the data it is
given and the run summary tells an operator what needs fixing upstream.
"""

import logging
import re

from sqlalchemy.orm import Session

from ..database.models import Game, GameStatus, PlayoffRound
from .exceptions import IntegrityIssue

logger = logging.getLogger(__name__)

# Names the feed uses for playoff games: "CFP Quarterfinal - Rose Bowl",
# "College Football Playoff First Round", "National Championship"
PLAYOFF_NAME_PATTERN = re.compile(r"\b(cfp|playoff|national championship)\b", re.IGNORECASE)

_KNOWN_ROUNDS = {playoff_round.value for playoff_round in PlayoffRound}


def check_game(game: Game) -> list[IntegrityIssue]:
    """Return every integrity issue found on one game."""
    issues = []
    refs = {"game_id": game.id, "week_number": game.week_number}

    if game.is_playoff_game and not game.playoff_round:
        issues.append(
            IntegrityIssue("playoff_round_missing", f"Playoff game {game.id} has no playoff round", refs)
        )
    if game.playoff_round and not game.is_playoff_game:
        issues.append(
            IntegrityIssue(
                "round_flag_mismatch",
                f"Game {game.id} has playoff round {game.playoff_round!r} but is not flagged as a playoff game",
                refs,
            )
        )
    if game.playoff_round and game.playoff_round not in _KNOWN_ROUNDS:
        issues.append(
            IntegrityIssue("unknown_playoff_round", f"Game {game.id} has unknown round {game.playoff_round!r}", refs)
        )
    if game.is_playoff_game and not PLAYOFF_NAME_PATTERN.search(game.bowl_name or ""):
        issues.append(
            IntegrityIssue(
                "playoff_name_mismatch",
                f"Playoff game {game.id} is named {game.bowl_name!r}, which does not reference the playoff",
                refs,
            )
        )
    if game.status == GameStatus.FINAL.value and (game.home_score is None or game.away_score is None):
        issues.append(IntegrityIssue("final_without_score", f"Game {game.id} is final but missing a score", refs))

    return issues


def check_season_games(session: Session, season_id: int, week: int | None = None) -> list[IntegrityIssue]:
    """Run check_game over a season (or one week of it) and log what was found."""
    query = session.query(Game).filter(Game.season_id == season_id)
    if week is not None:
        query = query.filter(Game.week_number == week)

    issues = []
    for game in query.order_by(Game.id):
        issues.extend(check_game(game))

    for issue in issues:
        logger.warning(str(issue))
    return issues
