"""School Weekly Points Calculator.

Turns final games into one SchoolWeeklyPoints row per (school, season, week).

Calculation Pipeline (per week):
1. Load the week's final games (anything not final, or without both scores,
   is skipped - in-progress games never produce points)
2. Load the ranking snapshot for the week, falling back to the most recent
   earlier week (there are no polls during the playoff weeks)
3. Score each tracked school in each game with the pure rules in rules.py
4. Upsert each school's row in full inside its own SAVEPOINT
5. Delete rows left in this (season, week) by schools that no longer have a
   final game here - e.g. after a playoff game was moved to another week

Idempotency: the rows written depend only on the games, rankings and
scoring rules, so re-running a week reproduces the same table.
"""

import logging

from sqlalchemy.orm import Session

from ..config.scoring import ScoringRules
from ..database.models import Game, GameStatus, RankingSnapshot, School, SchoolWeeklyPoints, Season
from .bracket import format_for_season
from .exceptions import NotFoundError, ScoringError
from .persistence import UnitWriter
from .rules import SchoolPointsBreakdown, score_school_game
from .summary import StageResult

logger = logging.getLogger(__name__)


class SchoolWeeklyPointsCalculator:
    """Computes and stores league-agnostic weekly points for every school."""

    stage = "school_points"

    def __init__(self, session: Session, rules: ScoringRules, writer: UnitWriter | None = None):
        self.session = session
        self.rules = rules
        self.writer = writer or UnitWriter(session)

    def rankings_for_week(self, season_id: int, week: int) -> dict[int, int]:
        """School id -> rank as of ``week``.

        Uses the snapshot for the week itself, or the latest earlier week that
        has one. Schools missing from the snapshot are unranked.
        """
        snapshot_week = (
            self.session.query(RankingSnapshot.week_number)
            .filter(RankingSnapshot.season_id == season_id, RankingSnapshot.week_number <= week)
            .order_by(RankingSnapshot.week_number.desc())
            .limit(1)
            .scalar()
        )
        if snapshot_week is None:
            return {}

        rows = (
            self.session.query(RankingSnapshot.school_id, RankingSnapshot.rank)
            .filter(RankingSnapshot.season_id == season_id, RankingSnapshot.week_number == snapshot_week)
            .all()
        )
        return {school_id: rank for school_id, rank in rows}

    def _opponent_rank(self, game: Game, school_id: int, rankings: dict[int, int]) -> int | None:
        is_home = game.home_school_id == school_id
        opponent_id = game.away_school_id if is_home else game.home_school_id
        if opponent_id is not None and opponent_id in rankings:
            return rankings[opponent_id]

        # Feed-reported rank at kickoff, when the snapshot has nothing
        feed_rank = game.away_rank if is_home else game.home_rank
        if feed_rank is not None and feed_rank < self.rules.unranked_sentinel:
            return feed_rank
        return None

    def compute_week(self, season: Season, week: int) -> tuple[dict[int, SchoolPointsBreakdown], StageResult]:
        """Score a week without writing anything.

        Returns:
            (school id -> breakdown, StageResult carrying skips and failures)
        """
        result = StageResult(stage=self.stage, scope=f"season {season.year} week {week}")

        games = (
            self.session.query(Game)
            .filter(Game.season_id == season.id, Game.week_number == week)
            .order_by(Game.id)
            .all()
        )
        final_games = []
        for game in games:
            if game.is_final:
                final_games.append(game)
            elif game.status == GameStatus.FINAL.value:
                # Marked final but a score is missing - never score partial data
                logger.warning(f"Skipping game {game.id}: final without both scores")
                result.skipped += 1

        if not final_games:
            return {}, result

        rankings = self.rankings_for_week(season.id, week)

        school_ids = {sid for game in final_games for sid in game.school_ids()}
        schools = {
            school.id: school
            for school in self.session.query(School).filter(School.id.in_(school_ids)).all()
        }

        breakdowns: dict[int, SchoolPointsBreakdown] = {}
        for game in final_games:
            for school_id in game.school_ids():
                if school_id not in schools:
                    message = f"Game {game.id} references missing school {school_id}"
                    logger.warning(message)
                    result.failures.append(str(NotFoundError(message)))
                    continue

                opponent_id = game.away_school_id if game.home_school_id == school_id else game.home_school_id
                opponent = schools.get(opponent_id)
                own_conference = schools[school_id].conference
                is_conference_game = bool(
                    opponent is not None and own_conference and own_conference == opponent.conference
                )

                points = score_school_game(
                    game,
                    school_id,
                    self._opponent_rank(game, school_id, rankings),
                    is_conference_game,
                    self.rules,
                )
                if school_id in breakdowns:
                    logger.info(f"School {school_id} has more than one final game in week {week}; summing")
                    points = breakdowns[school_id].add(points)
                breakdowns[school_id] = points

        return breakdowns, result

    def _upsert(self, season: Season, week: int, points: SchoolPointsBreakdown) -> SchoolWeeklyPoints:
        row = (
            self.session.query(SchoolWeeklyPoints)
            .filter_by(school_id=points.school_id, season_id=season.id, week_number=week)
            .first()
        )
        if row is None:
            row = SchoolWeeklyPoints(school_id=points.school_id, season_id=season.id, week_number=week)
            self.session.add(row)

        # Replace every component - rows are never partially updated
        row.game_id = points.game_id
        row.base_points = points.base_points
        row.conference_bonus = points.conference_bonus
        row.over_50_bonus = points.over_50_bonus
        row.shutout_bonus = points.shutout_bonus
        row.ranked_25_bonus = points.ranked_25_bonus
        row.ranked_10_bonus = points.ranked_10_bonus
        row.total_points = points.total_points
        return row

    def calculate_week(self, season: Season, week: int) -> StageResult:
        """Compute, store and reconcile one week's school points."""
        breakdowns, result = self.compute_week(season, week)

        failed_schools = set()
        for school_id, points in sorted(breakdowns.items()):
            try:
                self.writer.run(
                    f"school {school_id} week {week}",
                    lambda points=points: self._upsert(season, week, points),
                )
                result.written += 1
            except ScoringError as e:
                logger.warning(f"School {school_id} week {week} not stored: {e}")
                result.failures.append(str(e))
                failed_schools.add(school_id)

        stale_rows = (
            self.session.query(SchoolWeeklyPoints)
            .filter(SchoolWeeklyPoints.season_id == season.id, SchoolWeeklyPoints.week_number == week)
            .all()
        )
        stale_rows = [
            row for row in stale_rows if row.school_id not in breakdowns and row.school_id not in failed_schools
        ]
        if stale_rows:

            def _delete():
                for row in stale_rows:
                    self.session.delete(row)

            try:
                self.writer.run(f"stale school points week {week}", _delete)
                result.deleted += len(stale_rows)
                logger.info(f"Removed {len(stale_rows)} stale school point rows from week {week}")
            except ScoringError as e:
                result.failures.append(str(e))

        logger.info(
            f"School points season {season.year} week {week}: "
            f"{result.written} written, {result.deleted} deleted, {result.skipped} skipped"
        )
        return result

    def calculate_season(self, season: Season, weeks: list[int] | None = None) -> list[StageResult]:
        """Run calculate_week over ``weeks`` (default: every week of the season's format)."""
        weeks = weeks if weeks is not None else format_for_season(season).weeks()
        return [self.calculate_week(season, week) for week in weeks]
