"""Shared pytest fixtures.

Every test gets its own in-memory SQLite database (build_engine gives
in-memory URLs a StaticPool, so all sessions of one test share a single
connection) and a ``make`` factory for source rows.

For beginners: a fixture is a function pytest runs before a test and whose
return value is passed in as the argument of the same name.
"""

import pytest

from cfb_fantasy.config import ScoringRules
from cfb_fantasy.database.connection import build_engine, build_session_factory
from cfb_fantasy.database.init_db import create_database
from cfb_fantasy.database.models import (
    FantasyTeam,
    Game,
    GameStatus,
    HeismanWinner,
    League,
    LeagueSettings,
    RankingSnapshot,
    RosterPeriod,
    School,
    Season,
)


class RowFactory:
    """Creates source rows with sensible defaults and flushes them for ids."""

    def __init__(self, session):
        self.session = session

    def _add(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    def season(self, year=2025, bracket_format="cfp12_spread"):
        return self._add(Season(year=year, bracket_format=bracket_format))

    def school(self, name, conference=None):
        return self._add(School(name=name, conference=conference))

    def game(self, season, week, home, away, home_score=None, away_score=None, status=GameStatus.FINAL, **kwargs):
        return self._add(
            Game(
                season_id=season.id,
                week_number=week,
                home_school_id=home.id if home is not None else None,
                away_school_id=away.id if away is not None else None,
                home_score=home_score,
                away_score=away_score,
                status=status.value,
                **kwargs,
            )
        )

    def playoff_game(self, season, week, playoff_round, home, away, home_score, away_score, name=None, **kwargs):
        return self.game(
            season,
            week,
            home,
            away,
            home_score,
            away_score,
            **kwargs,
            is_bowl_game=True,
            is_playoff_game=True,
            playoff_round=playoff_round,
            bowl_name=name or f"CFP {playoff_round.replace('_', ' ').title()}",
        )

    def ranking(self, season, week, school, rank):
        return self._add(RankingSnapshot(season_id=season.id, week_number=week, school_id=school.id, rank=rank))

    def heisman(self, season, school, player_name="Some Quarterback"):
        return self._add(HeismanWinner(season_id=season.id, school_id=school.id, player_name=player_name))

    def league(self, season, name="Test League", with_settings=True, **settings):
        league = self._add(League(name=name, season_id=season.id))
        if with_settings:
            self._add(LeagueSettings(league_id=league.id, **settings))
        self.session.refresh(league)
        return league

    def team(self, league, name):
        team = self._add(FantasyTeam(league_id=league.id, name=name))
        self.session.refresh(league)
        return team

    def roster(self, team, school, start_week, end_week=None):
        return self._add(
            RosterPeriod(fantasy_team_id=team.id, school_id=school.id, start_week=start_week, end_week=end_week)
        )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make(session):
    return RowFactory(session)


@pytest.fixture
def rules():
    return ScoringRules()


@pytest.fixture
def bonus_settings():
    """League settings pricing every special event differently."""
    return {
        "points_conference_championship_win": 3,
        "points_conference_championship_loss": 1,
        "points_bowl_appearance": 2,
        "points_playoff_first_round": 3,
        "points_playoff_quarterfinal": 4,
        "points_playoff_semifinal": 5,
        "points_championship_win": 10,
        "points_championship_loss": 5,
        "points_heisman_winner": 2,
    }
