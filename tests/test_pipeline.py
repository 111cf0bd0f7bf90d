"""End-to-end tests for the scoring pipeline.

The season below has a quarterfinal stored in the wrong week (18 instead of
19), so every season run with remap also exercises the Bracket Week Mapper.
"""

import pytest

from cfb_fantasy.database.models import (
    FantasyTeamWeeklyPoints,
    GameStatus,
    LeagueEventBonus,
    RosterPeriod,
    SchoolWeeklyPoints,
)
from cfb_fantasy.scoring.exceptions import NotFoundError
from cfb_fantasy.scoring.pipeline import RunMode, RunRequest, ScoringPipeline


@pytest.fixture
def league_season(session, make, bonus_settings):
    season = make.season(2025)
    s = {
        "alpha": make.school("Alpha", "SEC"),
        "beta": make.school("Beta", "SEC"),
        "gamma": make.school("Gamma", "Big Ten"),
        "delta": make.school("Delta", "Big Ten"),
        "echo": make.school("Echo", "ACC"),
        "foxtrot": make.school("Foxtrot", "Big 12"),
    }
    games = {
        "w1_a": make.game(season, 1, s["alpha"], s["gamma"], 35, 14),
        "w1_b": make.game(season, 1, s["delta"], s["echo"], 20, 17),
        "sec_title": make.game(season, 15, s["alpha"], s["beta"], 30, 20),
        "gator": make.game(season, 17, s["echo"], s["foxtrot"], 24, 17, is_bowl_game=True, bowl_name="Gator Bowl"),
        "first_round": make.playoff_game(season, 18, "first_round", s["gamma"], s["delta"], 27, 24),
        # Stored in the first-round week by the feed
        "quarterfinal": make.playoff_game(season, 18, "quarterfinal", s["alpha"], s["gamma"], 35, 28),
    }
    make.heisman(season, s["beta"])

    league = make.league(season, high_points_enabled=True, high_points_weekly_amount=10, **bonus_settings)
    teams = {name: make.team(league, f"Team {name}") for name in ("A", "B", "C")}
    make.roster(teams["A"], s["alpha"], 0)
    make.roster(teams["A"], s["echo"], 0)
    make.roster(teams["B"], s["gamma"], 0, 9)
    make.roster(teams["B"], s["beta"], 0)
    make.roster(teams["C"], s["gamma"], 10)
    make.roster(teams["C"], s["delta"], 0)
    make.roster(teams["C"], s["foxtrot"], 0)
    return season, s, games, league, teams


def _season_run(**kwargs):
    return RunRequest(mode=RunMode.SEASON, season_year=2025, remap_bracket=True, **kwargs)


def _snapshot(session):
    return (
        sorted(
            (
                r.id, r.school_id, r.season_id, r.week_number, r.game_id, r.base_points, r.conference_bonus,
                r.over_50_bonus, r.shutout_bonus, r.ranked_25_bonus, r.ranked_10_bonus, r.total_points,
            )
            for r in session.query(SchoolWeeklyPoints)
        ),
        sorted(
            (r.id, r.league_id, r.school_id, r.season_id, r.week_number, r.bonus_type, r.points, r.game_id)
            for r in session.query(LeagueEventBonus)
        ),
        sorted(
            (r.id, r.fantasy_team_id, r.week_number, r.points, r.is_high_points_winner, r.high_points_amount)
            for r in session.query(FantasyTeamWeeklyPoints)
        ),
    )


def _weekly(session, team):
    return {
        row.week_number: row
        for row in session.query(FantasyTeamWeeklyPoints).filter_by(fantasy_team_id=team.id)
    }


def test_full_season_totals(session, rules, league_season):
    season, s, games, league, teams = league_season

    summary = ScoringPipeline(session, rules).run(_season_run())

    assert summary.succeeded
    assert summary.issues == []
    assert games["quarterfinal"].week_number == 19

    assert {week: row.points for week, row in _weekly(session, teams["A"]).items()} == {
        1: 1,  # Alpha non-conference win, Echo loss
        15: 5,  # Alpha conference title game: win + conference + title bonus 3
        17: 5,  # Echo bowl win 1 + bowl bonus 2, Alpha bowl bonus 2
        18: 3,  # Alpha first-round bye
        19: 5,  # Alpha quarterfinal win 1 + round bonus 4
    }
    assert (teams["A"].total_points, teams["B"].total_points, teams["C"].total_points) == (19, 3, 18)
    assert (
        teams["A"].high_points_winnings,
        teams["B"].high_points_winnings,
        teams["C"].high_points_winnings,
    ) == (20, 10, 20)


def test_run_twice_gives_identical_tables(session, rules, league_season):
    pipeline = ScoringPipeline(session, rules)

    pipeline.run(_season_run())
    first = _snapshot(session)
    second_summary = pipeline.run(_season_run())

    assert _snapshot(session) == first
    assert second_summary.rows_deleted == 0


def test_conservation(session, rules, league_season):
    season, s, games, league, teams = league_season
    ScoringPipeline(session, rules).run(_season_run())

    school_points = {(r.school_id, r.week_number): r.total_points for r in session.query(SchoolWeeklyPoints)}
    bonuses = {}
    for r in session.query(LeagueEventBonus).filter_by(league_id=league.id):
        bonuses[(r.school_id, r.week_number)] = bonuses.get((r.school_id, r.week_number), 0) + r.points

    for team in teams.values():
        weekly = _weekly(session, team)
        assert team.total_points == sum(row.points for row in weekly.values())

        periods = session.query(RosterPeriod).filter_by(fantasy_team_id=team.id).all()
        for week, row in weekly.items():
            owned = {
                p.school_id for p in periods if p.start_week <= week and (p.end_week is None or p.end_week >= week)
            }
            expected = sum(school_points.get((sid, week), 0) + bonuses.get((sid, week), 0) for sid in owned)
            assert row.points == expected


def test_bracket_correction_leaves_no_stale_bonus(session, rules, league_season):
    """Echo and Foxtrot's bowl turns out not to be a bowl: their week-17 rows go."""
    season, s, games, league, teams = league_season
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(_season_run())
    total_before = teams["A"].total_points

    games["gator"].is_bowl_game = False
    games["gator"].bowl_name = None
    games["gator"].week_number = 16
    session.flush()
    pipeline.run(RunRequest(mode=RunMode.SEASON, season_year=2025, start_week=16, end_week=17))

    bowl_schools = {
        r.school_id for r in session.query(LeagueEventBonus).filter_by(bonus_type="bowl_appearance", week_number=17)
    }
    assert s["echo"].id not in bowl_schools
    assert s["foxtrot"].id not in bowl_schools
    assert s["alpha"].id in bowl_schools
    assert teams["A"].total_points == total_before - 2  # Only the bowl bonus is lost; the win moved to week 16
    assert _weekly(session, teams["A"])[16].points == 1


def test_week_mode_after_remap_recomputes_both_weeks(session, rules, league_season):
    season, s, games, league, teams = league_season
    pipeline = ScoringPipeline(session, rules)

    # Score week 18 with the quarterfinal still misfiled there
    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=18))
    assert session.query(SchoolWeeklyPoints).filter_by(school_id=s["alpha"].id, week_number=18).count() == 1

    summary = pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=19, remap_bracket=True))

    assert summary.weeks == [17, 18, 19]  # Playoff weeks also revisit the bowl week
    assert session.query(SchoolWeeklyPoints).filter_by(school_id=s["alpha"].id, week_number=18).count() == 0
    assert session.query(SchoolWeeklyPoints).filter_by(school_id=s["alpha"].id, week_number=19).count() == 1


@pytest.fixture
def first_round(session, make, bonus_settings):
    season = make.season(2025)
    s = {
        "Alpha": make.school("Alpha", "SEC"),
        "Beta": make.school("Beta", "ACC"),
        "Gamma": make.school("Gamma", "Big 12"),
    }
    league = make.league(season, **bonus_settings)
    teams = {name: make.team(league, f"Team {name}") for name in ("B", "C")}
    make.roster(teams["B"], s["Beta"], 0)
    make.roster(teams["C"], s["Gamma"], 0)
    return season, s, league, teams


def _bowl_schools(session):
    return {
        r.school_id for r in session.query(LeagueEventBonus).filter_by(bonus_type="bowl_appearance", week_number=17)
    }


def test_first_round_correction_updates_bowl_week(session, make, rules, first_round):
    season, s, league, teams = first_round
    game = make.playoff_game(season, 18, "first_round", s["Alpha"], s["Beta"], 30, 20)
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(_season_run())
    assert _bowl_schools(session) == {s["Alpha"].id, s["Beta"].id}

    game.away_school_id = s["Gamma"].id  # The feed had the wrong opponent
    session.flush()
    summary = pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=18))

    assert 17 in summary.weeks
    assert _bowl_schools(session) == {s["Alpha"].id, s["Gamma"].id}
    assert _weekly(session, teams["B"]) == {}
    assert teams["B"].total_points == 0
    assert {week: row.points for week, row in _weekly(session, teams["C"]).items()} == {17: 2, 18: 3}
    assert teams["C"].total_points == 5


def test_first_round_going_final_adds_bowl_rows(session, make, rules, first_round):
    season, s, league, teams = first_round
    game = make.playoff_game(season, 18, "first_round", s["Alpha"], s["Beta"], None, None, status=GameStatus.SCHEDULED)
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=17))
    assert _bowl_schools(session) == set()

    game.status = GameStatus.FINAL.value
    game.home_score, game.away_score = 27, 24
    session.flush()
    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=18))

    assert _bowl_schools(session) == {s["Alpha"].id, s["Beta"].id}
    assert _weekly(session, teams["B"])[17].points == 2
    assert teams["B"].total_points == 5  # Bowl appearance 2 + first round 3, the loss itself scores 0


def test_quarterfinal_week_revisits_first_round_byes(session, make, rules, first_round):
    season, s, league, teams = first_round
    pipeline = ScoringPipeline(session, rules)
    quarterfinal = make.playoff_game(season, 19, "quarterfinal", s["Gamma"], s["Alpha"], 21, 17)
    pipeline.run(_season_run())
    byes = session.query(LeagueEventBonus).filter_by(bonus_type="cfp_first_round", week_number=18)
    assert {r.school_id for r in byes} == {s["Gamma"].id, s["Alpha"].id}

    quarterfinal.home_school_id = s["Beta"].id
    session.flush()
    summary = pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=19))

    assert summary.weeks == [17, 18, 19]
    byes = session.query(LeagueEventBonus).filter_by(bonus_type="cfp_first_round", week_number=18)
    assert {r.school_id for r in byes} == {s["Beta"].id, s["Alpha"].id}
    assert 18 not in _weekly(session, teams["C"])


def test_bracket_format_switch_moves_event_bonuses(session, rules, league_season):
    season, s, games, league, teams = league_season
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(_season_run())

    summary = pipeline.run(
        RunRequest(
            mode=RunMode.WEEK, season_year=2025, week=20, remap_bracket=True, bracket_format="cfp12_compressed"
        )
    )

    assert season.bracket_format == "cfp12_compressed"
    assert 22 in summary.weeks
    heisman = session.query(LeagueEventBonus).filter_by(bonus_type="heisman").one()
    assert heisman.week_number == 20
    assert 22 not in _weekly(session, teams["B"])
    assert teams["B"].total_points == sum(row.points for row in _weekly(session, teams["B"]).values())


def test_league_mode_only_touches_one_league(session, make, rules, league_season):
    season, s, games, league, teams = league_season
    other = make.league(season, name="Other League")
    outsider = make.team(other, "Outsider")
    make.roster(outsider, s["alpha"], 0)
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=1))
    for row in session.query(FantasyTeamWeeklyPoints).filter_by(fantasy_team_id=teams["A"].id):
        session.delete(row)
    session.flush()

    summary = pipeline.run(RunRequest(mode=RunMode.LEAGUE, season_year=2025, week=1, league_id=league.id))

    assert summary.league_ids == [league.id]
    assert _weekly(session, teams["A"])[1].points == 1
    assert _weekly(session, outsider)[1].points == 1


def test_league_mode_keeps_other_leagues_consistent(session, make, rules, league_season):
    """A league-only run must not change the school points another league was built from."""
    season, s, games, league, teams = league_season
    other = make.league(season, name="Other League")
    outsider = make.team(other, "Outsider")
    make.roster(outsider, s["alpha"], 0)
    pipeline = ScoringPipeline(session, rules)
    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=1))

    games["w1_a"].home_score = 70  # Corrected result: now a 56-point win
    session.flush()
    pipeline.run(RunRequest(mode=RunMode.LEAGUE, season_year=2025, week=1, league_id=league.id))

    alpha_week_1 = session.query(SchoolWeeklyPoints).filter_by(school_id=s["alpha"].id, week_number=1).one()
    assert _weekly(session, outsider)[1].points == alpha_week_1.total_points

    pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=1))
    assert _weekly(session, outsider)[1].points == 2
    assert _weekly(session, teams["A"])[1].points == 2


def test_missing_season_and_league(session, rules, league_season):
    pipeline = ScoringPipeline(session, rules)

    with pytest.raises(NotFoundError):
        pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=1999, week=1))
    with pytest.raises(NotFoundError):
        pipeline.run(RunRequest(mode=RunMode.LEAGUE, season_year=2025, week=1, league_id=12345))


def test_malformed_requests(session, rules, league_season):
    pipeline = ScoringPipeline(session, rules)

    with pytest.raises(ValueError):
        pipeline.run(RunRequest(mode=RunMode.WEEK, season_year=2025))
    with pytest.raises(ValueError):
        pipeline.run(RunRequest(mode=RunMode.LEAGUE, season_year=2025, week=3))
    with pytest.raises(ValueError):
        pipeline.run(RunRequest(mode=RunMode.SEASON, season_year=2025, start_week=10, end_week=2))
    with pytest.raises(ValueError):
        pipeline.run(RunRequest(mode=RunMode.LEAGUE, season_year=2025, week=3, league_id=1, remap_bracket=True))


def test_integrity_issues_are_reported_not_fatal(session, make, rules, league_season):
    season, s, games, league, teams = league_season
    make.roster(teams["C"], s["alpha"], 5)  # Alpha now has two owners from week 5

    summary = ScoringPipeline(session, rules).run(RunRequest(mode=RunMode.WEEK, season_year=2025, week=15))

    assert summary.succeeded
    assert [issue.kind for issue in summary.issues] == ["multiple_owners"]
    assert summary.to_dict()["issues"][0].startswith("[multiple_owners]")
