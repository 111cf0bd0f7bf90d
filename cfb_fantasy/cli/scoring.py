"""
CLI commands for running the scoring engine.

Typical workflow after the results ingestor has loaded a week of games:
1. cfb-fantasy validate-games --season 2025 --week 12
2. cfb-fantasy run --mode week --season 2025 --week 12
3. cfb-fantasy standings --league 3

After a playoff schedule correction:
    cfb-fantasy run --mode season --season 2025 --remap

Every command builds its own engine from settings and runs inside a single
transaction: a run is committed as a whole or not at all.
"""

import json
import logging
import sys

import typer
from rich.console import Console
from rich.table import Table

from ..config.settings import settings
from ..database.connection import build_engine, build_session_factory, session_scope
from ..database.init_db import create_database, ensure_season, reset_database
from ..database.models import League, Season
from ..scoring.bracket import BRACKET_FORMATS, BracketWeekMapper
from ..scoring.exceptions import NotFoundError, ScoringError
from ..scoring.persistence import UnitWriter
from ..scoring.pipeline import RunMode, RunRequest, ScoringPipeline
from ..scoring.standings import StandingsTotalizer
from ..scoring.summary import RunSummary
from ..scoring.validation import check_season_games

app = typer.Typer(help="College football fantasy scoring engine", no_args_is_help=True)
console = Console()
logger = logging.getLogger(__name__)


def setup_logging():
    """
    Configure logging for CLI runs.

    Sets up dual logging output:
    - File logging for permanent records of every scoring run
    - Console logging for real-time feedback
    """
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(settings.log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )


def _session_factory():
    engine = build_engine(settings.database_url, settings.database_echo, settings.database_pool_size)
    return engine, build_session_factory(engine)


def _writer(session) -> UnitWriter:
    return UnitWriter(session, settings.write_retry_attempts, settings.write_retry_wait_seconds)


def _display_summary(summary: RunSummary) -> None:
    table = Table(title=f"Scoring run: {summary.mode} / season {summary.season_year}")

    table.add_column("Stage", style="cyan")
    table.add_column("Written", justify="right", style="green")
    table.add_column("Deleted", justify="right", style="yellow")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right", style="red")

    for stage, counters in summary.totals_by_stage().items():
        table.add_row(
            stage,
            str(counters["written"]),
            str(counters["deleted"]),
            str(counters["skipped"]),
            str(counters["failed"]),
        )
    console.print(table)

    if summary.issues:
        console.print(f"⚠️  {len(summary.issues)} data integrity issue(s):", style="yellow")
        for issue in summary.issues:
            console.print(f"  {issue}")
    for failure in summary.failures:
        console.print(f"  ❌ {failure}", style="red")


# ========== DATABASE COMMANDS ==========


@app.command("init-db")
def init_db(
    reset: bool = typer.Option(False, "--reset", help="Drop every table first (DESTRUCTIVE)"),
    season: int | None = typer.Option(None, "--season", "-s", help="Also create this season"),
    bracket_format: str = typer.Option(
        settings.bracket_format, "--bracket-format", help="Bracket format for a newly created season"
    ),
):
    """
    Create the database tables (and optionally a season).

    Examples:
        cfb-fantasy init-db
        cfb-fantasy init-db --season 2025 --bracket-format cfp12_spread
    """
    setup_logging()
    if bracket_format not in BRACKET_FORMATS:
        console.print(f"❌ Unknown bracket format: {bracket_format}", style="red")
        console.print(f"Valid options: {', '.join(sorted(BRACKET_FORMATS))}")
        raise typer.Exit(1)

    engine, factory = _session_factory()
    try:
        if reset:
            reset_database(engine)
        else:
            create_database(engine)
        if season is not None:
            with session_scope(factory) as session:
                ensure_season(session, season, bracket_format)
        console.print("✅ Database initialized successfully!", style="green")
    except Exception as e:
        console.print(f"❌ Database initialization failed: {e}", style="red")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()


# ========== SCORING COMMANDS ==========


@app.command("remap-bracket")
def remap_bracket(
    season: int = typer.Option(..., "--season", "-s", help="Season year"),
    bracket_format: str | None = typer.Option(
        None, "--bracket-format", help="Switch the season to this bracket format first"
    ),
):
    """
    Move playoff games to the canonical weeks of the season's bracket format.

    Only game weeks change; run `cfb-fantasy run --mode season --remap`
    to remap and recompute points in one go.
    """
    setup_logging()
    engine, factory = _session_factory()
    try:
        with session_scope(factory) as session:
            season_row = session.query(Season).filter_by(year=season).first()
            if season_row is None:
                raise NotFoundError(f"Season {season} not found")
            result = BracketWeekMapper(session, _writer(session)).remap_season(season_row, bracket_format)

        if result.moves:
            table = Table(title=f"Playoff games moved ({result.bracket_format})")
            table.add_column("Game", justify="right", style="cyan")
            table.add_column("Round", style="magenta")
            table.add_column("From week", justify="right")
            table.add_column("To week", justify="right", style="green")
            for move in result.moves:
                table.add_row(str(move.game_id), move.playoff_round, str(move.old_week), str(move.new_week))
            console.print(table)
            console.print(f"Weeks needing recompute: {sorted(result.affected_weeks)}", style="yellow")
        else:
            console.print("✅ All playoff games already in canonical weeks", style="green")

        for issue in result.issues:
            console.print(f"⚠️  {issue}", style="yellow")
    except ScoringError as e:
        console.print(f"❌ {e}", style="red")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()


@app.command("run")
def run(
    mode: RunMode = typer.Option(RunMode.WEEK, "--mode", "-m", help="week, season or league"),
    season: int = typer.Option(..., "--season", "-s", help="Season year"),
    week: int | None = typer.Option(None, "--week", "-w", help="Week (week and league modes)"),
    start_week: int | None = typer.Option(None, "--start-week", help="First week (season mode)"),
    end_week: int | None = typer.Option(None, "--end-week", help="Last week (season mode)"),
    league: int | None = typer.Option(None, "--league", "-l", help="League id (league mode)"),
    remap: bool = typer.Option(False, "--remap", help="Remap playoff weeks before scoring"),
    bracket_format: str | None = typer.Option(None, "--bracket-format", help="Switch format (with --remap)"),
    output_format: str = typer.Option("table", help="Output format (table, json)"),
):
    """
    Recompute points and standings.

    Examples:
        cfb-fantasy run --mode week --season 2025 --week 12
        cfb-fantasy run --mode league --season 2025 --week 12 --league 3
        cfb-fantasy run --mode season --season 2025 --remap
    """
    setup_logging()
    request = RunRequest(
        mode=mode,
        season_year=season,
        week=week,
        start_week=start_week,
        end_week=end_week,
        league_id=league,
        remap_bracket=remap,
        bracket_format=bracket_format,
    )

    engine, factory = _session_factory()
    try:
        with session_scope(factory) as session:
            summary = ScoringPipeline(session, settings.scoring, writer=_writer(session)).run(request)
    except (ValueError, NotFoundError) as e:
        console.print(f"❌ {e}", style="red")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"❌ Scoring run failed: {e}", style="red")
        logger.exception("Scoring run failed")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()

    if output_format == "json":
        console.print(json.dumps(summary.to_dict(), indent=2))
    else:
        _display_summary(summary)

    if not summary.succeeded:
        raise typer.Exit(1)


@app.command("validate-games")
def validate_games(
    season: int = typer.Option(..., "--season", "-s", help="Season year"),
    week: int | None = typer.Option(None, "--week", "-w", help="Only check this week"),
):
    """Report game data-quality problems (nothing is changed)."""
    setup_logging()
    engine, factory = _session_factory()
    try:
        with session_scope(factory) as session:
            season_row = session.query(Season).filter_by(year=season).first()
            if season_row is None:
                raise NotFoundError(f"Season {season} not found")
            issues = check_season_games(session, season_row.id, week)
    except ScoringError as e:
        console.print(f"❌ {e}", style="red")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()

    if not issues:
        console.print("✅ No game data issues found", style="green")
        return

    table = Table(title=f"🔍 Game data issues ({len(issues)})")
    table.add_column("Kind", style="magenta")
    table.add_column("Game", justify="right", style="cyan")
    table.add_column("Week", justify="right")
    table.add_column("Message")
    for issue in issues:
        table.add_row(
            issue.kind,
            str(issue.refs.get("game_id", "")),
            str(issue.refs.get("week_number", "")),
            issue.message,
        )
    console.print(table)
    raise typer.Exit(1)


@app.command("standings")
def standings(
    league: int = typer.Option(..., "--league", "-l", help="League id"),
):
    """Show a league table from stored totals."""
    engine, factory = _session_factory()
    try:
        with session_scope(factory) as session:
            league_row = session.get(League, league)
            if league_row is None:
                raise NotFoundError(f"League {league} not found")
            rows = StandingsTotalizer(session).standings(league_row)
            title = f"🏈 {league_row.name} standings"
    except ScoringError as e:
        console.print(f"❌ {e}", style="red")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()

    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Team", style="cyan")
    table.add_column("Points", justify="right", style="green")
    table.add_column("High points $", justify="right", style="yellow")
    table.add_column("Weeks", justify="right")
    for row in rows:
        table.add_row(
            str(row.rank),
            row.team_name,
            f"{row.total_points:g}",
            f"{row.high_points_winnings:.2f}",
            str(row.weeks_scored),
        )
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development)"),
):
    """Serve the read-model API with uvicorn."""
    import uvicorn

    console.print(f"🚀 Serving API on http://{host}:{port} (docs at /docs)")
    uvicorn.run("cfb_fantasy.api.main:app", host=host, port=port, reload=reload, log_level=settings.log_level.lower())
