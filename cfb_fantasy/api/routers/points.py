"""
School points read model and the protected scoring-run endpoint.

POST /api/points/calculate is meant for the scheduler that runs after game
data ingestion. It requires ``Authorization: Bearer <SYNC_API_KEY>``; when no
key is configured every request is refused.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...database.connection import get_db
from ...database.models import LeagueEventBonus, School, SchoolWeeklyPoints, Season
from ...scoring.exceptions import NotFoundError
from ...scoring.persistence import UnitWriter
from ...scoring.pipeline import RunRequest, ScoringPipeline
from ..schemas import CalculateRequest, CalculateResponse, SchoolPointsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def require_sync_key(request: Request, authorization: str | None = Header(None)):
    """Reject the request unless it carries the configured bearer key."""
    expected = request.app.state.settings.sync_api_key
    if not expected or authorization is None or not secrets.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/schools/{school_id}/points", response_model=SchoolPointsResponse)
async def get_school_points(
    school_id: int,
    year: int = Query(..., description="Season year"),
    league_id: int | None = Query(None, description="Include this league's event bonuses"),
    db: Session = Depends(get_db),
):
    """
    Week-by-week points of one school.

    Example URLs:
    - /api/schools/12/points?year=2025
    - /api/schools/12/points?year=2025&league_id=3
    """
    school = db.get(School, school_id)
    if school is None:
        raise HTTPException(status_code=404, detail=f"School {school_id} not found")
    season = db.query(Season).filter_by(year=year).first()
    if season is None:
        raise HTTPException(status_code=404, detail=f"Season {year} not found")

    weeks = (
        db.query(SchoolWeeklyPoints)
        .filter_by(school_id=school_id, season_id=season.id)
        .order_by(SchoolWeeklyPoints.week_number)
        .all()
    )
    bonuses = []
    if league_id is not None:
        bonuses = (
            db.query(LeagueEventBonus)
            .filter_by(school_id=school_id, season_id=season.id, league_id=league_id)
            .order_by(LeagueEventBonus.week_number, LeagueEventBonus.bonus_type)
            .all()
        )

    return {
        "school_id": school.id,
        "school_name": school.name,
        "season_year": season.year,
        "weeks": weeks,
        "bonuses": bonuses,
        "total_points": sum(row.total_points for row in weeks) + sum(row.points for row in bonuses),
    }


@router.post("/points/calculate", response_model=CalculateResponse, dependencies=[Depends(require_sync_key)])
def calculate_points(body: CalculateRequest, request: Request, db: Session = Depends(get_db)):
    """
    Run the scoring pipeline and commit the result.

    Plain ``def``: FastAPI runs it in the threadpool, so the blocking
    database work does not stall the event loop.
    """
    app_settings = request.app.state.settings
    run_request = RunRequest(
        mode=body.mode,
        season_year=body.year,
        week=body.week,
        start_week=body.start_week,
        end_week=body.end_week,
        league_id=body.league_id,
        remap_bracket=body.remap_bracket,
        bracket_format=body.bracket_format,
    )
    writer = UnitWriter(db, app_settings.write_retry_attempts, app_settings.write_retry_wait_seconds)

    try:
        summary = ScoringPipeline(db, app_settings.scoring, writer=writer).run(run_request)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception:
        db.rollback()
        logger.exception("Scoring run failed")
        raise

    result = summary.to_dict()
    return {
        "success": result["succeeded"],
        "mode": result["mode"],
        "year": result["season_year"],
        "weeks": result["weeks"],
        "league_ids": result["league_ids"],
        "rows_written": result["rows_written"],
        "rows_deleted": result["rows_deleted"],
        "skipped": result["skipped"],
        "stages": result["stages"],
        "failures": result["failures"],
        "issues": result["issues"],
    }
