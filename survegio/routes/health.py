"""Health check for load balancers and deploy verification.

Besides connectivity, the check confirms the survey tables exist by counting
configured surveys, so a database that is reachable but unmigrated reports
as unavailable.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from survegio import __version__
from survegio.models import EvaluationSurvey
from survegio.models.database import get_db
from survegio.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Report service version and survey store status.

    Raises:
        HTTPException: 503 if the store cannot be queried

    Example response:
        {
            "status": "healthy",
            "database": "connected",
            "surveys": 2,
            "version": "1.0.0"
        }
    """
    try:
        survey_count = db.scalar(select(func.count()).select_from(EvaluationSurvey))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Survey store unavailable"
        )

    logger.debug(f"Health check passed, {survey_count} surveys configured")
    return {
        "status": "healthy",
        "database": "connected",
        "surveys": survey_count,
        "version": __version__,
    }
