"""Survey assignment and statistics endpoints."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from survegio.schemas.assignment import AssignmentRequest, AssignmentSaveSummary
from survegio.schemas.report import InstructorSummary, QuestionStats, ResponseGroup
from survegio.services.orchestrator import EvaluationOrchestrator
from survegio.routes.dependencies import get_orchestrator, service_errors
from survegio.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/surveys")


@router.post("/{survey_id}/assignments", response_model=AssignmentSaveSummary)
async def save_assignments(
    survey_id: int,
    request: Optional[AssignmentRequest] = Body(None),
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> AssignmentSaveSummary:
    """Resolve, sample and persist the survey's class and student assignments.

    Args:
        survey_id: Survey to save
        request: Desired class, department or student ids; omitted fields
            keep what is already stored

    Returns:
        AssignmentSaveSummary: Population sizes and per-relation delta counts

    Raises:
        HTTPException: 404 if the survey does not exist, 502 if the store
            rejects a read or write

    Example request:
        {"classIds": [10, 11]}
    """
    with service_errors():
        result = orchestrator.save_assignments(survey_id, request)

    if not result.success:
        logger.error(f"Assignment save failed for survey {survey_id}: {result.error}")
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.get("/{survey_id}/stats", response_model=list[QuestionStats])
async def question_stats(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> list[QuestionStats]:
    """Per-question statistics in survey order."""
    with service_errors():
        return orchestrator.question_stats(survey_id)


@router.get("/{survey_id}/year-levels", response_model=list[ResponseGroup])
async def year_levels(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> list[ResponseGroup]:
    """Response counts and averages per year level, standard levels first."""
    with service_errors():
        return orchestrator.responses_by_year_level(survey_id)


@router.get("/{survey_id}/instructors", response_model=list[InstructorSummary])
async def instructors(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> list[InstructorSummary]:
    with service_errors():
        return orchestrator.instructors(survey_id)


@router.get("/{survey_id}/pending")
async def pending_responses(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> dict:
    """Expected respondents who have not submitted yet."""
    with service_errors():
        pending = orchestrator.pending_responses(survey_id)
    return {"surveyId": survey_id, "pendingResponses": pending}
