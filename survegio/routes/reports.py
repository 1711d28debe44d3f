"""Instructor and office report endpoints, as JSON or CSV.

An absent report is a normal outcome (instructor without classes, office
survey whose office is gone, class survey asked for an office report) and
is answered with 404 "no report", distinct from store failures (502).
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from survegio.schemas.report import InstructorReportData, OfficeReportData
from survegio.services.orchestrator import EvaluationOrchestrator
from survegio.services.report_export import instructor_report_csv, office_report_csv
from survegio.routes.dependencies import get_orchestrator, service_errors
from survegio.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/surveys/{survey_id}/reports")

CSV_MEDIA_TYPE = "text/csv"


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _instructor_report(
    orchestrator: EvaluationOrchestrator, survey_id: int, instructor_id: int
) -> InstructorReportData:
    with service_errors():
        report = orchestrator.instructor_report(survey_id, instructor_id)
    if report is None:
        logger.info(f"No report for instructor {instructor_id} in survey {survey_id}")
        raise HTTPException(status_code=404, detail="No report for this instructor")
    return report


def _office_report(orchestrator: EvaluationOrchestrator, survey_id: int) -> OfficeReportData:
    with service_errors():
        report = orchestrator.office_report(survey_id)
    if report is None:
        logger.info(f"No office report for survey {survey_id}")
        raise HTTPException(status_code=404, detail="No office report for this survey")
    return report


@router.get("/instructors/{instructor_id}", response_model=InstructorReportData)
async def instructor_report(
    survey_id: int,
    instructor_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> InstructorReportData:
    """Evaluation report for one instructor across their assigned classes.

    Raises:
        HTTPException: 404 if the survey is unknown or the instructor has
            no assigned class, 502 on store failure
    """
    return _instructor_report(orchestrator, survey_id, instructor_id)


@router.get("/instructors/{instructor_id}/export.csv")
async def instructor_report_export(
    survey_id: int,
    instructor_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> Response:
    report = _instructor_report(orchestrator, survey_id, instructor_id)
    return _csv_response(
        instructor_report_csv(report),
        f"survey-{survey_id}-instructor-{instructor_id}.csv",
    )


@router.get("/office", response_model=OfficeReportData)
async def office_report(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> OfficeReportData:
    """Evaluation report of an office-based survey.

    Raises:
        HTTPException: 404 if the survey is unknown, class-based, or its
            office cannot be resolved; 502 on store failure
    """
    return _office_report(orchestrator, survey_id)


@router.get("/office/export.csv")
async def office_report_export(
    survey_id: int,
    orchestrator: EvaluationOrchestrator = Depends(get_orchestrator)
) -> Response:
    report = _office_report(orchestrator, survey_id)
    return _csv_response(office_report_csv(report), f"survey-{survey_id}-office.csv")
