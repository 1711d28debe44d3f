"""Pydantic schemas for data validation.

This package contains the Pydantic models for survey configuration,
reference data, responses, assignment relations and report documents.
"""

from survegio.schemas.refs import Ref, ref_id, ref_entity
from survegio.schemas.reference import (
    AcademicTerm,
    ClassInfo,
    Course,
    Department,
    SchoolOffice,
    StudentInfo,
    TeacherInfo,
)
from survegio.schemas.survey import (
    AssignmentMode,
    EvaluationType,
    Question,
    QuestionGroup,
    ResponseStyle,
    SurveyConfig,
    SurveyStatus,
)
from survegio.schemas.response import Answer, StudentResponse
from survegio.schemas.assignment import (
    AssignmentDelta,
    AssignmentEntry,
    AssignmentMapping,
    AssignmentRequest,
    AssignmentSaveSummary,
    RelationName,
)
from survegio.schemas.report import (
    ClassEvaluationData,
    GroupStats,
    InstructorReportData,
    InstructorSummary,
    OfficeReportData,
    QuestionStats,
    ResponseGroup,
)

__all__ = [
    "Ref",
    "ref_id",
    "ref_entity",
    "AcademicTerm",
    "ClassInfo",
    "Course",
    "Department",
    "SchoolOffice",
    "StudentInfo",
    "TeacherInfo",
    "AssignmentMode",
    "EvaluationType",
    "Question",
    "QuestionGroup",
    "ResponseStyle",
    "SurveyConfig",
    "SurveyStatus",
    "Answer",
    "StudentResponse",
    "AssignmentDelta",
    "AssignmentEntry",
    "AssignmentMapping",
    "AssignmentRequest",
    "AssignmentSaveSummary",
    "RelationName",
    "ClassEvaluationData",
    "GroupStats",
    "InstructorReportData",
    "InstructorSummary",
    "OfficeReportData",
    "QuestionStats",
    "ResponseGroup",
]
