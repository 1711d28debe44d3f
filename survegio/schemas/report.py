"""Pydantic schemas for derived statistics and report documents.

None of these are persisted: each is rebuilt from the current response set
whenever it is requested. Field names serialise in camelCase
(``totalResponses``, ``overallAverage``...) since exported reports and API
consumers rely on those names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """Base for report structures: camelCase on the wire, frozen once built."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class QuestionStats(ReportModel):
    """Statistics for a single question.

    Attributes:
        question_id: Question identifier
        question_text: Question text
        response_style: Response style of the owning group
        total_responses: Number of answers to the question
        average: Mean numeric value (rating questions only)
        distribution: Rounded value -> count (rating questions only)
    """
    question_id: int
    question_text: str = ""
    response_style: str = ""
    total_responses: int = 0
    average: Optional[float] = None
    distribution: Optional[dict[str, int]] = None


class QuestionSummary(ReportModel):
    question_text: str
    average: float = 0
    distribution: dict[str, int] = Field(default_factory=dict)
    total_responses: int = 0


class GroupStats(ReportModel):
    """Rating statistics for one question group."""
    group_title: str
    questions: list[QuestionSummary] = Field(default_factory=list)


class ClassEvaluationData(ReportModel):
    """Evaluation results of one class for an instructor report."""
    class_id: int
    section: str = ""
    course_code: str = ""
    course_name: str = ""
    total_respondents: int = 0
    total_students: int = 0
    response_rate: float = 0
    overall_average: float = 0
    question_stats: list[GroupStats] = Field(default_factory=list)
    comments: list[str] = Field(default_factory=list)


class InstructorReportData(ReportModel):
    """Report for one instructor across all their assigned classes."""
    instructor_id: int
    instructor_name: str = ""
    academic_term: str = ""
    total_classes: int = 0
    total_respondents: int = 0
    total_students: int = 0
    overall_average: float = 0
    response_rate: float = 0
    classes: list[ClassEvaluationData] = Field(default_factory=list)


class AnswerDetail(ReportModel):
    group_title: str = ""
    question_text: str = ""
    answer_value: Optional[str] = None
    response_style: str = ""


class ResponseDetail(ReportModel):
    """One respondent's submission, as listed on an office report."""
    student_name: str = ""
    student_number: str = ""
    program: str = ""
    submitted_at: str = ""
    answers: list[AnswerDetail] = Field(default_factory=list)


class OfficeReportData(ReportModel):
    """Report for an office-based survey."""
    office_id: int
    office_name: str = ""
    survey_title: str = ""
    academic_term: str = ""
    total_respondents: int = 0
    total_expected: int = 0
    response_rate: float = 0
    overall_average: float = 0
    question_stats: list[GroupStats] = Field(default_factory=list)
    comments: list[str] = Field(default_factory=list)
    responses: list[ResponseDetail] = Field(default_factory=list)


class InstructorSummary(ReportModel):
    """Per-instructor roll-up shown before drilling into a report."""
    id: int
    name: str = ""
    class_count: int = 0
    response_count: int = 0
    average_rating: float = 0


class ResponseGroup(ReportModel):
    """A partition of responses sharing a classification key."""
    key: str
    response_count: int = 0
    average_rating: float = 0
