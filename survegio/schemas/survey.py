"""Pydantic schemas for evaluation survey configuration.

A survey is an ordered sequence of question groups, each with a single
response style, plus the settings that decide who is asked to answer it.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from survegio.config import get_settings
from survegio.schemas.reference import AcademicTerm, SchoolOffice
from survegio.schemas.refs import Ref, ref_id


class ResponseStyle(str, Enum):
    """Response styles a question group can use."""
    RATING_SCALE = "Rating-Scale Questions"
    OPEN_ENDED = "Open-Ended Question"


# Offered when the store does not publish its own list of styles
DEFAULT_RESPONSE_STYLE_OPTIONS = [
    {"title": style.value, "value": style.value} for style in ResponseStyle
]


def _style_key(style: Any) -> str:
    if isinstance(style, ResponseStyle):
        style = style.value
    return "".join(ch for ch in str(style or "").lower() if ch.isalpha())


def is_rating_style(style: Any) -> bool:
    """Check whether a stored response style label means rating-scale.

    Example:
        >>> is_rating_style("Rating-Scale Questions")
        True
        >>> is_rating_style("rating")
        True
    """
    return _style_key(style).startswith("rating")


def is_open_ended_style(style: Any) -> bool:
    """Check whether a stored response style label means open-ended."""
    key = _style_key(style)
    return key.startswith("openended") or key == "open"


class EvaluationType(str, Enum):
    """Who is being evaluated: instructors through classes, or an office."""
    CLASS = "Class"
    OFFICE = "Office"


class AssignmentMode(str, Enum):
    """How office-based surveys choose their eligible students."""
    ALL = "all"
    DEPARTMENT = "department"
    SPECIFIC = "specific"


class SurveyStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    ARCHIVED = "Archived"


def clamp_percentage(value: Any, default: Optional[float] = None) -> float:
    """Coerce a percentage into [0, 100].

    Unparseable values fall back to ``default`` (the configured default
    student percentage when omitted). Never raises.

    Example:
        >>> clamp_percentage(150)
        100.0
        >>> clamp_percentage("-3")
        0.0
    """
    if default is None:
        default = get_settings().default_student_percentage
    try:
        number = float(value)
    except (TypeError, ValueError):
        return float(default)
    if math.isnan(number):
        return float(default)
    return min(100.0, max(0.0, number))


class Question(BaseModel):
    """A single question within a question group.

    Attributes:
        id: Question identifier (None for questions not yet saved)
        question: Question text
        sort: Position within its group
    """
    id: Optional[int] = None
    question: str = ""
    sort: Optional[int] = None


class QuestionGroup(BaseModel):
    """An ordered, titled section of questions sharing one response style.

    Attributes:
        id: Group identifier
        number: Position of the group in the survey
        title: Section title shown on reports
        response_style: Stored response style label
        questions: Questions in display order
    """
    id: Optional[int] = None
    number: int = 0
    title: str = ""
    response_style: str = ResponseStyle.RATING_SCALE.value
    questions: list[Question] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def questions_default(cls, v):
        return v or []

    @property
    def is_rating(self) -> bool:
        return is_rating_style(self.response_style)

    @property
    def is_open_ended(self) -> bool:
        return is_open_ended_style(self.response_style)

    def question_ids(self) -> set[int]:
        return {q.id for q in self.questions if q.id is not None}


class SurveyConfig(BaseModel):
    """Complete configuration of an evaluation survey.

    Attributes:
        id: Survey identifier (also the sampling seed)
        title: Survey title
        evaluation_type: Class- or office-based evaluation
        assignment_mode: Office population strategy (all/department/specific)
        student_percentage: Share of the eligible population to assign, 0-100
        question_groups: Ordered question groups
        academic_term: Term reference, populated or id-only
        office: Office reference for office-based surveys
        department_ids: Departments used by the "department" assignment mode
    """
    id: int
    title: str = ""
    instruction: str = ""
    survey_start: Optional[datetime] = None
    survey_end: Optional[datetime] = None
    is_active: SurveyStatus = SurveyStatus.DRAFT
    academic_term: Optional[Ref[AcademicTerm]] = Field(
        None, validation_alias=AliasChoices("academic_term", "academic_term_id")
    )
    evaluation_type: EvaluationType = EvaluationType.CLASS
    office: Optional[Ref[SchoolOffice]] = Field(
        None, validation_alias=AliasChoices("office", "office_id")
    )
    assignment_mode: AssignmentMode = AssignmentMode.ALL
    student_percentage: float = 100
    question_groups: list[QuestionGroup] = Field(
        default_factory=list,
        validation_alias=AliasChoices("question_groups", "question_group"),
    )
    department_ids: list[int] = Field(default_factory=list)

    @field_validator("student_percentage", mode="before")
    @classmethod
    def percentage_in_range(cls, v):
        """Clamp malformed percentages instead of rejecting the survey."""
        return clamp_percentage(v)

    @field_validator("question_groups", "department_ids", mode="before")
    @classmethod
    def list_default(cls, v):
        return v or []

    @property
    def academic_term_id(self) -> Optional[int]:
        return ref_id(self.academic_term)

    @property
    def office_id(self) -> Optional[int]:
        return ref_id(self.office)

    @property
    def is_class_based(self) -> bool:
        return self.evaluation_type == EvaluationType.CLASS

    def find_group_for_question(self, question_id: Optional[int]) -> Optional[QuestionGroup]:
        """Get the group owning a question.

        Args:
            question_id: Question identifier

        Returns:
            QuestionGroup if found, None otherwise
        """
        if question_id is None:
            return None
        for group in self.question_groups:
            if question_id in group.question_ids():
                return group
        return None

    def find_question(self, question_id: Optional[int]) -> Optional[Question]:
        group = self.find_group_for_question(question_id)
        if group is None:
            return None
        for question in group.questions:
            if question.id == question_id:
                return question
        return None
