"""Pydantic schemas for submitted survey responses.

Responses are append-only: created when a student submits, never
changed afterwards. They are read here exactly as the store returns them,
with relation fields normalised through ``Ref``.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from survegio.schemas.reference import SchoolOffice, StudentInfo
from survegio.schemas.refs import Ref, ref_entity
from survegio.schemas.survey import Question


class Answer(BaseModel):
    """A raw answer to one question.

    Attributes:
        id: Answer identifier
        question: Reference to the answered question
        answer_value: Raw text value as submitted
    """
    id: Optional[int] = None
    question: Ref[Question] = Field(
        ..., validation_alias=AliasChoices("question", "question_id")
    )
    answer_value: Optional[str] = None

    @field_validator("answer_value", mode="before")
    @classmethod
    def value_as_text(cls, v):
        """Numbers submitted by older clients are stored as text."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def question_id(self) -> int:
        return self.question.id


class StudentResponse(BaseModel):
    """One student's submission to a survey.

    Attributes:
        id: Response identifier
        survey_id: Survey answered
        student: Respondent reference (populated for response detail)
        class_id: Class evaluated, for class-based surveys
        office: Office evaluated, for office-based surveys
        submitted_at: Submission timestamp
        year_level: Respondent year level at submission time
        answers: Answers in submission order
    """
    id: int
    survey_id: int
    student: Ref[StudentInfo] = Field(
        ..., validation_alias=AliasChoices("student", "student_id")
    )
    class_id: Optional[int] = None
    office: Optional[Ref[SchoolOffice]] = Field(
        None, validation_alias=AliasChoices("office", "office_id")
    )
    submitted_at: Optional[datetime] = None
    year_level: Optional[str] = None
    answers: list[Answer] = Field(default_factory=list)

    @field_validator("class_id", mode="before")
    @classmethod
    def class_as_id(cls, v):
        if isinstance(v, dict):
            return v.get("id")
        return v

    @field_validator("answers", mode="before")
    @classmethod
    def answers_default(cls, v):
        return v or []

    @property
    def respondent(self) -> Optional[StudentInfo]:
        """The populated respondent, or None if only the id is known."""
        return ref_entity(self.student)
