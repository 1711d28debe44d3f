"""Submitted survey responses and their answers.

Responses are append-only: a row is created when a student submits and is
never updated by the evaluation service.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survegio.models.database import Base


class StudentSurveyResponse(Base):
    """A student's submission to an evaluation survey.

    Attributes:
        id: Primary key
        survey_id: Survey answered
        student_id: Respondent
        class_id: Class evaluated (class-based surveys)
        office_id: Office evaluated (office-based surveys)
        submitted_at: Submission timestamp
        year_level: Respondent year level when submitting
        answers: Answers in submission order
    """

    __tablename__ = "student_survey_responses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evaluation_surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id"), nullable=False
    )
    class_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("classes.id"), nullable=True
    )
    office_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("school_offices.id"), nullable=True
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    year_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    student: Mapped["Student"] = relationship("Student")
    answers: Mapped[list["SurveyAnswer"]] = relationship(
        "SurveyAnswer",
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="SurveyAnswer.id",
    )

    __table_args__ = (
        Index("idx_response_survey_class", "survey_id", "class_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<StudentSurveyResponse(id={self.id}, survey_id={self.survey_id}, "
            f"student_id={self.student_id}, class_id={self.class_id})>"
        )


class SurveyAnswer(Base):
    """Raw answer text for one question of a response."""

    __tablename__ = "survey_answers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    response_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("student_survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id"), nullable=False
    )
    answer_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    response: Mapped["StudentSurveyResponse"] = relationship(
        "StudentSurveyResponse", back_populates="answers"
    )
    question: Mapped["Question"] = relationship("Question")
