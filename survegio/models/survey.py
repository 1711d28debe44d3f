"""Evaluation survey models and their assignment junctions.

A survey owns ordered question groups and two assignment relations
(classes and students). Junction rows carry their own id, which is kept
for every member that stays assigned across a save.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survegio.models.database import Base
from survegio.models.reference import AcademicTerm, SchoolOffice


class EvaluationSurvey(Base):
    """Student evaluation survey.

    Attributes:
        id: Primary key, also the sampling seed
        title: Survey title
        status: Draft, Active or Archived
        evaluation_type: "Class" (instructors) or "Office"
        assignment_mode: all, department or specific (office surveys)
        student_percentage: Share of the eligible population assigned
        department_ids: Departments used by the "department" mode
    """

    __tablename__ = "evaluation_surveys"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False, default="")
    survey_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    survey_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Draft")

    academic_term_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("academic_terms.id"), nullable=True
    )
    evaluation_type: Mapped[str] = mapped_column(String(20), nullable=False, default="Class")
    office_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("school_offices.id"), nullable=True
    )
    assignment_mode: Mapped[str] = mapped_column(String(20), nullable=False, default="all")
    student_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    department_ids: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        server_default=text("'[]'"),
        comment="Departments assigned in department mode"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    academic_term: Mapped[Optional["AcademicTerm"]] = relationship("AcademicTerm")
    office: Mapped[Optional["SchoolOffice"]] = relationship("SchoolOffice")
    question_groups: Mapped[list["QuestionGroup"]] = relationship(
        "QuestionGroup",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="QuestionGroup.number",
    )
    class_assignments: Mapped[list["SurveyClassAssignment"]] = relationship(
        "SurveyClassAssignment",
        cascade="all, delete-orphan",
    )
    student_assignments: Mapped[list["SurveyStudentAssignment"]] = relationship(
        "SurveyStudentAssignment",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<EvaluationSurvey(id={self.id}, title={self.title}, "
            f"evaluation_type={self.evaluation_type})>"
        )


class QuestionGroup(Base):
    """Titled section of a survey; all its questions share a response style."""

    __tablename__ = "question_groups"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evaluation_surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    response_style: Mapped[str] = mapped_column(String(50), nullable=False)

    survey: Mapped["EvaluationSurvey"] = relationship("EvaluationSurvey", back_populates="question_groups")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Question.sort",
    )


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("question_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    sort: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    group: Mapped["QuestionGroup"] = relationship("QuestionGroup", back_populates="questions")


class SurveyClassAssignment(Base):
    """Junction row assigning a class to a survey."""

    __tablename__ = "survey_class_assignments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evaluation_surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    classes_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("survey_id", "classes_id", name="uq_survey_class"),
    )

    def __repr__(self) -> str:
        return f"<SurveyClassAssignment(id={self.id}, survey_id={self.survey_id}, classes_id={self.classes_id})>"


class SurveyStudentAssignment(Base):
    """Junction row assigning a student to a survey."""

    __tablename__ = "survey_student_assignments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evaluation_surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    students_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("survey_id", "students_id", name="uq_survey_student"),
    )

    def __repr__(self) -> str:
        return f"<SurveyStudentAssignment(id={self.id}, survey_id={self.survey_id}, students_id={self.students_id})>"
