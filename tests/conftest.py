"""Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import itertools
import os
from typing import Any, Generator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables for tests BEFORE importing package modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from survegio import models
from survegio.models.database import Base, enforce_sqlite_foreign_keys
from survegio.schemas import (
    AcademicTerm,
    ClassInfo,
    Course,
    QuestionGroup,
    StudentResponse,
    SurveyConfig,
    TeacherInfo,
)
from survegio.schemas.survey import Question

RATING_QUESTION_ID = 101
COMMENT_QUESTION_ID = 201


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine with SQLite in-memory database.

    Yields:
        Engine: SQLAlchemy engine for testing

    Note:
        Uses SQLite in-memory database for fast, isolated tests.
        Database is created fresh for each test function. StaticPool keeps
        one connection so the TestClient's worker thread sees the same data.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,  # Set to True for SQL debugging
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    enforce_sqlite_foreign_keys(engine)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session.

    Args:
        db_engine: Test database engine fixture

    Yields:
        Session: SQLAlchemy session for testing

    Note:
        Session is rolled back after each test to ensure isolation.
    """
    TestSessionLocal = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def sample_term() -> AcademicTerm:
    return AcademicTerm(
        id=1, school_year="2024-2025", semester="1st Semester", status="Active"
    )


@pytest.fixture
def question_groups() -> list[QuestionGroup]:
    """One rating group with a single question and one open-ended group."""
    return [
        QuestionGroup(
            id=1,
            number=1,
            title="Teaching Effectiveness",
            response_style="Rating-Scale Questions",
            questions=[Question(id=RATING_QUESTION_ID, question="Explains lessons clearly", sort=1)],
        ),
        QuestionGroup(
            id=2,
            number=2,
            title="Comments",
            response_style="Open-Ended Question",
            questions=[Question(id=COMMENT_QUESTION_ID, question="Any other comments?", sort=1)],
        ),
    ]


@pytest.fixture
def class_survey(question_groups, sample_term) -> SurveyConfig:
    """Class-based survey over the sample question groups."""
    return SurveyConfig(
        id=5,
        title="Faculty Evaluation",
        academic_term=sample_term,
        evaluation_type="Class",
        student_percentage=100,
        question_groups=question_groups,
    )


@pytest.fixture
def teacher() -> TeacherInfo:
    return TeacherInfo(id=7, first_name="Maria", middle_name="", last_name="Santos")


@pytest.fixture
def scenario_classes(teacher) -> list[ClassInfo]:
    """Classes 10 (20 students) and 11 (10 students), same instructor."""
    return [
        ClassInfo(
            id=10,
            section="A",
            course=Course(id=1, course_code="CS101", course_name="Programming"),
            teacher=teacher,
            student_ids=list(range(1, 21)),
        ),
        ClassInfo(
            id=11,
            section="B",
            course=Course(id=1, course_code="CS101", course_name="Programming"),
            teacher=teacher,
            student_ids=list(range(21, 31)),
        ),
    ]


@pytest.fixture
def make_response():
    """Factory for StudentResponse objects keyed by question id -> raw value."""
    counter = itertools.count(1)

    def _make(
        answers: dict[int, Any],
        class_id: Optional[int] = None,
        year_level: Optional[str] = None,
        student: Any = None,
        survey_id: int = 5,
        submitted_at=None,
    ) -> StudentResponse:
        response_id = next(counter)
        return StudentResponse(
            id=response_id,
            survey_id=survey_id,
            student=student if student is not None else 1000 + response_id,
            class_id=class_id,
            year_level=year_level,
            submitted_at=submitted_at,
            answers=[
                {"question_id": question_id, "answer_value": value}
                for question_id, value in answers.items()
            ],
        )

    return _make


@pytest.fixture
def scenario_responses(make_response) -> list:
    """Class 10: 15 respondents averaging 4.2; class 11: 5 averaging 3.0."""
    responses = []
    for value in ["4"] * 12 + ["5"] * 3:
        responses.append(make_response(
            {RATING_QUESTION_ID: value, COMMENT_QUESTION_ID: "Great class"}, class_id=10
        ))
    for _ in range(5):
        responses.append(make_response(
            {RATING_QUESTION_ID: "3", COMMENT_QUESTION_ID: "  "}, class_id=11
        ))
    return responses


@pytest.fixture
def evaluation_db(db_session) -> Session:
    """Database seeded with a class-based survey (5) and an office survey (8).

    Classes 10 and 11 are taught by instructor 7. Students 1-4 attend
    class 10, students 4-6 attend class 11, student 7 attends nothing.
    Survey 5 has three responses; survey 8 has none and no assignments.
    """
    db_session.add_all([
        models.Department(id=4, program_name="Computer Science", program_code="BSCS"),
        models.Department(id=5, program_name="Information Technology", program_code="BSIT"),
        models.AcademicTerm(id=1, school_year="2024-2025", semester="1st Semester", status="Active"),
        models.AcademicTerm(id=2, school_year="2023-2024", semester="2nd Semester", status="Archived"),
        models.AcademicTerm(id=3, school_year="2025-2026", semester="1st Semester", status="Draft"),
        models.SchoolOffice(id=3, name="Registrar"),
        models.SchoolOffice(id=4, name="Canteen", is_active=False),
        models.SchoolOffice(id=5, name="Library"),
        models.Teacher(id=7, first_name="Maria", last_name="Santos"),
        models.Course(id=1, course_code="CS101", course_name="Programming"),
    ])
    db_session.flush()

    db_session.add_all([
        models.ClassSection(id=10, section="A", course_id=1, teacher_id=7, department_id=4, academic_term_id=1),
        models.ClassSection(id=11, section="B", course_id=1, teacher_id=7, department_id=4, academic_term_id=1),
    ])
    for student_id in range(1, 8):
        db_session.add(models.Student(
            id=student_id,
            student_number=f"2024-{student_id:04d}",
            first_name=f"Student{student_id}",
            last_name="Cruz",
            department_id=4 if student_id % 2 else 5,
            year_level="1st Year" if student_id <= 3 else "2nd Year",
        ))
    db_session.flush()

    enrollments = [(10, 1), (10, 2), (10, 3), (10, 4), (11, 4), (11, 5), (11, 6)]
    db_session.add_all([
        models.ClassEnrollment(class_id=class_id, student_id=student_id)
        for class_id, student_id in enrollments
    ])

    for survey_id, evaluation_type, office_id, percentage, first_question in (
        (5, "Class", None, 100, RATING_QUESTION_ID),
        (8, "Office", 3, 50, 301),
    ):
        survey = models.EvaluationSurvey(
            id=survey_id,
            title=f"{evaluation_type} Evaluation",
            status="Active",
            academic_term_id=1,
            evaluation_type=evaluation_type,
            office_id=office_id,
            assignment_mode="all",
            student_percentage=percentage,
            department_ids=[],
        )
        survey.question_groups = [
            models.QuestionGroup(
                id=first_question,
                number=1,
                title="Teaching Effectiveness",
                response_style="Rating-Scale Questions",
                questions=[models.Question(id=first_question, question="Explains lessons clearly", sort=1)],
            ),
            models.QuestionGroup(
                id=first_question + 100,
                number=2,
                title="Comments",
                response_style="Open-Ended Question",
                questions=[models.Question(id=first_question + 100, question="Any other comments?", sort=1)],
            ),
        ]
        db_session.add(survey)
    db_session.flush()

    for response_id, (student_id, class_id, rating, comment) in enumerate(
        [(1, 10, "5", "Great teacher"), (2, 10, "4", ""), (5, 11, "3", None)], start=1
    ):
        answers = [models.SurveyAnswer(question_id=RATING_QUESTION_ID, answer_value=rating)]
        if comment is not None:
            answers.append(models.SurveyAnswer(question_id=COMMENT_QUESTION_ID, answer_value=comment))
        db_session.add(models.StudentSurveyResponse(
            id=response_id,
            survey_id=5,
            student_id=student_id,
            class_id=class_id,
            year_level="1st Year" if student_id <= 3 else "2nd Year",
            answers=answers,
        ))

    db_session.commit()
    return db_session
