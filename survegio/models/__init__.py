"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from survegio.models.database import Base, engine, SessionLocal, get_db
from survegio.models.reference import (
    AcademicTerm,
    ClassEnrollment,
    ClassSection,
    Course,
    Department,
    SchoolOffice,
    Student,
    Teacher,
)
from survegio.models.survey import (
    EvaluationSurvey,
    Question,
    QuestionGroup,
    SurveyClassAssignment,
    SurveyStudentAssignment,
)
from survegio.models.response import StudentSurveyResponse, SurveyAnswer

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "AcademicTerm",
    "ClassEnrollment",
    "ClassSection",
    "Course",
    "Department",
    "SchoolOffice",
    "Student",
    "Teacher",
    "EvaluationSurvey",
    "Question",
    "QuestionGroup",
    "SurveyClassAssignment",
    "SurveyStudentAssignment",
    "StudentSurveyResponse",
    "SurveyAnswer",
]
