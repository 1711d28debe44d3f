"""Data-access contract consumed by the evaluation workflows.

The workflows never touch storage directly. They call an object satisfying
``EvaluationDataSource`` and receive ``ServiceResult`` values carrying
either data or a failure flag and message.
"""

from dataclasses import dataclass
from typing import Generic, Mapping, Optional, Protocol, Sequence, TypeVar

from survegio.schemas.assignment import AssignmentEntry, AssignmentMapping, RelationName
from survegio.schemas.reference import (
    AcademicTerm,
    ClassInfo,
    Department,
    SchoolOffice,
    StudentInfo,
)
from survegio.schemas.response import StudentResponse
from survegio.schemas.survey import SurveyConfig

T = TypeVar("T")


class DataSourceError(Exception):
    """Raised when the underlying store fails to read or write."""
    pass


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a collaborator call.

    Attributes:
        success: Whether the call succeeded
        data: Returned data (a safe empty value on failure)
        error: Failure message, None on success
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Optional[T] = None) -> "ServiceResult[T]":
        return cls(success=False, data=data, error=error)


class EvaluationDataSource(Protocol):
    """Operations the evaluation workflows need from a store."""

    def fetch_survey_config(self, survey_id: int) -> ServiceResult[SurveyConfig]:
        """Survey settings and question groups; data is None if missing."""
        ...

    def fetch_students(self, enrolled_only: bool = False) -> ServiceResult[list[StudentInfo]]:
        """Students, optionally only those enrolled in a class."""
        ...

    def fetch_classes(self, class_ids: Optional[Sequence[int]] = None) -> ServiceResult[list[ClassInfo]]:
        """Classes with course, teacher and enrolled students."""
        ...

    def fetch_departments(self) -> ServiceResult[list[Department]]:
        ...

    def fetch_academic_terms(self) -> ServiceResult[list[AcademicTerm]]:
        ...

    def fetch_school_offices(self) -> ServiceResult[list[SchoolOffice]]:
        ...

    def fetch_assignment_mapping(
        self, survey_id: int, relation: RelationName
    ) -> ServiceResult[AssignmentMapping]:
        """Current member -> junction mapping of a survey relation."""
        ...

    def write_assignments(
        self,
        survey_id: int,
        relation: RelationName,
        entries: Sequence[AssignmentEntry],
    ) -> ServiceResult[AssignmentMapping]:
        """Replace a relation's rows in one write.

        Entries with a junction id are kept, entries without one are
        created, and existing junctions not named are deleted. Returns the
        resulting mapping.
        """
        ...

    def write_relations(
        self,
        survey_id: int,
        changes: Mapping[RelationName, Sequence[AssignmentEntry]],
    ) -> ServiceResult[dict[RelationName, AssignmentMapping]]:
        """Replace several relations at once, as ``write_assignments`` does.

        Either every relation in ``changes`` is written or none is.
        """
        ...

    def fetch_responses(self, survey_id: int) -> ServiceResult[list[StudentResponse]]:
        """Responses with answers, respondent and answered question expanded."""
        ...
