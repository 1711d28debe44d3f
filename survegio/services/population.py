"""Resolution of the eligible student population of a survey.

Class-based surveys draw from the students enrolled in the assigned
classes; office-based surveys draw from all enrolled students, the students
of chosen departments, or an explicit list, depending on assignment mode.
"""

from typing import Iterable, Sequence

from survegio.schemas.reference import ClassInfo, StudentInfo
from survegio.schemas.survey import AssignmentMode
from survegio.logging_config import get_logger

logger = get_logger(__name__)


def _unique(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class PopulationResolver:
    """Pure population resolution over already-fetched reference data."""

    @staticmethod
    def class_students(classes: Sequence[ClassInfo], class_ids: Iterable[int]) -> list[int]:
        """Distinct students enrolled in any of the given classes.

        Args:
            classes: Classes with their enrolled student ids
            class_ids: Assigned class ids

        Returns:
            Student ids in class order, each once
        """
        wanted = set(class_ids)
        return _unique(
            student_id
            for cls in classes
            if cls.id in wanted
            for student_id in cls.student_ids
        )

    @staticmethod
    def office_students(
        mode: AssignmentMode,
        students: Sequence[StudentInfo],
        department_ids: Iterable[int] = (),
        specific_ids: Iterable[int] = ()
    ) -> list[int]:
        """Eligible students of an office-based survey.

        Args:
            mode: all (class-enrolled students), department, or specific
            students: Candidate students
            department_ids: Departments for the "department" mode
            specific_ids: Explicit student ids for the "specific" mode

        Returns:
            Eligible student ids, each once
        """
        if mode == AssignmentMode.ALL:
            return _unique(s.id for s in students if s.is_enrolled)

        if mode == AssignmentMode.DEPARTMENT:
            departments = set(department_ids)
            return _unique(
                s.id for s in students
                if s.department_id is not None and s.department_id in departments
            )

        if mode == AssignmentMode.SPECIFIC:
            return _unique(specific_ids)

        logger.warning(f"Unknown assignment mode: {mode}")
        return []
