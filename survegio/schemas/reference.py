"""Pydantic schemas for reference data used by evaluations.

Students, classes, instructors, offices and academic terms are owned by
other parts of the school system; these schemas describe only the fields
the assignment and reporting workflows read.
"""

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from survegio.schemas.refs import Ref


def full_name(*parts: Optional[str]) -> str:
    """Join name parts with single spaces, skipping blanks."""
    return " ".join(p.strip() for p in parts if p and p.strip())


class TermStatus(str, Enum):
    """Lifecycle status of an academic term."""
    ACTIVE = "Active"
    DRAFT = "Draft"
    ARCHIVED = "Archived"


class AcademicTerm(BaseModel):
    """An academic term such as "2024-2025 / 1st Semester".

    Attributes:
        id: Term identifier
        school_year: School year label (e.g., "2024-2025")
        semester: Semester label (e.g., "1st Semester")
        status: Active, Draft or Archived
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int
    school_year: str = Field(..., alias="schoolYear")
    semester: str
    start_date: Optional[date] = Field(None, alias="startDate")
    end_date: Optional[date] = Field(None, alias="endDate")
    status: Optional[str] = None

    @property
    def status_rank(self) -> int:
        """Sort rank: Active, then Draft, then Archived, then anything else."""
        order = {TermStatus.ACTIVE.value: 0, TermStatus.DRAFT.value: 1, TermStatus.ARCHIVED.value: 2}
        return order.get(self.status or "", 3)

    @property
    def label(self) -> str:
        """Display label used on report headers."""
        return f"{self.school_year} - {self.semester}"


class SchoolOffice(BaseModel):
    """A school office evaluated by office-based surveys."""
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool = True


class Department(BaseModel):
    """An academic department, named after its program."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = ""
    program_code: str = Field("", alias="programCode")


class Course(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    course_code: str = Field("", alias="courseCode")
    course_name: str = Field("", alias="courseName")


class TeacherInfo(BaseModel):
    """Instructor fields needed for report headers."""
    id: int
    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    position: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.middle_name, self.last_name)


def _junction_member_ids(value: Any, foreign_key: str) -> Any:
    """Flatten junction rows into member ids.

    Rows may be bare ids or ``{"id": junction, "<foreign_key>": member}``
    objects; objects without the foreign key fall back to ``id``.
    Duplicates are dropped, first occurrence wins.
    """
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)):
        return value

    member_ids: list[int] = []
    for item in value:
        member_id = None
        if isinstance(item, int) and not isinstance(item, bool):
            member_id = item
        elif isinstance(item, dict):
            member_id = item.get(foreign_key) or item.get("id")
        if member_id is not None and member_id not in member_ids:
            member_ids.append(member_id)
    return member_ids


class StudentInfo(BaseModel):
    """A student as seen by population resolution and response detail.

    Attributes:
        id: Student identifier
        student_number: School-issued student number
        department_id: Department the student belongs to
        year_level: Year level label (e.g., "2nd Year")
        class_ids: Classes the student is enrolled in
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int
    student_number: str = ""
    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    email: Optional[str] = None
    department_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("department_id", "deparment_id")
    )
    year_level: Optional[str] = None
    class_ids: list[int] = Field(
        default_factory=list, validation_alias=AliasChoices("class_ids", "class_id")
    )

    @field_validator("department_id", mode="before")
    @classmethod
    def department_as_id(cls, v):
        """Accept a populated department object."""
        if isinstance(v, dict):
            return v.get("id")
        return v

    @field_validator("class_ids", mode="before")
    @classmethod
    def normalize_class_ids(cls, v):
        return _junction_member_ids(v, "classes_id")

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.middle_name, self.last_name)

    @property
    def is_enrolled(self) -> bool:
        """Whether the student is enrolled in at least one class."""
        return bool(self.class_ids)


class ClassInfo(BaseModel):
    """A class section with its instructor and enrolled students.

    Attributes:
        id: Class identifier
        section: Section label
        course: Course reference (populated for reports)
        teacher: Instructor reference (populated for reports)
        student_ids: Enrolled student ids, deduplicated
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int
    section: str = ""
    course: Optional[Ref[Course]] = Field(
        None, validation_alias=AliasChoices("course", "course_id")
    )
    teacher: Optional[Ref[TeacherInfo]] = Field(
        None, validation_alias=AliasChoices("teacher", "teacher_id")
    )
    department_id: Optional[int] = None
    academic_term_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("academic_term_id", "acadTerm_id")
    )
    student_ids: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("student_ids", "student_id", "students"),
    )

    @field_validator("department_id", "academic_term_id", mode="before")
    @classmethod
    def relation_as_id(cls, v):
        if isinstance(v, dict):
            return v.get("id")
        return v

    @field_validator("student_ids", mode="before")
    @classmethod
    def normalize_student_ids(cls, v):
        return _junction_member_ids(v, "students_id")

    @property
    def student_count(self) -> int:
        """Number of distinct students enrolled."""
        return len(self.student_ids)

    @property
    def teacher_id(self) -> Optional[int]:
        return self.teacher.id if self.teacher is not None else None
