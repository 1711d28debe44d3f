"""Pydantic schemas for survey assignment relations.

A survey is linked to classes and to students through junction records.
The junction record's own id is an identity that must survive a save for
every member that stays assigned.
"""

from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RelationName(str, Enum):
    """Assignment relations of a survey and their member foreign keys."""
    CLASSES = "classes"
    STUDENTS = "students"

    @property
    def member_key(self) -> str:
        """Foreign key naming the member inside a junction object."""
        return f"{self.value}_id"


class AssignmentEntry(BaseModel):
    """One row of a replace-style assignment write.

    Attributes:
        junction_id: Existing junction record id, None for a new row
        member_id: Class or student id
    """
    junction_id: Optional[int] = None
    member_id: int


class AssignmentMapping(BaseModel):
    """Currently persisted assignment: member id -> junction record id.

    Each member maps to at most one junction record.
    """
    relation: RelationName
    junctions: dict[int, int] = Field(default_factory=dict)

    @classmethod
    def from_rows(cls, relation: RelationName, rows: Iterable[Any]) -> "AssignmentMapping":
        """Build a mapping from junction rows of any shape.

        Rows may be ``AssignmentEntry`` objects, ``{"id", "<fk>"}`` or
        ``{"junction_id", "member_id"}`` dicts, or objects exposing the
        same attributes. Rows without a member or junction id are skipped;
        if a member appears twice the first junction wins.

        Example:
            >>> mapping = AssignmentMapping.from_rows(
            ...     RelationName.CLASSES, [{"id": 90, "classes_id": 10}]
            ... )
            >>> mapping.junctions
            {10: 90}
        """
        junctions: dict[int, int] = {}
        for row in rows:
            junction_id, member_id = _row_ids(row, relation.member_key)
            if junction_id is None or member_id is None:
                continue
            junctions.setdefault(member_id, junction_id)
        return cls(relation=relation, junctions=junctions)

    @property
    def member_ids(self) -> list[int]:
        return list(self.junctions)

    def __len__(self) -> int:
        return len(self.junctions)

    def __contains__(self, member_id: object) -> bool:
        return member_id in self.junctions


def _row_ids(row: Any, member_key: str) -> tuple[Optional[int], Optional[int]]:
    if isinstance(row, AssignmentEntry):
        return row.junction_id, row.member_id
    if isinstance(row, dict):
        get = row.get
    else:
        def get(key):
            return getattr(row, key, None)
    junction_id = get("junction_id")
    if junction_id is None:
        junction_id = get("id")
    member_id = get("member_id")
    if member_id is None:
        member_id = get(member_key)
    return junction_id, member_id


class AssignmentDelta(BaseModel):
    """Difference between a persisted mapping and a desired member set.

    Attributes:
        relation: Relation the delta applies to
        to_keep: (member_id, junction_id) pairs that stay assigned
        to_create: Member ids needing a new junction record
        to_delete: Junction ids of members no longer assigned
    """
    relation: RelationName
    to_keep: list[tuple[int, int]] = Field(default_factory=list)
    to_create: list[int] = Field(default_factory=list)
    to_delete: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the write would not change membership."""
        return not self.to_create and not self.to_delete

    def write_entries(self) -> list[AssignmentEntry]:
        """Entries for the single replace-style write: kept, then created.

        Deletions are implicit; the store drops every existing junction
        not named here.
        """
        entries = [
            AssignmentEntry(junction_id=junction_id, member_id=member_id)
            for member_id, junction_id in self.to_keep
        ]
        entries.extend(AssignmentEntry(member_id=member_id) for member_id in self.to_create)
        return entries


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignmentRequest(_CamelModel):
    """Desired assignment inputs for a save.

    Fields left as None fall back to what is already stored: the current
    class assignment, the survey's department list, or the current student
    assignment.
    """
    class_ids: Optional[list[int]] = Field(
        None, validation_alias=AliasChoices("classIds", "class_ids")
    )
    department_ids: Optional[list[int]] = Field(
        None, validation_alias=AliasChoices("departmentIds", "department_ids")
    )
    student_ids: Optional[list[int]] = Field(
        None, validation_alias=AliasChoices("studentIds", "student_ids")
    )


class RelationSaveSummary(_CamelModel):
    relation: RelationName
    kept: int = 0
    created: int = 0
    deleted: int = 0


class AssignmentSaveSummary(_CamelModel):
    """Outcome of a successful assignment save.

    Attributes:
        survey_id: Survey saved
        eligible_population: Size of the population before sampling
        selected_students: Number of students assigned after sampling
        relations: Per-relation delta counts, in write order
    """
    survey_id: int
    eligible_population: int = 0
    selected_students: int = 0
    relations: list[RelationSaveSummary] = Field(default_factory=list)
