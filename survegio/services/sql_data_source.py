"""SQLAlchemy implementation of the evaluation data-access contract.

Reads ORM rows and converts them into the pydantic schemas the workflows
consume. Every failure is rolled back, logged and returned as a failed
``ServiceResult``; nothing raises past this boundary.
"""

from typing import Callable, Mapping, Optional, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from survegio import models, schemas
from survegio.schemas.assignment import AssignmentEntry, AssignmentMapping, RelationName
from survegio.services.data_source import DataSourceError, ServiceResult
from survegio.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

JUNCTION_MODELS = {
    RelationName.CLASSES: models.SurveyClassAssignment,
    RelationName.STUDENTS: models.SurveyStudentAssignment,
}


def _term_schema(term: models.AcademicTerm) -> schemas.AcademicTerm:
    return schemas.AcademicTerm(
        id=term.id,
        school_year=term.school_year,
        semester=term.semester,
        start_date=term.start_date,
        end_date=term.end_date,
        status=term.status,
    )


def _office_schema(office: models.SchoolOffice) -> schemas.SchoolOffice:
    return schemas.SchoolOffice(
        id=office.id,
        name=office.name,
        description=office.description,
        is_active=office.is_active,
    )


def _student_schema(student: models.Student) -> schemas.StudentInfo:
    return schemas.StudentInfo(
        id=student.id,
        student_number=student.student_number,
        first_name=student.first_name,
        middle_name=student.middle_name,
        last_name=student.last_name,
        email=student.email,
        department_id=student.department_id,
        year_level=student.year_level,
        class_ids=[e.class_id for e in student.enrollments],
    )


def _class_schema(cls: models.ClassSection) -> schemas.ClassInfo:
    course = None
    if cls.course is not None:
        course = schemas.Course(
            id=cls.course.id,
            course_code=cls.course.course_code,
            course_name=cls.course.course_name,
        )
    teacher = None
    if cls.teacher is not None:
        teacher = schemas.TeacherInfo(
            id=cls.teacher.id,
            first_name=cls.teacher.first_name,
            middle_name=cls.teacher.middle_name,
            last_name=cls.teacher.last_name,
            position=cls.teacher.position,
            email=cls.teacher.email,
        )
    return schemas.ClassInfo(
        id=cls.id,
        section=cls.section,
        course=course if course is not None else cls.course_id,
        teacher=teacher if teacher is not None else cls.teacher_id,
        department_id=cls.department_id,
        academic_term_id=cls.academic_term_id,
        student_ids=[e.student_id for e in cls.enrollments],
    )


def _survey_schema(survey: models.EvaluationSurvey) -> schemas.SurveyConfig:
    groups = [
        schemas.QuestionGroup(
            id=group.id,
            number=group.number,
            title=group.title,
            response_style=group.response_style,
            questions=[
                schemas.Question(id=q.id, question=q.question, sort=q.sort)
                for q in group.questions
            ],
        )
        for group in survey.question_groups
    ]
    academic_term = (
        _term_schema(survey.academic_term)
        if survey.academic_term is not None else survey.academic_term_id
    )
    office = _office_schema(survey.office) if survey.office is not None else survey.office_id

    return schemas.SurveyConfig(
        id=survey.id,
        title=survey.title,
        instruction=survey.instruction,
        survey_start=survey.survey_start,
        survey_end=survey.survey_end,
        is_active=survey.status,
        academic_term=academic_term,
        evaluation_type=survey.evaluation_type,
        office=office,
        assignment_mode=survey.assignment_mode,
        student_percentage=survey.student_percentage,
        question_groups=groups,
        department_ids=list(survey.department_ids or []),
    )


def _response_schema(response: models.StudentSurveyResponse) -> schemas.StudentResponse:
    return schemas.StudentResponse(
        id=response.id,
        survey_id=response.survey_id,
        student=_student_schema(response.student) if response.student is not None else response.student_id,
        class_id=response.class_id,
        office=response.office_id,
        submitted_at=response.submitted_at,
        year_level=response.year_level,
        answers=[
            schemas.Answer(
                id=answer.id,
                question=(
                    schemas.Question(
                        id=answer.question.id,
                        question=answer.question.question,
                        sort=answer.question.sort,
                    )
                    if answer.question is not None else answer.question_id
                ),
                answer_value=answer.answer_value,
            )
            for answer in response.answers
        ],
    )


class SqlAlchemyDataSource:
    """Evaluation data source backed by a SQLAlchemy session.

    Example:
        >>> source = SqlAlchemyDataSource(db)
        >>> result = source.fetch_responses(survey_id=3)
        >>> if result.success:
        ...     print(len(result.data))
    """

    def __init__(self, db: Session):
        """Initialize data source.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _guarded(self, description: str, operation: Callable[[], T], empty: Optional[T]) -> ServiceResult[T]:
        try:
            return ServiceResult.ok(operation())
        except (SQLAlchemyError, DataSourceError) as e:
            self.db.rollback()
            logger.error(f"Failed to {description}: {e}")
            return ServiceResult.fail(f"Failed to {description}: {e}", data=empty)

    def fetch_survey_config(self, survey_id: int) -> ServiceResult[schemas.SurveyConfig]:
        def load():
            survey = self.db.get(
                models.EvaluationSurvey,
                survey_id,
                options=[
                    selectinload(models.EvaluationSurvey.academic_term),
                    selectinload(models.EvaluationSurvey.office),
                    selectinload(models.EvaluationSurvey.question_groups)
                    .selectinload(models.QuestionGroup.questions),
                ],
            )
            return _survey_schema(survey) if survey is not None else None

        return self._guarded(f"fetch survey {survey_id}", load, None)

    def fetch_students(self, enrolled_only: bool = False) -> ServiceResult[list[schemas.StudentInfo]]:
        def load():
            query = (
                select(models.Student)
                .options(selectinload(models.Student.enrollments))
                .order_by(models.Student.id)
            )
            if enrolled_only:
                query = query.where(models.Student.enrollments.any())
            return [_student_schema(s) for s in self.db.scalars(query)]

        return self._guarded("fetch students", load, [])

    def fetch_classes(
        self, class_ids: Optional[Sequence[int]] = None
    ) -> ServiceResult[list[schemas.ClassInfo]]:
        if class_ids is not None and len(class_ids) == 0:
            return ServiceResult.ok([])

        def load():
            query = (
                select(models.ClassSection)
                .options(
                    selectinload(models.ClassSection.course),
                    selectinload(models.ClassSection.teacher),
                    selectinload(models.ClassSection.enrollments),
                )
                .order_by(models.ClassSection.id)
            )
            if class_ids is not None:
                query = query.where(models.ClassSection.id.in_(list(class_ids)))
            return [_class_schema(c) for c in self.db.scalars(query)]

        return self._guarded("fetch classes", load, [])

    def fetch_departments(self) -> ServiceResult[list[schemas.Department]]:
        def load():
            rows = self.db.scalars(select(models.Department).order_by(models.Department.id))
            return [
                schemas.Department(id=d.id, name=d.program_name, program_code=d.program_code)
                for d in rows
            ]

        return self._guarded("fetch departments", load, [])

    def fetch_academic_terms(self) -> ServiceResult[list[schemas.AcademicTerm]]:
        """Terms ordered Active, Draft, Archived; newest school year first within each."""
        def load():
            terms = [_term_schema(t) for t in self.db.scalars(select(models.AcademicTerm))]
            terms.sort(key=lambda t: t.semester)
            terms.sort(key=lambda t: t.school_year, reverse=True)
            terms.sort(key=lambda t: t.status_rank)
            return terms

        return self._guarded("fetch academic terms", load, [])

    def fetch_school_offices(self) -> ServiceResult[list[schemas.SchoolOffice]]:
        """Offices ordered by name, active ones first."""
        def load():
            rows = self.db.scalars(select(models.SchoolOffice).order_by(models.SchoolOffice.name))
            offices = [_office_schema(o) for o in rows]
            offices.sort(key=lambda o: not o.is_active)
            return offices

        return self._guarded("fetch school offices", load, [])

    def _read_mapping(self, survey_id: int, relation: RelationName) -> AssignmentMapping:
        model = JUNCTION_MODELS[relation]
        rows = self.db.scalars(
            select(model).where(model.survey_id == survey_id).order_by(model.id)
        )
        return AssignmentMapping.from_rows(relation, rows)

    def fetch_assignment_mapping(
        self, survey_id: int, relation: RelationName
    ) -> ServiceResult[AssignmentMapping]:
        return self._guarded(
            f"fetch {relation.value} assignments of survey {survey_id}",
            lambda: self._read_mapping(survey_id, relation),
            AssignmentMapping(relation=relation),
        )

    def _replace_rows(
        self, survey_id: int, relation: RelationName, entries: Sequence[AssignmentEntry]
    ) -> None:
        """Stage a replace-style write of one relation without committing.

        Entries carrying a junction id keep that row, entries without one
        insert a new row, and every other existing row is deleted.
        """
        model = JUNCTION_MODELS[relation]
        member_key = relation.member_key

        existing = {
            row.id: row
            for row in self.db.scalars(select(model).where(model.survey_id == survey_id))
        }
        kept_ids = {e.junction_id for e in entries if e.junction_id is not None}
        unknown = kept_ids - existing.keys()
        if unknown:
            raise DataSourceError(f"Unknown {relation.value} junction ids: {sorted(unknown)}")

        for junction_id, row in existing.items():
            if junction_id not in kept_ids:
                self.db.delete(row)
        # Deletes go first so a re-added member cannot hit the unique constraint
        self.db.flush()

        for entry in entries:
            if entry.junction_id is not None:
                setattr(existing[entry.junction_id], member_key, entry.member_id)
            else:
                self.db.add(model(survey_id=survey_id, **{member_key: entry.member_id}))
        self.db.flush()

    def write_relations(
        self,
        survey_id: int,
        changes: Mapping[RelationName, Sequence[AssignmentEntry]],
    ) -> ServiceResult[dict[RelationName, AssignmentMapping]]:
        """Replace-style write of several relations in a single transaction.

        Relations are staged in the mapping's order and committed together;
        if any of them fails, none of them changes.
        """
        names = ", ".join(relation.value for relation in changes)

        def write():
            if self.db.get(models.EvaluationSurvey, survey_id) is None:
                raise DataSourceError(f"Survey {survey_id} does not exist")

            for relation, entries in changes.items():
                self._replace_rows(survey_id, relation, entries)
            self.db.commit()

            for relation, entries in changes.items():
                logger.info(
                    f"Wrote {len(entries)} {relation.value} assignments for survey {survey_id}",
                    extra={"survey_id": survey_id, "relation": relation.value},
                )
            return {relation: self._read_mapping(survey_id, relation) for relation in changes}

        return self._guarded(f"write {names} assignments of survey {survey_id}", write, None)

    def write_assignments(
        self,
        survey_id: int,
        relation: RelationName,
        entries: Sequence[AssignmentEntry],
    ) -> ServiceResult[AssignmentMapping]:
        """Replace-style write of one relation, committed as one transaction."""
        result = self.write_relations(survey_id, {relation: entries})
        if not result.success:
            return ServiceResult.fail(result.error)
        return ServiceResult.ok(result.data[relation])

    def fetch_responses(self, survey_id: int) -> ServiceResult[list[schemas.StudentResponse]]:
        def load():
            query = (
                select(models.StudentSurveyResponse)
                .where(models.StudentSurveyResponse.survey_id == survey_id)
                .options(
                    selectinload(models.StudentSurveyResponse.student)
                    .selectinload(models.Student.enrollments),
                    selectinload(models.StudentSurveyResponse.answers)
                    .selectinload(models.SurveyAnswer.question),
                )
                .order_by(models.StudentSurveyResponse.id)
            )
            return [_response_schema(r) for r in self.db.scalars(query)]

        return self._guarded(f"fetch responses of survey {survey_id}", load, [])
