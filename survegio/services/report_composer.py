"""Composition of instructor and office report documents.

Reports are pure functions of the survey configuration, the assigned
classes, the response set and reference metadata. Nothing is cached: each
call walks the full response set again.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from survegio.schemas.reference import (
    AcademicTerm,
    ClassInfo,
    Department,
    SchoolOffice,
)
from survegio.schemas.report import (
    AnswerDetail,
    ClassEvaluationData,
    GroupStats,
    InstructorReportData,
    InstructorSummary,
    OfficeReportData,
    QuestionSummary,
    ResponseDetail,
)
from survegio.schemas.refs import ref_entity
from survegio.schemas.response import StudentResponse
from survegio.schemas.survey import EvaluationType, SurveyConfig
from survegio.services.aggregator import ResponseAggregator, average, distribution
from survegio.services.sampler import Sampler
from survegio.logging_config import get_logger

logger = get_logger(__name__)

SUBMITTED_AT_FORMAT = "%b %d, %Y %I:%M %p"


def response_rate(respondents: int, population: int) -> float:
    """Respondents as a percentage of the population, to two decimals.

    An empty population gives 0.

    Example:
        >>> response_rate(20, 30)
        66.67
    """
    if population <= 0:
        return 0
    return round(respondents / population * 100, 2)


def expected_population(base_population: int, percentage: float) -> int:
    """Students expected to respond: ``ceil(base * percentage / 100)``."""
    return Sampler.target_size(base_population, percentage)


def format_submitted_at(value: Optional[datetime]) -> str:
    """Display form of a submission timestamp, empty when unknown."""
    if value is None:
        return ""
    return value.strftime(SUBMITTED_AT_FORMAT)


@dataclass
class _GroupAggregate:
    groups: list[GroupStats] = field(default_factory=list)
    ratings: list[float] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)


class ReportComposer:
    """Builds report documents for one survey.

    Args:
        survey: Survey configuration
        responses: Every response submitted to the survey
        classes: Classes assigned to the survey, with enrolled students
        academic_terms: Known academic terms, for the term label
        school_offices: Known offices, for office reports
        departments: Known departments, for the respondent's program
        eligible_population: Population size before sampling
        expected_respondents: Expected respondents when the population is
            already a sampled selection; overrides the percentage
        aggregator: Aggregator to use (built from the survey if omitted)
    """

    def __init__(
        self,
        survey: SurveyConfig,
        responses: Sequence[StudentResponse],
        classes: Sequence[ClassInfo] = (),
        academic_terms: Sequence[AcademicTerm] = (),
        school_offices: Sequence[SchoolOffice] = (),
        departments: Sequence[Department] = (),
        eligible_population: int = 0,
        expected_respondents: Optional[int] = None,
        aggregator: Optional[ResponseAggregator] = None
    ):
        self.survey = survey
        self.responses = list(responses)
        self.classes = list(classes)
        self.academic_terms = list(academic_terms)
        self.school_offices = list(school_offices)
        self.departments = {d.id: d for d in departments}
        self.eligible_population = eligible_population
        self.expected_respondents = expected_respondents
        self.aggregator = aggregator or ResponseAggregator(survey.question_groups)

    # Shared header data

    def academic_term_label(self) -> str:
        """``"{schoolYear} - {semester}"`` of the survey's term, or ""."""
        term = ref_entity(self.survey.academic_term)
        if term is None:
            term_id = self.survey.academic_term_id
            term = next((t for t in self.academic_terms if t.id == term_id), None)
        return term.label if term is not None else ""

    @property
    def total_expected(self) -> int:
        if self.expected_respondents is not None:
            return self.expected_respondents
        return expected_population(self.eligible_population, self.survey.student_percentage)

    @property
    def pending_responses(self) -> int:
        """Expected respondents who have not submitted yet."""
        return max(0, self.total_expected - len(self.responses))

    # Class-based reports

    def class_responses(self, class_id: int) -> list[StudentResponse]:
        return [r for r in self.responses if r.class_id == class_id]

    def instructor_classes(self, instructor_id: int) -> list[ClassInfo]:
        return [cls for cls in self.classes if cls.teacher_id == instructor_id]

    def instructors_with_responses(self) -> list[InstructorSummary]:
        """Roll-up per instructor of the assigned classes.

        Only classes whose instructor is populated are counted. The average
        covers every numeric answer within the rating range.
        """
        if self.survey.evaluation_type != EvaluationType.CLASS:
            return []

        summaries: dict[int, dict] = {}
        for cls in self.classes:
            teacher = ref_entity(cls.teacher)
            if teacher is None:
                continue

            entry = summaries.setdefault(teacher.id, {
                "name": teacher.full_name,
                "class_count": 0,
                "response_count": 0,
                "ratings": [],
            })
            class_responses = self.class_responses(cls.id)
            entry["class_count"] += 1
            entry["response_count"] += len(class_responses)
            entry["ratings"].extend(self.aggregator.in_range_ratings(class_responses))

        return [
            InstructorSummary(
                id=teacher_id,
                name=entry["name"],
                class_count=entry["class_count"],
                response_count=entry["response_count"],
                average_rating=average(entry["ratings"]),
            )
            for teacher_id, entry in summaries.items()
        ]

    def instructor_report(self, instructor_id: int) -> Optional[InstructorReportData]:
        """Report for one instructor, or None if they have no assigned class.

        Classes match on the teacher id whether or not the teacher was
        expanded; the name comes from the first expanded teacher and is
        empty when none is. The overall average pools every numeric rating
        answer of every class, so larger classes weigh more than smaller
        ones. Unlike ``instructors_with_responses`` it is not limited to the
        rating range, matching the per-question averages.
        """
        instructor_classes = self.instructor_classes(instructor_id)
        if not instructor_classes:
            logger.info(
                f"No assigned classes for instructor {instructor_id}",
                extra={"instructor_id": instructor_id},
            )
            return None

        instructor_name = ""
        classes: list[ClassEvaluationData] = []
        all_ratings: list[float] = []
        total_respondents = 0
        total_students = 0

        for cls in instructor_classes:
            teacher = ref_entity(cls.teacher)
            if teacher is not None and not instructor_name:
                instructor_name = teacher.full_name

            class_responses = self.class_responses(cls.id)
            aggregate = self._aggregate_groups(class_responses)
            all_ratings.extend(aggregate.ratings)

            total_respondents += len(class_responses)
            total_students += cls.student_count

            course = ref_entity(cls.course)
            classes.append(ClassEvaluationData(
                class_id=cls.id,
                section=cls.section,
                course_code=course.course_code if course else "",
                course_name=course.course_name if course else "",
                total_respondents=len(class_responses),
                total_students=cls.student_count,
                response_rate=response_rate(len(class_responses), cls.student_count),
                overall_average=average(aggregate.ratings),
                question_stats=aggregate.groups,
                comments=aggregate.comments,
            ))

        return InstructorReportData(
            instructor_id=instructor_id,
            instructor_name=instructor_name,
            academic_term=self.academic_term_label(),
            total_classes=len(classes),
            total_respondents=total_respondents,
            total_students=total_students,
            overall_average=average(all_ratings),
            response_rate=response_rate(total_respondents, total_students),
            classes=classes,
        )

    # Office-based reports

    def find_office(self) -> Optional[SchoolOffice]:
        office = ref_entity(self.survey.office)
        if office is not None:
            return office
        office_id = self.survey.office_id
        return next((o for o in self.school_offices if o.id == office_id), None)

    def office_report(self) -> Optional[OfficeReportData]:
        """Report for an office-based survey.

        Returns None for class-based surveys and when the configured
        office cannot be resolved.
        """
        if self.survey.evaluation_type != EvaluationType.OFFICE:
            return None

        office = self.find_office()
        if office is None:
            logger.info(
                f"Office {self.survey.office_id} not found for survey {self.survey.id}",
                extra={"office_id": self.survey.office_id},
            )
            return None

        aggregate = self._aggregate_groups(self.responses)
        total_expected = self.total_expected

        return OfficeReportData(
            office_id=office.id,
            office_name=office.name,
            survey_title=self.survey.title,
            academic_term=self.academic_term_label(),
            total_respondents=len(self.responses),
            total_expected=total_expected,
            response_rate=response_rate(len(self.responses), total_expected),
            overall_average=average(aggregate.ratings),
            question_stats=aggregate.groups,
            comments=aggregate.comments,
            responses=self._response_details(),
        )

    def _response_details(self) -> list[ResponseDetail]:
        details = []
        for response in self.responses:
            student = response.respondent
            # Respondents that were not expanded cannot be listed by name
            if student is None:
                continue

            department = self.departments.get(student.department_id)
            answers = []
            for answer in response.answers:
                group = self.survey.find_group_for_question(answer.question_id)
                question = ref_entity(answer.question) or self.survey.find_question(answer.question_id)
                answers.append(AnswerDetail(
                    group_title=group.title if group else "",
                    question_text=question.question if question else "",
                    answer_value=answer.answer_value,
                    response_style=group.response_style if group else "",
                ))

            details.append(ResponseDetail(
                student_name=student.full_name,
                student_number=student.student_number,
                program=department.name if department else "",
                submitted_at=format_submitted_at(response.submitted_at),
                answers=answers,
            ))
        return details

    def _aggregate_groups(self, responses: Sequence[StudentResponse]) -> _GroupAggregate:
        """Per-group rating statistics plus open-ended comments.

        Groups without rating questions are left out of the statistics;
        their non-blank answers become comments.
        """
        aggregate = _GroupAggregate()

        for group in self.survey.question_groups:
            summaries = []
            for question in group.questions:
                if question.id is None:
                    continue
                answers = self.aggregator.answers_for(question.id, responses)

                if group.is_rating:
                    values = self.aggregator.rating_values(answers)
                    aggregate.ratings.extend(values)
                    summaries.append(QuestionSummary(
                        question_text=question.question,
                        average=average(values),
                        distribution=distribution(values),
                        total_responses=len(values),
                    ))
                elif group.is_open_ended:
                    aggregate.comments.extend(
                        a.answer_value for a in answers
                        if a.answer_value and a.answer_value.strip()
                    )

            if summaries:
                aggregate.groups.append(GroupStats(group_title=group.title, questions=summaries))

        return aggregate
