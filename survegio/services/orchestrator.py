"""Evaluation orchestrator for assignment saves and report requests.

This module coordinates the data source, population resolution, sampling,
relation synchronisation, aggregation and report composition. It holds no
state between calls: every operation loads what it needs from the data
source and derives its result from scratch.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from survegio.schemas.assignment import (
    AssignmentDelta,
    AssignmentMapping,
    AssignmentRequest,
    AssignmentSaveSummary,
    RelationName,
    RelationSaveSummary,
)
from survegio.schemas.report import (
    InstructorReportData,
    InstructorSummary,
    OfficeReportData,
    QuestionStats,
    ResponseGroup,
)
from survegio.schemas.survey import AssignmentMode, SurveyConfig
from survegio.services.aggregator import ResponseAggregator
from survegio.services.data_source import (
    DataSourceError,
    EvaluationDataSource,
    ServiceResult,
)
from survegio.services.population import PopulationResolver
from survegio.services.relation_sync import RelationSynchronizer
from survegio.services.report_composer import ReportComposer
from survegio.services.sampler import Sampler
from survegio.logging_config import SurveyContextFilter, get_logger

logger = get_logger(__name__)


class SurveyNotFoundError(Exception):
    """Raised when a survey's configuration cannot be found."""
    pass


def _require(result: ServiceResult, description: str):
    """Unwrap a collaborator result, raising DataSourceError on failure."""
    if not result.success:
        logger.error(f"Failed to {description}: {result.error}")
        raise DataSourceError(result.error or f"Failed to {description}")
    return result.data


@contextmanager
def survey_log_context(survey_id: int) -> Iterator[None]:
    """Stamp ``survey_id`` on every record this module logs inside the block."""
    context_filter = SurveyContextFilter(survey_id)
    logger.addFilter(context_filter)
    try:
        yield
    finally:
        logger.removeFilter(context_filter)


class EvaluationOrchestrator:
    """Top-level evaluation workflows over an injected data source.

    The orchestrator decides which population strategy applies to a survey,
    then runs population resolution, sampling, diffing and the write strictly
    in that order. Reports and statistics are recomputed from the full
    response set on every call.

    Example:
        >>> orchestrator = EvaluationOrchestrator(SqlAlchemyDataSource(db))
        >>> result = orchestrator.save_assignments(5, AssignmentRequest(class_ids=[10, 11]))
        >>> result.success
        True
    """

    def __init__(self, data_source: EvaluationDataSource):
        """Initialize orchestrator.

        Args:
            data_source: Store implementing the EvaluationDataSource protocol
        """
        self.data_source = data_source

    # Loading

    def load_survey(self, survey_id: int) -> SurveyConfig:
        """Load survey configuration.

        Raises:
            SurveyNotFoundError: If the survey does not exist
            DataSourceError: If the data source fails
        """
        survey = _require(
            self.data_source.fetch_survey_config(survey_id), f"load survey {survey_id}"
        )
        if survey is None:
            raise SurveyNotFoundError(f"Survey not found: {survey_id}")
        return survey

    def _mapping(self, survey_id: int, relation: RelationName) -> AssignmentMapping:
        return _require(
            self.data_source.fetch_assignment_mapping(survey_id, relation),
            f"load {relation.value} assignments",
        )

    @staticmethod
    def keeps_stored_students(survey: SurveyConfig, request: Optional[AssignmentRequest] = None) -> bool:
        """Whether the stored student assignment is already the final selection.

        An office survey in "specific" mode saved without an explicit list
        has no base list to sample from: its stored assignment was sampled
        when the list was last supplied, so it is kept as it is.
        """
        request = request or AssignmentRequest()
        return (
            not survey.is_class_based
            and survey.assignment_mode == AssignmentMode.SPECIFIC
            and request.student_ids is None
        )

    def eligible_population(
        self,
        survey: SurveyConfig,
        request: Optional[AssignmentRequest] = None
    ) -> list[int]:
        """Student ids a survey could be assigned to before sampling.

        Request fields left as None fall back to the stored state: the
        current class assignment or the survey's department list. In
        "specific" mode without a list, the stored student assignment is
        returned (see ``keeps_stored_students``).

        Args:
            survey: Survey configuration
            request: Desired assignment inputs, if a save is in progress

        Returns:
            Distinct student ids

        Raises:
            DataSourceError: If the data source fails
        """
        request = request or AssignmentRequest()

        if survey.is_class_based:
            class_ids = request.class_ids
            if class_ids is None:
                class_ids = self._mapping(survey.id, RelationName.CLASSES).member_ids
            classes = _require(self.data_source.fetch_classes(class_ids), "load classes")
            return PopulationResolver.class_students(classes, class_ids)

        mode = survey.assignment_mode
        if mode == AssignmentMode.SPECIFIC:
            specific_ids = request.student_ids
            if specific_ids is None:
                specific_ids = self._mapping(survey.id, RelationName.STUDENTS).member_ids
            return PopulationResolver.office_students(mode, [], specific_ids=specific_ids)

        department_ids = request.department_ids
        if department_ids is None:
            department_ids = survey.department_ids
        students = _require(
            self.data_source.fetch_students(enrolled_only=mode == AssignmentMode.ALL),
            "load students",
        )
        return PopulationResolver.office_students(mode, students, department_ids=department_ids)

    # Assignment save

    def save_assignments(
        self,
        survey_id: int,
        request: Optional[AssignmentRequest] = None
    ) -> ServiceResult[AssignmentSaveSummary]:
        """Resolve, sample and persist a survey's assignments.

        Class-based surveys write the sampled students of the assigned
        classes and re-synchronise the class relation itself. Office-based
        surveys write only the student relation. All deltas are computed in
        memory first, then every non-empty one is written in a single
        data source call, so a failed save leaves both relations as they were.

        Args:
            survey_id: Survey to save (also the sampling seed)
            request: Desired classes, departments or students

        Returns:
            ServiceResult with an AssignmentSaveSummary, or a failure
            carrying the data source's message

        Raises:
            SurveyNotFoundError: If the survey does not exist
        """
        request = request or AssignmentRequest()

        with survey_log_context(survey_id):
            logger.info(f"Saving assignments for survey {survey_id}")
            try:
                survey = self.load_survey(survey_id)
                population = self.eligible_population(survey, request)
                if self.keeps_stored_students(survey, request):
                    selected = population
                    logger.info(f"Keeping the {len(selected)} stored specific students")
                else:
                    selected = Sampler.select(population, survey.student_percentage, seed=survey.id)
                    logger.info(
                        f"Selected {len(selected)} of {len(population)} eligible students "
                        f"at {survey.student_percentage}%"
                    )

                deltas = [
                    RelationSynchronizer.diff(
                        self._mapping(survey.id, RelationName.STUDENTS), selected
                    )
                ]
                if survey.is_class_based:
                    class_mapping = self._mapping(survey.id, RelationName.CLASSES)
                    class_ids = request.class_ids
                    if class_ids is None:
                        class_ids = class_mapping.member_ids
                    deltas.append(RelationSynchronizer.diff(class_mapping, class_ids))
            except DataSourceError as e:
                return ServiceResult.fail(str(e))

            result = self._write(survey.id, deltas)
            if not result.success:
                return ServiceResult.fail(result.error or "Assignment write failed")

            logger.info(f"Saved assignments for survey {survey_id}")
            return ServiceResult.ok(AssignmentSaveSummary(
                survey_id=survey.id,
                eligible_population=len(population),
                selected_students=len(selected),
                relations=[
                    RelationSaveSummary(
                        relation=delta.relation,
                        kept=len(delta.to_keep),
                        created=len(delta.to_create),
                        deleted=len(delta.to_delete),
                    )
                    for delta in deltas
                ],
            ))

    def _write(self, survey_id: int, deltas: list[AssignmentDelta]) -> ServiceResult:
        changes = {}
        for delta in deltas:
            relation = delta.relation.value
            logger.info(
                f"Syncing {relation}: keep={len(delta.to_keep)} "
                f"create={len(delta.to_create)} delete={len(delta.to_delete)}",
                extra={"relation": relation},
            )
            if not delta.is_empty:
                changes[delta.relation] = delta.write_entries()

        if not changes:
            return ServiceResult.ok()

        result = self.data_source.write_relations(survey_id, changes)
        if not result.success:
            logger.error(f"Failed to write assignments: {result.error}")
        return result

    # Statistics and reports

    def composer(self, survey_id: int) -> ReportComposer:
        """Build a ReportComposer over the survey's current data.

        Raises:
            SurveyNotFoundError: If the survey does not exist
            DataSourceError: If the data source fails
        """
        with survey_log_context(survey_id):
            logger.info(f"Loading report data for survey {survey_id}")
            survey = self.load_survey(survey_id)
            responses = _require(self.data_source.fetch_responses(survey_id), "load responses")
            terms = _require(self.data_source.fetch_academic_terms(), "load academic terms")

            classes = []
            offices = []
            departments = []
            expected = None
            if survey.is_class_based:
                class_ids = self._mapping(survey_id, RelationName.CLASSES).member_ids
                classes = _require(self.data_source.fetch_classes(class_ids), "load classes")
                eligible = len(PopulationResolver.class_students(classes, class_ids))
            else:
                offices = _require(self.data_source.fetch_school_offices(), "load school offices")
                departments = _require(self.data_source.fetch_departments(), "load departments")
                eligible = len(self.eligible_population(survey))
                if self.keeps_stored_students(survey):
                    expected = eligible

            logger.info(f"Loaded {len(responses)} responses, eligible population {eligible}")
            return ReportComposer(
                survey,
                responses,
                classes=classes,
                academic_terms=terms,
                school_offices=offices,
                departments=departments,
                eligible_population=eligible,
                expected_respondents=expected,
            )

    def _survey_and_responses(self, survey_id: int):
        survey = self.load_survey(survey_id)
        responses = _require(self.data_source.fetch_responses(survey_id), "load responses")
        return survey, responses

    def question_stats(self, survey_id: int) -> list[QuestionStats]:
        """Per-question statistics over every response to the survey."""
        survey, responses = self._survey_and_responses(survey_id)
        return ResponseAggregator(survey.question_groups).question_stats(responses)

    def responses_by_year_level(self, survey_id: int) -> list[ResponseGroup]:
        """Response counts and in-range averages per year level."""
        survey, responses = self._survey_and_responses(survey_id)
        partitions = ResponseAggregator(survey.question_groups).responses_by_year_level(responses)
        return [
            ResponseGroup(
                key=key,
                response_count=len(partition.responses),
                average_rating=partition.average_rating,
            )
            for key, partition in partitions.items()
        ]

    def instructors(self, survey_id: int) -> list[InstructorSummary]:
        return self.composer(survey_id).instructors_with_responses()

    def instructor_report(self, survey_id: int, instructor_id: int) -> Optional[InstructorReportData]:
        """Instructor report, or None when the instructor has no assigned class."""
        return self.composer(survey_id).instructor_report(instructor_id)

    def office_report(self, survey_id: int) -> Optional[OfficeReportData]:
        """Office report, or None for class-based surveys and unknown offices."""
        return self.composer(survey_id).office_report()

    def pending_responses(self, survey_id: int) -> int:
        """Expected respondents who have not submitted yet."""
        return self.composer(survey_id).pending_responses
