"""Unit tests for the evaluation orchestrator over an in-memory data source."""

import itertools
from typing import Optional, Sequence

import pytest

from survegio.schemas import (
    AssignmentMapping,
    AssignmentRequest,
    ClassInfo,
    RelationName,
    SchoolOffice,
    StudentInfo,
    SurveyConfig,
)
from survegio.schemas.assignment import AssignmentEntry
from survegio.services.data_source import ServiceResult
from survegio.services.orchestrator import EvaluationOrchestrator, SurveyNotFoundError
from survegio.services.sampler import Sampler


class FakeDataSource:
    """In-memory EvaluationDataSource recording every write."""

    def __init__(self, surveys=(), students=(), classes=(), responses=(), offices=()):
        self.surveys = {s.id: s for s in surveys}
        self.students = list(students)
        self.classes = list(classes)
        self.responses = list(responses)
        self.offices = list(offices)
        self.junctions: dict[tuple[int, RelationName], dict[int, int]] = {}
        self.writes: list[tuple[int, RelationName, list[AssignmentEntry]]] = []
        self.fail_writes = False
        self.rejected_relation: Optional[RelationName] = None
        self.fail_reads = False
        self._ids = itertools.count(1000)

    def fetch_survey_config(self, survey_id: int):
        if self.fail_reads:
            return ServiceResult.fail("store unreachable")
        return ServiceResult.ok(self.surveys.get(survey_id))

    def fetch_students(self, enrolled_only: bool = False):
        students = [s for s in self.students if s.is_enrolled or not enrolled_only]
        return ServiceResult.ok(students)

    def fetch_classes(self, class_ids: Optional[Sequence[int]] = None):
        if class_ids is None:
            return ServiceResult.ok(list(self.classes))
        return ServiceResult.ok([c for c in self.classes if c.id in class_ids])

    def fetch_departments(self):
        return ServiceResult.ok([])

    def fetch_academic_terms(self):
        return ServiceResult.ok([])

    def fetch_school_offices(self):
        return ServiceResult.ok(list(self.offices))

    def fetch_assignment_mapping(self, survey_id: int, relation: RelationName):
        junctions = self.junctions.get((survey_id, relation), {})
        return ServiceResult.ok(AssignmentMapping(relation=relation, junctions=dict(junctions)))

    def write_relations(self, survey_id: int, changes):
        """Apply every relation or none, like a single transaction."""
        if self.fail_writes or self.rejected_relation in changes:
            return ServiceResult.fail("write rejected")

        mappings = {}
        for relation, entries in changes.items():
            self.writes.append((survey_id, relation, list(entries)))
            junctions = {}
            for entry in entries:
                junctions[entry.member_id] = entry.junction_id or next(self._ids)
            self.junctions[(survey_id, relation)] = junctions
            mappings[relation] = AssignmentMapping(relation=relation, junctions=junctions)
        return ServiceResult.ok(mappings)

    def write_assignments(self, survey_id: int, relation: RelationName, entries):
        result = self.write_relations(survey_id, {relation: entries})
        if not result.success:
            return result
        return ServiceResult.ok(result.data[relation])

    def fetch_responses(self, survey_id: int):
        return ServiceResult.ok([r for r in self.responses if r.survey_id == survey_id])


@pytest.fixture
def enrolled_students() -> list[StudentInfo]:
    students = [StudentInfo(id=i, department_id=4 if i % 2 else 5, class_ids=[10]) for i in range(1, 13)]
    students.append(StudentInfo(id=50, department_id=4))
    return students


def office_survey(**overrides) -> SurveyConfig:
    data = {
        "id": 8,
        "title": "Library Survey",
        "evaluation_type": "Office",
        "office": 3,
        "assignment_mode": "all",
        "student_percentage": 100,
    }
    data.update(overrides)
    return SurveyConfig.model_validate(data)


class TestOfficeSave:
    """Tests for office-based assignment saves."""

    def test_all_mode_full_percentage_selects_every_enrolled_student(self, enrolled_students):
        """Test that 100% in mode "all" assigns every class-enrolled student."""
        source = FakeDataSource(surveys=[office_survey()], students=enrolled_students)

        result = EvaluationOrchestrator(source).save_assignments(8)

        assert result.success
        assert result.data.eligible_population == 12
        assert result.data.selected_students == 12
        assigned = set(source.junctions[(8, RelationName.STUDENTS)])
        assert assigned == set(range(1, 13))

    def test_second_save_is_a_no_op(self, enrolled_students):
        """Test that re-saving unchanged inputs produces no creates or deletes."""
        source = FakeDataSource(surveys=[office_survey(student_percentage=50)], students=enrolled_students)
        orchestrator = EvaluationOrchestrator(source)

        first = orchestrator.save_assignments(8)
        junctions_after_first = dict(source.junctions[(8, RelationName.STUDENTS)])
        second = orchestrator.save_assignments(8)

        assert first.data.relations[0].created == 6
        relation = second.data.relations[0]
        assert relation.created == 0
        assert relation.deleted == 0
        assert relation.kept == 6
        assert len(source.writes) == 1
        assert source.junctions[(8, RelationName.STUDENTS)] == junctions_after_first

    def test_department_mode_uses_survey_departments(self, enrolled_students):
        """Test that stored department ids apply when the request omits them."""
        survey = office_survey(assignment_mode="department", department_ids=[4])
        source = FakeDataSource(surveys=[survey], students=enrolled_students)

        result = EvaluationOrchestrator(source).save_assignments(8)

        assert set(source.junctions[(8, RelationName.STUDENTS)]) == {1, 3, 5, 7, 9, 11, 50}
        assert result.data.eligible_population == 7

    def test_department_mode_request_overrides(self, enrolled_students):
        survey = office_survey(assignment_mode="department", department_ids=[4])
        source = FakeDataSource(surveys=[survey], students=enrolled_students)

        EvaluationOrchestrator(source).save_assignments(8, AssignmentRequest(department_ids=[5]))

        assert set(source.junctions[(8, RelationName.STUDENTS)]) == {2, 4, 6, 8, 10, 12}

    def test_specific_mode_samples_explicit_list(self):
        """Test sampling of an explicit student list with the survey id as seed."""
        source = FakeDataSource(surveys=[office_survey(assignment_mode="specific", student_percentage=50)])

        result = EvaluationOrchestrator(source).save_assignments(
            8, AssignmentRequest(student_ids=[21, 22, 23, 24])
        )

        expected = set(Sampler.select([21, 22, 23, 24], 50, seed=8))
        assert set(source.junctions[(8, RelationName.STUDENTS)]) == expected
        assert result.data.selected_students == 2

    def test_specific_mode_resave_keeps_stored_selection(self):
        """Test that saving without a list neither re-samples nor shrinks the assignment."""
        source = FakeDataSource(surveys=[office_survey(assignment_mode="specific", student_percentage=50)])
        orchestrator = EvaluationOrchestrator(source)

        first = orchestrator.save_assignments(8, AssignmentRequest(student_ids=list(range(21, 31))))
        stored = dict(source.junctions[(8, RelationName.STUDENTS)])
        second = orchestrator.save_assignments(8)

        assert first.data.selected_students == 5
        assert second.success
        assert second.data.selected_students == 5
        relation = second.data.relations[0]
        assert (relation.kept, relation.created, relation.deleted) == (5, 0, 0)
        assert len(source.writes) == 1
        assert source.junctions[(8, RelationName.STUDENTS)] == stored

    def test_write_failure_is_reported(self, enrolled_students):
        """Test that a rejected write surfaces as a failed result."""
        source = FakeDataSource(surveys=[office_survey()], students=enrolled_students)
        source.fail_writes = True

        result = EvaluationOrchestrator(source).save_assignments(8)

        assert not result.success
        assert result.error == "write rejected"
        assert (8, RelationName.STUDENTS) not in source.junctions

    def test_read_failure_is_reported(self):
        source = FakeDataSource()
        source.fail_reads = True

        result = EvaluationOrchestrator(source).save_assignments(8)

        assert not result.success
        assert "store unreachable" in result.error

    def test_unknown_survey(self):
        """Test that saving a missing survey raises SurveyNotFoundError."""
        with pytest.raises(SurveyNotFoundError):
            EvaluationOrchestrator(FakeDataSource()).save_assignments(404)


class TestClassSave:
    """Tests for class-based assignment saves."""

    def test_writes_students_then_classes(self, class_survey, scenario_classes):
        """Test the two writes and their order."""
        source = FakeDataSource(surveys=[class_survey], classes=scenario_classes)

        result = EvaluationOrchestrator(source).save_assignments(
            5, AssignmentRequest(class_ids=[10, 11])
        )

        assert result.success
        assert [relation for _, relation, _ in source.writes] == [
            RelationName.STUDENTS,
            RelationName.CLASSES,
        ]
        assert set(source.junctions[(5, RelationName.CLASSES)]) == {10, 11}
        assert len(source.junctions[(5, RelationName.STUDENTS)]) == 30
        assert result.data.eligible_population == 30

    def test_class_junctions_survive_resave(self, class_survey, scenario_classes):
        """Test that a class kept across saves keeps its junction id."""
        source = FakeDataSource(surveys=[class_survey], classes=scenario_classes)
        orchestrator = EvaluationOrchestrator(source)

        orchestrator.save_assignments(5, AssignmentRequest(class_ids=[10, 11]))
        junction_of_10 = source.junctions[(5, RelationName.CLASSES)][10]
        result = orchestrator.save_assignments(5, AssignmentRequest(class_ids=[10]))

        assert source.junctions[(5, RelationName.CLASSES)] == {10: junction_of_10}
        classes = result.data.relations[1]
        assert (classes.kept, classes.created, classes.deleted) == (1, 0, 1)
        students = result.data.relations[0]
        assert (students.kept, students.deleted) == (20, 10)

    def test_stored_classes_used_when_request_omits_them(self, class_survey, scenario_classes):
        source = FakeDataSource(surveys=[class_survey], classes=scenario_classes)
        source.junctions[(5, RelationName.CLASSES)] = {11: 77}

        result = EvaluationOrchestrator(source).save_assignments(5)

        assert result.data.eligible_population == 10

    def test_rejected_class_write_leaves_students_untouched(self, class_survey, scenario_classes):
        """Test that a failed class relation write does not apply the student relation."""
        source = FakeDataSource(surveys=[class_survey], classes=scenario_classes)
        source.junctions[(5, RelationName.STUDENTS)] = {1: 500}
        source.rejected_relation = RelationName.CLASSES

        result = EvaluationOrchestrator(source).save_assignments(
            5, AssignmentRequest(class_ids=[10, 11])
        )

        assert not result.success
        assert result.error == "write rejected"
        assert source.writes == []
        assert source.junctions[(5, RelationName.STUDENTS)] == {1: 500}
        assert (5, RelationName.CLASSES) not in source.junctions


class TestReports:
    """Tests for report and statistics workflows."""

    def test_instructor_report_scenario(self, class_survey, scenario_classes, scenario_responses):
        """Test the instructor report over assigned classes only."""
        source = FakeDataSource(
            surveys=[class_survey], classes=scenario_classes, responses=scenario_responses
        )
        source.junctions[(5, RelationName.CLASSES)] = {10: 1, 11: 2}

        report = EvaluationOrchestrator(source).instructor_report(5, 7)

        assert report.total_students == 30
        assert report.total_respondents == 20
        assert report.response_rate == 66.67
        assert report.overall_average == pytest.approx(3.9)

    def test_unassigned_classes_not_reported(self, class_survey, scenario_classes, scenario_responses):
        source = FakeDataSource(
            surveys=[class_survey], classes=scenario_classes, responses=scenario_responses
        )

        assert EvaluationOrchestrator(source).instructor_report(5, 7) is None

    def test_office_report_for_class_survey_is_none(self, class_survey):
        source = FakeDataSource(surveys=[class_survey])

        assert EvaluationOrchestrator(source).office_report(5) is None

    def test_office_report_expected_population(self, enrolled_students, make_response):
        """Test that total expected follows the resolved population and percentage."""
        source = FakeDataSource(
            surveys=[office_survey(student_percentage=25)],
            students=enrolled_students,
            responses=[make_response({}, survey_id=8)],
            offices=[SchoolOffice(id=3, name="Library")],
        )
        orchestrator = EvaluationOrchestrator(source)

        report = orchestrator.office_report(8)

        assert report.office_name == "Library"
        assert report.total_expected == 3
        assert report.total_respondents == 1
        assert orchestrator.pending_responses(8) == 2

    def test_specific_mode_expects_stored_selection(self):
        """Test that the stored specific selection is expected without re-applying the percentage."""
        source = FakeDataSource(
            surveys=[office_survey(assignment_mode="specific", student_percentage=50)],
            offices=[SchoolOffice(id=3, name="Library")],
        )
        orchestrator = EvaluationOrchestrator(source)
        orchestrator.save_assignments(8, AssignmentRequest(student_ids=list(range(21, 31))))

        report = orchestrator.office_report(8)

        assert report.total_expected == 5
        assert orchestrator.pending_responses(8) == 5

    def test_question_stats_and_year_levels(self, class_survey, make_response):
        source = FakeDataSource(
            surveys=[class_survey],
            responses=[
                make_response({101: "4"}, year_level="3rd Year"),
                make_response({101: "2"}, year_level="3rd Year"),
            ],
        )
        orchestrator = EvaluationOrchestrator(source)

        stats = orchestrator.question_stats(5)
        levels = {group.key: group for group in orchestrator.responses_by_year_level(5)}

        assert stats[0].average == pytest.approx(3.0)
        assert levels["3rd Year"].response_count == 2
        assert levels["3rd Year"].average_rating == pytest.approx(3.0)
        assert levels["1st Year"].response_count == 0

    def test_instructors(self, class_survey, scenario_classes, scenario_responses):
        source = FakeDataSource(
            surveys=[class_survey], classes=scenario_classes, responses=scenario_responses
        )
        source.junctions[(5, RelationName.CLASSES)] = {10: 1}

        summaries = EvaluationOrchestrator(source).instructors(5)

        assert [(s.id, s.class_count, s.response_count) for s in summaries] == [(7, 1, 15)]

    def test_report_on_missing_survey_raises(self):
        with pytest.raises(SurveyNotFoundError):
            EvaluationOrchestrator(FakeDataSource()).question_stats(1)
