"""Integration tests for the SQLAlchemy data source and the workflows over it.

These tests verify the complete storage path including:
- ORM row to schema conversion with populated relations
- Reference list ordering
- Replace-style assignment writes that preserve junction ids
- Assignment saves and reports end to end
"""

import pytest
from sqlalchemy import select

from survegio import models
from survegio.schemas import AssignmentEntry, AssignmentRequest, RelationName
from survegio.services.orchestrator import EvaluationOrchestrator
from survegio.services.sql_data_source import SqlAlchemyDataSource


@pytest.fixture
def source(evaluation_db) -> SqlAlchemyDataSource:
    return SqlAlchemyDataSource(evaluation_db)


class TestReads:
    """Tests for fetch operations."""

    def test_survey_config(self, source):
        """Test that a survey loads with its term and ordered question groups."""
        result = source.fetch_survey_config(5)

        assert result.success
        survey = result.data
        assert survey.is_class_based
        assert survey.academic_term.entity.label == "2024-2025 - 1st Semester"
        assert [g.title for g in survey.question_groups] == ["Teaching Effectiveness", "Comments"]
        assert survey.question_groups[0].is_rating
        assert survey.find_question(101).question == "Explains lessons clearly"

    def test_office_survey_config(self, source):
        survey = source.fetch_survey_config(8).data

        assert survey.office_id == 3
        assert survey.office.entity.name == "Registrar"
        assert survey.student_percentage == 50

    def test_missing_survey(self, source):
        """Test that a missing survey is a successful empty result."""
        result = source.fetch_survey_config(404)

        assert result.success
        assert result.data is None

    def test_students(self, source):
        """Test all students versus class-enrolled students only."""
        everyone = source.fetch_students().data
        enrolled = source.fetch_students(enrolled_only=True).data

        assert [s.id for s in everyone] == [1, 2, 3, 4, 5, 6, 7]
        assert [s.id for s in enrolled] == [1, 2, 3, 4, 5, 6]
        assert sorted(everyone[3].class_ids) == [10, 11]

    def test_classes(self, source):
        """Test that classes come with course, teacher and enrolled students."""
        classes = source.fetch_classes([10]).data

        assert len(classes) == 1
        cls = classes[0]
        assert cls.teacher.entity.full_name == "Maria Santos"
        assert cls.course.entity.course_code == "CS101"
        assert sorted(cls.student_ids) == [1, 2, 3, 4]
        assert source.fetch_classes([]).data == []

    def test_academic_terms_ordering(self, source):
        """Test Active, then Draft, then Archived."""
        terms = source.fetch_academic_terms().data

        assert [t.id for t in terms] == [1, 3, 2]

    def test_school_offices_ordering(self, source):
        """Test active offices first, then by name."""
        offices = source.fetch_school_offices().data

        assert [o.name for o in offices] == ["Library", "Registrar", "Canteen"]

    def test_departments(self, source):
        departments = source.fetch_departments().data

        assert [(d.id, d.name, d.program_code) for d in departments] == [
            (4, "Computer Science", "BSCS"),
            (5, "Information Technology", "BSIT"),
        ]

    def test_responses(self, source):
        """Test that responses come with respondents and answers."""
        responses = source.fetch_responses(5).data

        assert len(responses) == 3
        first = responses[0]
        assert first.respondent.student_number == "2024-0001"
        assert first.class_id == 10
        assert [(a.question_id, a.answer_value) for a in first.answers] == [
            (101, "5"),
            (201, "Great teacher"),
        ]
        assert source.fetch_responses(8).data == []


class TestWriteAssignments:
    """Tests for replace-style junction writes."""

    def test_create_then_keep(self, source):
        """Test that a kept member keeps its junction id across writes."""
        created = source.write_assignments(
            5, RelationName.CLASSES, [AssignmentEntry(member_id=10), AssignmentEntry(member_id=11)]
        )
        junction_of_10 = created.data.junctions[10]

        result = source.write_assignments(
            5, RelationName.CLASSES, [AssignmentEntry(junction_id=junction_of_10, member_id=10)]
        )

        assert result.success
        assert result.data.junctions == {10: junction_of_10}
        assert source.fetch_assignment_mapping(5, RelationName.CLASSES).data.junctions == {
            10: junction_of_10
        }

    def test_readding_member_gets_new_junction(self, source):
        """Test that a removed and re-added member receives a fresh row."""
        first = source.write_assignments(
            5, RelationName.STUDENTS, [AssignmentEntry(member_id=1), AssignmentEntry(member_id=2)]
        )
        old_junction = first.data.junctions[1]
        kept = AssignmentEntry(junction_id=first.data.junctions[2], member_id=2)

        source.write_assignments(5, RelationName.STUDENTS, [kept])
        again = source.write_assignments(
            5, RelationName.STUDENTS, [kept, AssignmentEntry(member_id=1)]
        )

        assert again.data.junctions[1] != old_junction
        assert again.data.junctions[2] == kept.junction_id

    def test_unknown_junction_rejected(self, source, evaluation_db):
        """Test that a write naming a foreign junction fails and changes nothing."""
        source.write_assignments(5, RelationName.CLASSES, [AssignmentEntry(member_id=10)])

        result = source.write_assignments(
            5, RelationName.CLASSES, [AssignmentEntry(junction_id=9999, member_id=11)]
        )

        assert not result.success
        assert "9999" in result.error
        rows = evaluation_db.scalars(select(models.SurveyClassAssignment)).all()
        assert [row.classes_id for row in rows] == [10]

    def test_relations_written_together(self, source):
        """Test that both relations commit in one write."""
        result = source.write_relations(5, {
            RelationName.STUDENTS: [AssignmentEntry(member_id=1), AssignmentEntry(member_id=2)],
            RelationName.CLASSES: [AssignmentEntry(member_id=10)],
        })

        assert result.success
        assert sorted(result.data[RelationName.STUDENTS].member_ids) == [1, 2]
        assert result.data[RelationName.CLASSES].member_ids == [10]

    def test_failed_relation_rolls_back_the_other(self, source, evaluation_db):
        """Test that a bad class write leaves the student relation unchanged."""
        source.write_assignments(5, RelationName.STUDENTS, [AssignmentEntry(member_id=1)])

        result = source.write_relations(5, {
            RelationName.STUDENTS: [AssignmentEntry(member_id=2), AssignmentEntry(member_id=3)],
            RelationName.CLASSES: [AssignmentEntry(junction_id=9999, member_id=10)],
        })

        assert not result.success
        assert "9999" in result.error
        rows = evaluation_db.scalars(select(models.SurveyStudentAssignment)).all()
        assert [row.students_id for row in rows] == [1]
        assert evaluation_db.scalars(select(models.SurveyClassAssignment)).all() == []

    def test_missing_survey_rejected(self, source):
        result = source.write_assignments(404, RelationName.CLASSES, [AssignmentEntry(member_id=10)])

        assert not result.success
        assert result.data is None


class TestWorkflowsOverSql:
    """End-to-end saves and reports with the SQL data source."""

    def test_class_save_and_instructor_report(self, source):
        """Test saving class assignments, then reporting on the instructor."""
        orchestrator = EvaluationOrchestrator(source)

        saved = orchestrator.save_assignments(5, AssignmentRequest(class_ids=[10, 11]))
        report = orchestrator.instructor_report(5, 7)

        assert saved.success
        assert saved.data.selected_students == 6
        assert sorted(source.fetch_assignment_mapping(5, RelationName.STUDENTS).data.member_ids) == [
            1, 2, 3, 4, 5, 6
        ]
        assert report.instructor_name == "Maria Santos"
        assert report.total_students == 7
        assert report.total_respondents == 3
        assert report.response_rate == 42.86
        assert report.overall_average == pytest.approx(4.0)
        assert report.classes[0].comments == ["Great teacher"]

    def test_office_save_is_idempotent(self, source):
        """Test that a second office save keeps every junction."""
        orchestrator = EvaluationOrchestrator(source)

        first = orchestrator.save_assignments(8)
        before = source.fetch_assignment_mapping(8, RelationName.STUDENTS).data.junctions
        second = orchestrator.save_assignments(8)
        after = source.fetch_assignment_mapping(8, RelationName.STUDENTS).data.junctions

        assert first.data.selected_students == 3
        assert (second.data.relations[0].created, second.data.relations[0].deleted) == (0, 0)
        assert before == after

    def test_office_report(self, source):
        report = EvaluationOrchestrator(source).office_report(8)

        assert report.office_name == "Registrar"
        assert report.total_expected == 3
        assert report.total_respondents == 0
        assert report.response_rate == 0
