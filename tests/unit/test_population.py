"""Unit tests for eligible population resolution."""

from survegio.schemas import ClassInfo, StudentInfo
from survegio.schemas.survey import AssignmentMode
from survegio.services.population import PopulationResolver


STUDENTS = [
    StudentInfo(id=1, department_id=4, class_ids=[10]),
    StudentInfo(id=2, department_id=4),
    StudentInfo(id=3, department_id=5, class_ids=[11]),
    StudentInfo(id=4, class_ids=[10, 11]),
]


class TestClassStudents:
    """Tests for class-based populations."""

    def test_deduplicated_across_classes(self):
        """Test that a student in two assigned classes is counted once."""
        classes = [
            ClassInfo(id=10, student_ids=[1, 2, 3]),
            ClassInfo(id=11, student_ids=[3, 4]),
            ClassInfo(id=12, student_ids=[5]),
        ]

        assert PopulationResolver.class_students(classes, [10, 11]) == [1, 2, 3, 4]

    def test_no_assigned_classes(self):
        classes = [ClassInfo(id=10, student_ids=[1])]

        assert PopulationResolver.class_students(classes, []) == []


class TestOfficeStudents:
    """Tests for office-based populations by assignment mode."""

    def test_all_mode_takes_enrolled_students(self):
        """Test that mode "all" keeps only class-enrolled students."""
        assert PopulationResolver.office_students(AssignmentMode.ALL, STUDENTS) == [1, 3, 4]

    def test_department_mode(self):
        """Test filtering by the survey's departments."""
        result = PopulationResolver.office_students(
            AssignmentMode.DEPARTMENT, STUDENTS, department_ids=[4]
        )

        assert result == [1, 2]

    def test_specific_mode(self):
        """Test that the explicit list is used as-is, without duplicates."""
        result = PopulationResolver.office_students(
            AssignmentMode.SPECIFIC, STUDENTS, specific_ids=[9, 2, 9]
        )

        assert result == [9, 2]


class TestStudentInfoShapes:
    """Tests for junction-shaped enrolment fields."""

    def test_junction_objects_flattened(self):
        """Test {id, classes_id} enrolment objects and the legacy field name."""
        student = StudentInfo.model_validate({
            "id": 1,
            "deparment_id": {"id": 4, "name": "CS"},
            "class_id": [{"id": 70, "classes_id": 10}, 11, {"id": 71, "classes_id": 10}],
        })

        assert student.department_id == 4
        assert student.class_ids == [10, 11]
        assert student.is_enrolled

    def test_class_students_from_junctions(self):
        """Test {id, students_id} junction objects on classes."""
        cls = ClassInfo.model_validate({
            "id": 10,
            "student_id": [{"id": 1, "students_id": 3}, {"id": 2, "students_id": 3}, 4],
        })

        assert cls.student_ids == [3, 4]
        assert cls.student_count == 2
