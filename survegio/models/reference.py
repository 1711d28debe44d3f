"""Reference data models: departments, people, courses, classes, terms, offices.

These tables are maintained by the school's records system; the evaluation
service reads them to resolve populations and label reports.
"""

from datetime import date
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survegio.models.database import Base


class Department(Base):
    """Academic department, identified by its program."""

    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    program_name: Mapped[str] = mapped_column(String(200), nullable=False)
    program_code: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, program_code={self.program_code})>"


class Teacher(Base):
    """Instructor teaching one or more classes."""

    __tablename__ = "teachers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Teacher(id={self.id}, last_name={self.last_name})>"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_code: Mapped[str] = mapped_column(String(50), nullable=False)
    course_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")


class AcademicTerm(Base):
    """School year and semester a survey or class belongs to."""

    __tablename__ = "academic_terms"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    school_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Active, Draft or Archived"
    )

    def __repr__(self) -> str:
        return (
            f"<AcademicTerm(id={self.id}, school_year={self.school_year}, "
            f"semester={self.semester}, status={self.status})>"
        )


class SchoolOffice(Base):
    """School office (registrar, library...) evaluated by office surveys."""

    __tablename__ = "school_offices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SchoolOffice(id={self.id}, name={self.name})>"


class ClassSection(Base):
    """A class: one section of a course taught by one instructor in a term."""

    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    section: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    course_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=True
    )
    teacher_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("teachers.id"), nullable=True, index=True
    )
    department_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("departments.id"), nullable=True
    )
    academic_term_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("academic_terms.id"), nullable=True
    )

    course: Mapped[Optional["Course"]] = relationship("Course")
    teacher: Mapped[Optional["Teacher"]] = relationship("Teacher")
    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        "ClassEnrollment",
        back_populates="class_section",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ClassSection(id={self.id}, section={self.section}, teacher_id={self.teacher_id})>"


class Student(Base):
    """A student who may be assigned to evaluation surveys."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    student_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    department_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("departments.id"), nullable=True, index=True
    )
    year_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    enrollments: Mapped[list["ClassEnrollment"]] = relationship(
        "ClassEnrollment",
        back_populates="student",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, student_number={self.student_number})>"


class ClassEnrollment(Base):
    """Junction between students and the classes they attend."""

    __tablename__ = "class_enrollments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )

    class_section: Mapped["ClassSection"] = relationship("ClassSection", back_populates="enrollments")
    student: Mapped["Student"] = relationship("Student", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("class_id", "student_id", name="uq_class_enrollment"),
    )
