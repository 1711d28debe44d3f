"""CSV export of instructor and office reports.

Exports are flat renderings of the report documents: a summary block, one
row per rating question, the collected comments and, for office reports,
every individual response. Header labels reuse the report's camelCase
field names.
"""

import csv
import io
from typing import Sequence

from survegio.schemas.report import (
    GroupStats,
    InstructorReportData,
    OfficeReportData,
)

QUESTION_HEADER = ["groupTitle", "questionText", "average", "totalResponses", "distribution"]
RESPONSE_HEADER = [
    "studentName",
    "studentNumber",
    "program",
    "submittedAt",
    "groupTitle",
    "questionText",
    "answerValue",
]


def format_average(value: float) -> str:
    """Two-decimal display of an average."""
    return f"{value:.2f}"


def format_distribution(distribution: dict[str, int]) -> str:
    """``"1:0 2:3 ..."`` with buckets in ascending numeric order."""
    def bucket_order(key: str):
        try:
            return (0, int(key))
        except ValueError:
            return (1, key)

    return " ".join(f"{key}:{distribution[key]}" for key in sorted(distribution, key=bucket_order))


def _write_question_rows(writer, groups: Sequence[GroupStats]) -> None:
    writer.writerow(QUESTION_HEADER)
    for group in groups:
        for question in group.questions:
            writer.writerow([
                group.group_title,
                question.question_text,
                format_average(question.average),
                question.total_responses,
                format_distribution(question.distribution),
            ])


def _write_comments(writer, comments: Sequence[str]) -> None:
    writer.writerow(["comments"])
    for comment in comments:
        writer.writerow([comment])


def instructor_report_csv(report: InstructorReportData) -> str:
    """Render an instructor report as CSV text.

    Args:
        report: Instructor report to export

    Returns:
        CSV document with a summary block followed by one section per class
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["instructorName", report.instructor_name])
    writer.writerow(["academicTerm", report.academic_term])
    writer.writerow(["totalClasses", report.total_classes])
    writer.writerow(["totalRespondents", report.total_respondents])
    writer.writerow(["totalStudents", report.total_students])
    writer.writerow(["responseRate", format_average(report.response_rate)])
    writer.writerow(["overallAverage", format_average(report.overall_average)])

    for cls in report.classes:
        writer.writerow([])
        writer.writerow(["class", f"{cls.course_code} {cls.section}".strip(), cls.course_name])
        writer.writerow(["totalRespondents", cls.total_respondents])
        writer.writerow(["totalStudents", cls.total_students])
        writer.writerow(["responseRate", format_average(cls.response_rate)])
        writer.writerow(["overallAverage", format_average(cls.overall_average)])
        _write_question_rows(writer, cls.question_stats)
        if cls.comments:
            _write_comments(writer, cls.comments)

    return buffer.getvalue()


def office_report_csv(report: OfficeReportData) -> str:
    """Render an office report as CSV text, response detail included."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["officeName", report.office_name])
    writer.writerow(["surveyTitle", report.survey_title])
    writer.writerow(["academicTerm", report.academic_term])
    writer.writerow(["totalRespondents", report.total_respondents])
    writer.writerow(["totalExpected", report.total_expected])
    writer.writerow(["responseRate", format_average(report.response_rate)])
    writer.writerow(["overallAverage", format_average(report.overall_average)])

    writer.writerow([])
    _write_question_rows(writer, report.question_stats)

    if report.comments:
        writer.writerow([])
        _write_comments(writer, report.comments)

    writer.writerow([])
    writer.writerow(RESPONSE_HEADER)
    for response in report.responses:
        for answer in response.answers:
            writer.writerow([
                response.student_name,
                response.student_number,
                response.program,
                response.submitted_at,
                answer.group_title,
                answer.question_text,
                answer.answer_value if answer.answer_value is not None else "",
            ])

    return buffer.getvalue()
