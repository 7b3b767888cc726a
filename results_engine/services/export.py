"""Excel export of class broadsheets and per-student result sheets."""

import hashlib
import logging
import re
from collections.abc import Mapping, Sequence
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from results_engine.schemas.grading import DIVISION_ORDER, StudentAggregate, SubjectInfo
from results_engine.schemas.policy import O_LEVEL_GRADE_SCALE, GradeScale
from results_engine.schemas.summary import GroupSummary
from results_engine.services.grade_table import remarks

logger = logging.getLogger(__name__)

TITLE_FONT = Font(bold=True, size=14)
HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
TITLE_FILL = PatternFill(start_color="B4C6E7", end_color="B4C6E7", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
CENTER_ALIGN = Alignment(horizontal="center", vertical="center")


def _subject_name(subject_id: str, subjects: Mapping[str, SubjectInfo]) -> str:
    info = subjects.get(subject_id)
    return info.display_name if info else subject_id


def _write_title(ws, title: str, width: int) -> None:
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=max(width, 1))
    cell = ws.cell(row=1, column=1, value=title)
    cell.font = TITLE_FONT
    cell.alignment = CENTER_ALIGN
    cell.fill = TITLE_FILL


def _write_headers(ws, row: int, headers: list[str]) -> None:
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = CENTER_ALIGN


def _write_summary(ws, start_row: int, summary: GroupSummary) -> None:
    rows = [("CLASS SUMMARY", "")]
    rows += [(f"Division {division.value}", summary.division_counts.get(division, 0)) for division in DIVISION_ORDER]
    rows += [
        ("Passed", summary.total_passed),
        ("Failed", summary.total_failed),
        ("Pass Rate (%)", summary.pass_rate),
        ("Average Points", summary.average_points),
    ]
    for offset, (label, value) in enumerate(rows):
        ws.cell(row=start_row + offset, column=1, value=label).font = Font(bold=True)
        ws.cell(row=start_row + offset, column=2, value=value)


def write_class_broadsheet(
    ranked: Sequence[StudentAggregate],
    summary: GroupSummary,
    subjects: Mapping[str, SubjectInfo] | None = None,
    student_names: Mapping[str, str] | None = None,
    title: str = "Class Results",
) -> bytes:
    """Ranked class broadsheet: one row per student, mark and grade per subject."""
    subjects = subjects or {}
    student_names = student_names or {}

    subject_ids: dict[str, None] = {}
    for aggregate in ranked:
        for score in aggregate.subject_scores:
            subject_ids.setdefault(score.subject_id, None)

    headers = ["Rank", "Student ID", "Student Name"]
    headers += [_subject_name(subject_id, subjects) for subject_id in subject_ids]
    headers += ["Total Marks", "Average", "Points", "Division"]

    wb = Workbook()
    ws = wb.active
    ws.title = "Broadsheet"
    _write_title(ws, title, len(headers))
    _write_headers(ws, 2, headers)

    row_idx = 3
    for aggregate in ranked:
        rank_text = f"{aggregate.rank} of {aggregate.total_students_in_group}" if aggregate.is_ranked else "-"
        values = [rank_text, aggregate.student_id, student_names.get(aggregate.student_id, "")]
        for subject_id in subject_ids:
            score = aggregate.score_for(subject_id)
            if score is None or not score.is_graded:
                values.append("-")
            else:
                marker = "*" if subject_id in aggregate.selected_subjects else ""
                values.append(f"{score.mark} {score.grade.value}{marker}")
        values += [
            float(aggregate.total_marks),
            float(aggregate.average_marks) if aggregate.average_marks is not None else "-",
            aggregate.total_points,
            aggregate.division.value,
        ]
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value).border = THIN_BORDER
        row_idx += 1

    _write_summary(ws, row_idx + 1, summary)

    ws.column_dimensions["A"].width = 12
    ws.column_dimensions["B"].width = 15
    ws.column_dimensions["C"].width = 25
    for col_idx in range(4, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = 14

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


class WorkbookReportRenderer:
    """Writes one result sheet per student and returns the file path."""

    def __init__(
        self,
        output_dir: Path | str,
        scale: GradeScale = O_LEVEL_GRADE_SCALE,
        subjects: Mapping[str, SubjectInfo] | None = None,
        student_names: Mapping[str, str] | None = None,
    ):
        self.output_dir = Path(output_dir)
        self.scale = scale
        self.subjects = subjects or {}
        self.student_names = student_names or {}

    def _path_for(self, student_id: str) -> Path:
        safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "_", student_id)
        if safe_name != student_id:
            # Keep ids that clean to the same name (A/1, A_1) apart
            digest = hashlib.sha1(student_id.encode("utf-8")).hexdigest()[:8]
            safe_name = f"{safe_name}-{digest}"
        return self.output_dir / f"{safe_name}.xlsx"

    def render(self, aggregate: StudentAggregate, summary: GroupSummary) -> str:
        wb = Workbook()
        ws = wb.active
        ws.title = "Result"

        name = self.student_names.get(aggregate.student_id, "")
        title = f"Academic Report - {name or aggregate.student_id}"
        headers = ["Subject", "Mark", "Grade", "Points", "Remarks", "Counted"]
        _write_title(ws, title, len(headers))
        _write_headers(ws, 2, headers)

        row_idx = 3
        for score in aggregate.subject_scores:
            values = [
                _subject_name(score.subject_id, self.subjects),
                float(score.mark) if score.mark is not None else "-",
                score.grade.value,
                score.points,
                remarks(score.grade, self.scale),
                "Yes" if score.subject_id in aggregate.selected_subjects else "",
            ]
            for col_idx, value in enumerate(values, start=1):
                ws.cell(row=row_idx, column=col_idx, value=value).border = THIN_BORDER
            row_idx += 1

        position = "-"
        if aggregate.is_ranked:
            position = f"{aggregate.rank} of {aggregate.total_students_in_group}"
        details = [
            ("Total Marks", float(aggregate.total_marks)),
            ("Average", float(aggregate.average_marks) if aggregate.average_marks is not None else "-"),
            ("Total Points", aggregate.total_points),
            ("Division", aggregate.division.value),
            ("Position", position),
        ]
        row_idx += 1
        for offset, (label, value) in enumerate(details):
            ws.cell(row=row_idx + offset, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row_idx + offset, column=2, value=value)

        _write_summary(ws, row_idx + len(details) + 1, summary)

        ws.column_dimensions["A"].width = 25
        ws.column_dimensions["E"].width = 18

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self._path_for(aggregate.student_id)
        wb.save(path)
        logger.debug(f"Wrote result sheet for {aggregate.student_id} to {path}")
        return str(path)
