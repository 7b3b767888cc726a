"""Mark sheet (Excel) parsing."""

import logging
from decimal import Decimal, InvalidOperation
from io import BytesIO

from openpyxl import load_workbook

from results_engine.core.exceptions import ValidationError
from results_engine.schemas.batch import StudentRef
from results_engine.schemas.grading import MarkEntry
from results_engine.schemas.mark_sheet import MarkSheet, MarkSheetError

logger = logging.getLogger(__name__)

ABSENT_MARKERS = {"", "-", "abs", "absent", "na", "n/a", "none"}


def _cell_text(row: tuple, index: int | None) -> str | None:
    if index is None or index >= len(row) or row[index] is None:
        return None
    text = str(row[index]).strip()
    return text or None


def _map_columns(headers: list[str]) -> dict[str, int | None]:
    col_map: dict[str, int | None] = {
        "student_id": None,
        "student_name": None,
        "subject": None,
        "mark": None,
    }
    for idx, header in enumerate(headers):
        if "student" in header and ("id" in header or "number" in header or "no" in header.split()):
            col_map["student_id"] = idx
        elif "student" in header and "name" in header:
            col_map["student_name"] = idx
        elif "subject" in header:
            col_map["subject"] = idx
        elif "mark" in header or "score" in header:
            if col_map["mark"] is None:
                col_map["mark"] = idx
    return col_map


def parse_mark_sheet(file_content: bytes) -> MarkSheet:
    """Parse an uploaded mark sheet with one row per student and subject.

    Expected columns: Student ID, Student Name, Subject, Mark. A blank or
    "ABS" mark is an absent mark (graded NA). Bad rows are reported in
    ``errors`` and do not stop the rest of the sheet.
    """
    logger.info(f"[MARK SHEET] Starting - file_size={len(file_content)} bytes")

    try:
        wb = load_workbook(BytesIO(file_content), data_only=True, read_only=True)
        ws = wb.active
        rows = list(ws.iter_rows(values_only=True))
    except Exception as e:
        logger.error(f"[MARK SHEET] Failed to load Excel: {str(e)}")
        raise ValidationError(f"Invalid Excel file: {str(e)}")

    if not rows:
        raise ValidationError("Mark sheet is empty")

    headers = [str(value).strip().lower() if value is not None else "" for value in rows[0]]
    col_map = _map_columns(headers)
    missing = [name for name in ("student_id", "subject", "mark") if col_map[name] is None]
    if missing:
        raise ValidationError(
            "Mark sheet is missing required columns",
            details={"missing_columns": missing},
        )

    sheet = MarkSheet()
    students: dict[str, StudentRef] = {}
    seen: set[tuple[str, str]] = set()

    for row_num, row in enumerate(rows[1:], start=2):
        if not any(value is not None and str(value).strip() for value in row):
            sheet.skipped_rows += 1
            continue

        student_id = _cell_text(row, col_map["student_id"])
        student_name = _cell_text(row, col_map["student_name"]) or ""
        subject_id = _cell_text(row, col_map["subject"])
        mark_text = _cell_text(row, col_map["mark"])

        if not student_id:
            sheet.errors.append(MarkSheetError(
                row=row_num,
                column="Student ID",
                message="Student ID is required",
            ))
            sheet.failed_rows += 1
            continue

        if not subject_id:
            sheet.errors.append(MarkSheetError(
                row=row_num,
                student_id=student_id,
                column="Subject",
                message="Subject is required",
            ))
            sheet.failed_rows += 1
            continue

        if (student_id, subject_id) in seen:
            sheet.errors.append(MarkSheetError(
                row=row_num,
                student_id=student_id,
                column="Subject",
                message=f"Duplicate mark for subject '{subject_id}'",
            ))
            sheet.failed_rows += 1
            continue

        mark = None
        if mark_text is not None and mark_text.lower() not in ABSENT_MARKERS:
            try:
                mark = Decimal(mark_text)
            except InvalidOperation:
                mark = None
            if mark is None or not mark.is_finite():
                sheet.errors.append(MarkSheetError(
                    row=row_num,
                    student_id=student_id,
                    column="Mark",
                    message=f"Invalid mark value: '{mark_text}'",
                ))
                sheet.failed_rows += 1
                continue

        seen.add((student_id, subject_id))
        students.setdefault(student_id, StudentRef(student_id=student_id, student_name=student_name))
        sheet.entries.append(MarkEntry(student_id=student_id, subject_id=subject_id, mark=mark))
        sheet.successful_rows += 1

    sheet.students = list(students.values())
    sheet.total_rows = sheet.successful_rows + sheet.failed_rows + sheet.skipped_rows
    logger.info(
        f"[MARK SHEET] Completed: {sheet.successful_rows} OK, "
        f"{sheet.failed_rows} failed, {sheet.skipped_rows} skipped"
    )
    return sheet
