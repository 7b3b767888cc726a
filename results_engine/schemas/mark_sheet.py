"""Mark sheet upload schemas."""

from results_engine.schemas.batch import StudentRef
from results_engine.schemas.common import BaseSchema
from results_engine.schemas.grading import MarkEntry


class MarkSheetError(BaseSchema):
    """Error detail for one mark sheet row."""

    row: int
    student_id: str | None = None
    column: str | None = None
    message: str


class MarkSheet(BaseSchema):
    """Parsed mark sheet; also serves as a marks source."""

    entries: list[MarkEntry] = []
    students: list[StudentRef] = []
    errors: list[MarkSheetError] = []
    total_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    skipped_rows: int = 0

    def marks_for(self, student_id: str) -> list[MarkEntry]:
        """Entries for one student, in sheet order."""
        return [entry for entry in self.entries if entry.student_id == student_id]

    @property
    def subject_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.subject_id, None)
        return list(seen)

    @property
    def message(self) -> str:
        return f"Processed {self.successful_rows} mark entries successfully."
