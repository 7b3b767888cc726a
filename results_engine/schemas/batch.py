"""Batch report generation schemas."""

import enum

from pydantic import Field, computed_field

from results_engine.schemas.common import BaseSchema, FrozenSchema


class BatchItemStatus(str, enum.Enum):
    """Terminal status of one batch item."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"  # never attempted


class StudentRef(FrozenSchema):
    """Student requested in a batch."""

    student_id: str = Field(..., min_length=1)
    student_name: str = ""


class BatchItemResult(FrozenSchema):
    """Outcome for one student in a batch."""

    student_id: str
    student_name: str = ""
    status: BatchItemStatus
    artifact_reference: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @computed_field
    @property
    def success(self) -> bool:
        return self.status == BatchItemStatus.SUCCEEDED


class BatchProgress(FrozenSchema):
    """Progress event emitted after each finished item."""

    completed_count: int
    total_count: int

    @computed_field
    @property
    def percent(self) -> float:
        if self.total_count == 0:
            return 100.0
        return round(self.completed_count / self.total_count * 100, 2)


class BatchReport(BaseSchema):
    """All item results in request order.

    ``completed_count`` counts items in a terminal state (cancelled items
    included), so a finished report always has
    ``completed_count == total_count``; ``attempted_count`` excludes cancelled
    items.
    """

    results: list[BatchItemResult]
    completed_count: int
    attempted_count: int
    total_count: int
    cancelled: bool = False

    @property
    def succeeded(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.status == BatchItemStatus.SUCCEEDED]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.status == BatchItemStatus.FAILED]

    @property
    def not_attempted(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.status == BatchItemStatus.CANCELLED]

    @property
    def message(self) -> str:
        text = (
            f"Generated {len(self.succeeded)} of {self.total_count} reports, "
            f"{len(self.failed)} failed"
        )
        if self.cancelled:
            text += f", {len(self.not_attempted)} cancelled"
        return text
