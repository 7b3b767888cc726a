"""Class summary schemas."""

from decimal import Decimal

from results_engine.schemas.common import FrozenSchema
from results_engine.schemas.grading import Division, Grade


class GroupSummary(FrozenSchema):
    """Class-level division counts and averages.

    An empty group yields zero counts and ``average_points == 0.0``.
    """

    total_students: int
    division_counts: dict[Division, int]
    total_passed: int
    total_failed: int
    average_points: float
    pass_rate: float

    @property
    def is_empty(self) -> bool:
        return self.total_students == 0


class SubjectStatistics(FrozenSchema):
    """Per-subject mark statistics for one class."""

    subject_id: str
    entries: int
    graded: int
    mean: float
    median: float
    mode: float
    standard_deviation: float
    highest: Decimal | None
    lowest: Decimal | None
    grade_counts: dict[Grade, int]
    gpa: float
    pass_rate: float


class SubjectPosition(FrozenSchema):
    """A student's position within one subject."""

    subject_id: str
    student_id: str
    mark: Decimal
    position: int
    out_of: int
