"""Grading schemas: marks, subject scores and student aggregates."""

import enum
from decimal import Decimal

from pydantic import Field

from results_engine.schemas.common import FrozenSchema


class Grade(str, enum.Enum):
    """Letter grade derived from a mark."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    S = "S"  # A-Level subsidiary pass
    F = "F"
    NA = "NA"


class Division(str, enum.Enum):
    """Overall performance band derived from total points."""

    I = "I"
    II = "II"
    III = "III"
    IV = "IV"
    ZERO = "0"

    @property
    def order(self) -> int:
        """Position from best (0) to ungraded (4)."""
        return DIVISION_ORDER.index(self)


DIVISION_ORDER = [Division.I, Division.II, Division.III, Division.IV, Division.ZERO]


class Curriculum(str, enum.Enum):
    """Supported grading curricula."""

    O_LEVEL = "O_LEVEL"
    A_LEVEL = "A_LEVEL"


# ==========================================
# Input records
# ==========================================

class MarkEntry(FrozenSchema):
    """Raw mark for one student in one subject."""

    student_id: str = Field(..., min_length=1)
    subject_id: str = Field(..., min_length=1)
    mark: Decimal | None = None


class SubjectInfo(FrozenSchema):
    """Read-only subject metadata keyed by subject_id."""

    subject_id: str = Field(..., min_length=1)
    name: str = ""
    is_principal: bool = False
    is_counted: bool = True  # False for e.g. General Studies

    @property
    def display_name(self) -> str:
        return self.name or self.subject_id


# ==========================================
# Derived records
# ==========================================

class SubjectScore(FrozenSchema):
    """Graded subject result."""

    subject_id: str
    mark: Decimal | None
    grade: Grade
    points: int
    is_principal: bool = False

    @property
    def is_graded(self) -> bool:
        return self.grade != Grade.NA


class SubjectSelection(FrozenSchema):
    """Outcome of best-N subject selection."""

    selected_subjects: tuple[str, ...]
    total_points: int
    padded_slots: int = 0


class StudentAggregate(FrozenSchema):
    """Per-student result for one exam.

    Created in the "scored" stage with ``rank`` unset; the ranker returns
    "ranked" copies with ``rank`` and ``total_students_in_group`` filled in.
    """

    student_id: str
    subject_scores: tuple[SubjectScore, ...]
    selected_subjects: tuple[str, ...]
    padded_slots: int = 0
    total_points: int
    total_marks: Decimal = Decimal("0")
    average_marks: Decimal | None = None
    division: Division
    rank: int | None = None
    total_students_in_group: int | None = None

    @property
    def is_ranked(self) -> bool:
        return self.rank is not None

    @property
    def graded_subject_count(self) -> int:
        return sum(1 for score in self.subject_scores if score.is_graded)

    def score_for(self, subject_id: str) -> SubjectScore | None:
        """Subject score by id, if the student sat the subject."""
        for score in self.subject_scores:
            if score.subject_id == subject_id:
                return score
        return None
