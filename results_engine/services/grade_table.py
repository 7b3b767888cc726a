"""Grade table: mark to grade, grade to points.

This module is the single source of truth for grades and points; ranking,
summaries and renderers all go through it.

Policy for bad input: an absent mark (``None``) grades as NA without error,
while a present mark outside ``[0, scale.max_mark]`` or a non-finite number
raises InvalidMarkError.
"""

from decimal import Decimal, InvalidOperation

from results_engine.core.exceptions import InvalidMarkError
from results_engine.schemas.grading import Grade, MarkEntry, SubjectInfo, SubjectScore
from results_engine.schemas.policy import O_LEVEL_GRADE_SCALE, GradeScale

Mark = Decimal | int | float | None


def to_decimal(mark: Decimal | int | float, max_mark: Decimal = Decimal("100")) -> Decimal:
    """Convert a numeric mark to Decimal, rejecting non-numbers and NaN/inf."""
    if isinstance(mark, bool):
        raise InvalidMarkError(mark, max_mark)
    try:
        value = mark if isinstance(mark, Decimal) else Decimal(str(mark))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidMarkError(mark, max_mark)
    if not value.is_finite():
        raise InvalidMarkError(mark, max_mark)
    return value


def grade(mark: Mark, scale: GradeScale = O_LEVEL_GRADE_SCALE) -> Grade:
    """Grade a mark; bands are inclusive lower bounds (80.5 grades as B)."""
    if mark is None:
        return Grade.NA

    value = to_decimal(mark, scale.max_mark)
    if value < 0 or value > scale.max_mark:
        raise InvalidMarkError(mark, scale.max_mark)

    for band in scale.bands:
        if value >= band.min_mark:
            return band.grade
    # Unreachable: the lowest band starts at 0
    return Grade.NA


def points(grade_value: Grade, scale: GradeScale = O_LEVEL_GRADE_SCALE) -> int:
    """Fixed points lookup; independent of subject."""
    return scale.points[Grade(grade_value)]


def remarks(grade_value: Grade, scale: GradeScale = O_LEVEL_GRADE_SCALE) -> str:
    return scale.remarks.get(Grade(grade_value), "-")


def score_mark(
    entry: MarkEntry,
    scale: GradeScale = O_LEVEL_GRADE_SCALE,
    subject: SubjectInfo | None = None,
) -> SubjectScore:
    """Build the immutable SubjectScore for one mark entry."""
    try:
        grade_value = grade(entry.mark, scale)
    except InvalidMarkError:
        raise InvalidMarkError(entry.mark, scale.max_mark, subject_id=entry.subject_id)

    return SubjectScore(
        subject_id=entry.subject_id,
        mark=entry.mark,
        grade=grade_value,
        points=points(grade_value, scale),
        is_principal=subject.is_principal if subject else False,
    )
