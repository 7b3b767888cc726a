"""Subject result aggregation: best-N selection and per-student scoring."""

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from results_engine.core.exceptions import InsufficientSubjectsError, ValidationError
from results_engine.schemas.grading import (
    Division,
    MarkEntry,
    StudentAggregate,
    SubjectInfo,
    SubjectScore,
    SubjectSelection,
)
from results_engine.schemas.policy import (
    O_LEVEL_GRADE_SCALE,
    GradeScale,
    GradingPolicy,
    PaddingRule,
    SelectionMode,
    SelectionPolicy,
)
from results_engine.services.division import classify
from results_engine.services.grade_table import score_mark

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def aggregate(
    subject_scores: Sequence[SubjectScore],
    policy: SelectionPolicy,
    scale: GradeScale = O_LEVEL_GRADE_SCALE,
    student_id: str | None = None,
) -> SubjectSelection:
    """Select the best N subjects and sum their points.

    Lower points are better. Equal points are ordered by the subject's
    position in ``subject_scores`` so the selection is deterministic.
    """
    candidates = [
        (score.points, index, score)
        for index, score in enumerate(subject_scores)
        if score.is_graded and score.subject_id not in policy.excluded_subjects
    ]

    if policy.mode == SelectionMode.BEST_N:
        ordered = sorted(candidates)
    else:
        principals = sorted(c for c in candidates if c[2].is_principal)
        if policy.mode == SelectionMode.PRINCIPAL_ONLY:
            ordered = principals
        else:
            others = sorted(c for c in candidates if not c[2].is_principal)
            ordered = principals + others

    selected = [score for _, _, score in ordered[: policy.best_of]]
    missing = policy.best_of - len(selected)
    padded_slots = 0

    if missing > 0:
        if policy.padding is None:
            raise InsufficientSubjectsError(
                required=policy.best_of,
                available=len(selected),
                student_id=student_id,
            )
        if policy.padding == PaddingRule.WORST_POINTS:
            padded_slots = missing

    total_points = sum(score.points for score in selected) + padded_slots * scale.worst_points

    return SubjectSelection(
        selected_subjects=tuple(score.subject_id for score in selected),
        total_points=total_points,
        padded_slots=padded_slots,
    )


def score_student(
    student_id: str,
    marks: Sequence[MarkEntry],
    policy: GradingPolicy,
    subjects: Mapping[str, SubjectInfo] | None = None,
) -> StudentAggregate:
    """Grade every mark, select the best N and classify the division."""
    subjects = subjects or {}
    seen: set[str] = set()
    for entry in marks:
        if entry.student_id != student_id:
            raise ValidationError(
                f"Mark entry for student {entry.student_id} passed for student {student_id}",
                details={"student_id": student_id, "subject_id": entry.subject_id},
            )
        if entry.subject_id in seen:
            raise ValidationError(
                f"Duplicate mark entry for subject {entry.subject_id}",
                details={"student_id": student_id, "subject_id": entry.subject_id},
            )
        seen.add(entry.subject_id)

    scale = policy.grade_scale
    scores = tuple(
        score_mark(entry, scale, subjects.get(entry.subject_id)) for entry in marks
    )

    not_counted = {sid for sid, info in subjects.items() if not info.is_counted}
    selection_policy = policy.selection
    if not_counted:
        selection_policy = selection_policy.model_copy(
            update={"excluded_subjects": selection_policy.excluded_subjects | not_counted}
        )

    selection = aggregate(scores, selection_policy, scale, student_id=student_id)

    # No selected subject means nothing was graded: always division 0
    if selection.selected_subjects:
        division = classify(selection.total_points, policy.divisions)
    else:
        division = Division.ZERO

    graded_marks = [score.mark for score in scores if score.is_graded]
    total_marks = sum(graded_marks, Decimal("0"))
    average_marks = None
    if graded_marks:
        average_marks = (total_marks / len(graded_marks)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    logger.debug(
        f"Scored student {student_id}",
        extra={
            "student_id": student_id,
            "subjects": len(scores),
            "selected": len(selection.selected_subjects),
            "total_points": selection.total_points,
            "division": division.value,
        },
    )

    return StudentAggregate(
        student_id=student_id,
        subject_scores=scores,
        selected_subjects=selection.selected_subjects,
        padded_slots=selection.padded_slots,
        total_points=selection.total_points,
        total_marks=total_marks,
        average_marks=average_marks,
        division=division,
    )
