"""Class and subject summary statistics."""

from collections.abc import Sequence

import numpy as np

from results_engine.schemas.grading import DIVISION_ORDER, Division, Grade, StudentAggregate
from results_engine.schemas.policy import O_LEVEL_GRADE_SCALE, GradeScale, SummaryPolicy
from results_engine.schemas.summary import GroupSummary, SubjectStatistics


def _is_pass(division: Division, policy: SummaryPolicy) -> bool:
    return division != Division.ZERO and division.order <= policy.pass_threshold.order


def summarize(
    ranked_group: Sequence[StudentAggregate],
    policy: SummaryPolicy | None = None,
) -> GroupSummary:
    """Division counts, pass/fail totals and the mean of total points.

    Pure and idempotent. Every division, including "0", is present in
    ``division_counts``. An empty group returns the 0.0 average sentinel.
    """
    policy = policy or SummaryPolicy()

    division_counts = {division: 0 for division in DIVISION_ORDER}
    total_passed = 0
    for aggregate in ranked_group:
        division_counts[aggregate.division] += 1
        if _is_pass(aggregate.division, policy):
            total_passed += 1

    total = len(ranked_group)
    if total == 0:
        average_points = 0.0
        pass_rate = 0.0
    else:
        average_points = round(float(np.mean([a.total_points for a in ranked_group])), 2)
        pass_rate = round(total_passed / total * 100, 2)

    return GroupSummary(
        total_students=total,
        division_counts=division_counts,
        total_passed=total_passed,
        total_failed=total - total_passed,
        average_points=average_points,
        pass_rate=pass_rate,
    )


def _mode(values: np.ndarray) -> float:
    """Most frequent value; the smallest wins a frequency tie."""
    unique, counts = np.unique(values, return_counts=True)
    return float(unique[int(np.argmax(counts))])


def subject_statistics(
    group: Sequence[StudentAggregate],
    scale: GradeScale = O_LEVEL_GRADE_SCALE,
) -> list[SubjectStatistics]:
    """Mark statistics per subject, in first-seen subject order.

    GPA is the mean points of graded entries; pass rate is the share of
    graded entries whose grade is not failing.
    """
    scores_by_subject: dict[str, list] = {}
    for aggregate in group:
        for score in aggregate.subject_scores:
            scores_by_subject.setdefault(score.subject_id, []).append(score)

    statistics = []
    for subject_id, scores in scores_by_subject.items():
        graded = [score for score in scores if score.is_graded]
        grade_counts = {g: 0 for g in scale.grades}
        grade_counts[Grade.NA] = len(scores) - len(graded)
        for score in graded:
            grade_counts[score.grade] = grade_counts.get(score.grade, 0) + 1

        if graded:
            marks = np.array([float(score.mark) for score in graded])
            passed = sum(1 for score in graded if score.grade not in scale.failing_grades)
            statistics.append(SubjectStatistics(
                subject_id=subject_id,
                entries=len(scores),
                graded=len(graded),
                mean=round(float(np.mean(marks)), 2),
                median=round(float(np.median(marks)), 2),
                mode=round(_mode(marks), 2),
                standard_deviation=round(float(np.std(marks)), 2),
                highest=max(score.mark for score in graded),
                lowest=min(score.mark for score in graded),
                grade_counts=grade_counts,
                gpa=round(sum(score.points for score in graded) / len(graded), 2),
                pass_rate=round(passed / len(graded) * 100, 2),
            ))
        else:
            statistics.append(SubjectStatistics(
                subject_id=subject_id,
                entries=len(scores),
                graded=0,
                mean=0.0,
                median=0.0,
                mode=0.0,
                standard_deviation=0.0,
                highest=None,
                lowest=None,
                grade_counts=grade_counts,
                gpa=0.0,
                pass_rate=0.0,
            ))
    return statistics
