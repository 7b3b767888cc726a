"""Student ranking within a class/stream."""

from collections.abc import Sequence
from decimal import Decimal

from results_engine.core.exceptions import ValidationError
from results_engine.schemas.grading import StudentAggregate
from results_engine.schemas.policy import RankingPolicy, RankKey, TiePolicy
from results_engine.schemas.summary import SubjectPosition


def _rank_value(aggregate: StudentAggregate, key: RankKey) -> Decimal | None:
    if key == RankKey.AVERAGE_MARKS:
        return aggregate.average_marks
    # No selected subject: total_points is not a result
    if not aggregate.selected_subjects:
        return None
    return Decimal(aggregate.total_points)


def _assign_ranks(values: Sequence, tie_policy: TiePolicy) -> list[int]:
    """Ranks for values that are already in ranking order."""
    ranks: list[int] = []
    for index, value in enumerate(values):
        if index > 0 and value == values[index - 1]:
            ranks.append(ranks[-1])
        elif tie_policy == TiePolicy.DENSE:
            ranks.append(ranks[-1] + 1 if ranks else 1)
        else:
            ranks.append(index + 1)
    return ranks


def rank(
    group: Sequence[StudentAggregate],
    policy: RankingPolicy | None = None,
) -> list[StudentAggregate]:
    """Rank a class group and return ranked copies in rank order.

    Sorts on the policy key (total points descending by default), breaking
    ties by student_id ascending so repeated runs give the same order.
    Students without a value for the key are placed last in either
    direction: no selected subject when ranking by points, no graded marks
    when ranking by average. The input aggregates are not modified.
    """
    policy = policy or RankingPolicy()

    student_ids = [aggregate.student_id for aggregate in group]
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("Duplicate students in ranking group")

    with_value = []
    without_value = []
    for aggregate in group:
        value = _rank_value(aggregate, policy.key)
        if value is None:
            without_value.append(aggregate)
        else:
            with_value.append((value, aggregate))

    # Two stable sorts: student_id ascending, then the key in policy order
    with_value.sort(key=lambda item: item[1].student_id)
    with_value.sort(key=lambda item: item[0], reverse=policy.descending)
    without_value.sort(key=lambda aggregate: aggregate.student_id)

    values = [value for value, _ in with_value] + [None] * len(without_value)
    ordered = [aggregate for _, aggregate in with_value] + without_value
    ranks = _assign_ranks(values, policy.tie_policy)

    total = len(ordered)
    return [
        aggregate.model_copy(update={"rank": position, "total_students_in_group": total})
        for aggregate, position in zip(ordered, ranks)
    ]


def subject_positions(group: Sequence[StudentAggregate]) -> dict[str, list[SubjectPosition]]:
    """Position of each student within every subject, by mark descending.

    Only graded marks take part; equal marks share a position (1, 1, 3).
    """
    by_subject: dict[str, list[tuple[Decimal, str]]] = {}
    for aggregate in group:
        for score in aggregate.subject_scores:
            if score.is_graded:
                by_subject.setdefault(score.subject_id, []).append(
                    (score.mark, aggregate.student_id)
                )

    positions: dict[str, list[SubjectPosition]] = {}
    for subject_id, entries in by_subject.items():
        entries.sort(key=lambda item: item[1])
        entries.sort(key=lambda item: item[0], reverse=True)
        ranks = _assign_ranks([mark for mark, _ in entries], TiePolicy.COMPETITION)
        positions[subject_id] = [
            SubjectPosition(
                subject_id=subject_id,
                student_id=student_id,
                mark=mark,
                position=position,
                out_of=len(entries),
            )
            for (mark, student_id), position in zip(entries, ranks)
        ]
    return positions
