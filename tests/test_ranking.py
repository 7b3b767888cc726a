"""Ranking tests."""

from decimal import Decimal

import pytest

from results_engine.core.exceptions import ValidationError
from results_engine.schemas.grading import Division, Grade, StudentAggregate, SubjectScore
from results_engine.schemas.policy import RankingPolicy, RankKey, TiePolicy
from results_engine.services.ranking import rank, subject_positions


def make_aggregate(
    student_id: str,
    total_points: int,
    average: str | None = "50",
    graded: bool = True,
) -> StudentAggregate:
    return StudentAggregate(
        student_id=student_id,
        subject_scores=(),
        selected_subjects=("MATH",) if graded else (),
        total_points=total_points,
        average_marks=Decimal(average) if average is not None else None,
        division=Division.I if graded else Division.ZERO,
    )


def with_scores(student_id: str, marks: dict) -> StudentAggregate:
    scores = tuple(
        SubjectScore(
            subject_id=subject_id,
            mark=Decimal(str(mark)) if mark is not None else None,
            grade=Grade.B if mark is not None else Grade.NA,
            points=2 if mark is not None else 0,
        )
        for subject_id, mark in marks.items()
    )
    return StudentAggregate(
        student_id=student_id,
        subject_scores=scores,
        selected_subjects=(),
        total_points=0,
        division=Division.ZERO,
    )


class TestRank:
    """Class ranking."""

    def test_competition_ties(self):
        group = [make_aggregate("S1", 20), make_aggregate("S2", 20), make_aggregate("S3", 15)]

        ranked = rank(group)

        assert [(a.student_id, a.rank) for a in ranked] == [("S1", 1), ("S2", 1), ("S3", 3)]

    def test_dense_ties(self):
        group = [make_aggregate("S1", 20), make_aggregate("S2", 20), make_aggregate("S3", 15)]

        ranked = rank(group, RankingPolicy(tie_policy=TiePolicy.DENSE))

        assert [a.rank for a in ranked] == [1, 1, 2]

    def test_ties_ordered_by_student_id(self):
        group = [make_aggregate("S9", 12), make_aggregate("S2", 12), make_aggregate("S5", 12)]

        ranked = rank(group)

        assert [a.student_id for a in ranked] == ["S2", "S5", "S9"]
        assert {a.rank for a in ranked} == {1}

    def test_ranking_is_deterministic_under_input_permutation(self):
        group = [make_aggregate(f"S{i}", points) for i, points in enumerate([14, 9, 14, 30, 9, 17])]

        forward = rank(group)
        backward = rank(list(reversed(group)))

        assert forward == backward

    def test_ascending_points_policy(self):
        group = [make_aggregate("S1", 25), make_aggregate("S2", 9), make_aggregate("S3", 17)]

        ranked = rank(group, RankingPolicy(descending=False))

        assert [a.student_id for a in ranked] == ["S2", "S3", "S1"]

    @pytest.mark.parametrize("descending", [True, False])
    def test_students_without_selected_subjects_rank_last(self, descending):
        group = [
            make_aggregate("S1", 7),
            make_aggregate("S2", 0, average=None, graded=False),
            make_aggregate("S3", 12),
        ]

        ranked = rank(group, RankingPolicy(descending=descending))

        assert ranked[-1].student_id == "S2"
        assert ranked[-1].rank == 3
        assert ranked[0].rank == 1
        assert ranked[0].student_id == ("S3" if descending else "S1")

    def test_sets_group_size_and_leaves_input_untouched(self):
        group = [make_aggregate("S1", 10), make_aggregate("S2", 12)]

        ranked = rank(group)

        assert all(a.total_students_in_group == 2 for a in ranked)
        assert all(a.rank is None for a in group)
        assert all(a.is_ranked for a in ranked)

    def test_rank_by_average_places_missing_last(self):
        group = [
            make_aggregate("S1", 0, average=None),
            make_aggregate("S2", 0, average="61.5"),
            make_aggregate("S3", 0, average="78.25"),
        ]

        ranked = rank(group, RankingPolicy(key=RankKey.AVERAGE_MARKS))

        assert [(a.student_id, a.rank) for a in ranked] == [("S3", 1), ("S2", 2), ("S1", 3)]

    def test_duplicate_students_rejected(self):
        with pytest.raises(ValidationError):
            rank([make_aggregate("S1", 10), make_aggregate("S1", 12)])

    def test_empty_group(self):
        assert rank([]) == []


class TestSubjectPositions:
    """Per-subject positions."""

    def test_positions_by_mark_descending(self):
        group = [
            with_scores("S1", {"MATH": 70, "ENGL": 55}),
            with_scores("S2", {"MATH": 88, "ENGL": None}),
            with_scores("S3", {"MATH": 70, "ENGL": 60}),
        ]

        positions = subject_positions(group)

        math = [(p.student_id, p.position, p.out_of) for p in positions["MATH"]]
        assert math == [("S2", 1, 3), ("S1", 2, 3), ("S3", 2, 3)]
        english = [(p.student_id, p.position) for p in positions["ENGL"]]
        assert english == [("S3", 1), ("S1", 2)]
        assert positions["ENGL"][0].out_of == 2
