"""Shared fixtures for results engine tests."""

from decimal import Decimal

import pytest

from results_engine.schemas.grading import MarkEntry, SubjectInfo
from results_engine.schemas.policy import GradingPolicy


def make_marks(student_id: str, marks: dict) -> list[MarkEntry]:
    """Mark entries in dict order; None means absent."""
    return [
        MarkEntry(
            student_id=student_id,
            subject_id=subject_id,
            mark=None if mark is None else Decimal(str(mark)),
        )
        for subject_id, mark in marks.items()
    ]


class DictMarksSource:
    """In-memory marks source keyed by student_id."""

    def __init__(self, marks_by_student: dict[str, list[MarkEntry]], failing: set[str] | None = None):
        self.marks_by_student = marks_by_student
        self.failing = failing or set()

    def marks_for(self, student_id: str) -> list[MarkEntry]:
        if student_id in self.failing:
            raise ConnectionError("marks store unavailable")
        return self.marks_by_student.get(student_id, [])


@pytest.fixture
def o_level_policy() -> GradingPolicy:
    return GradingPolicy.o_level()


@pytest.fixture
def a_level_policy() -> GradingPolicy:
    return GradingPolicy.a_level()


@pytest.fixture
def o_level_subjects() -> dict[str, SubjectInfo]:
    names = [
        "Mathematics", "English", "Kiswahili", "Biology", "Chemistry",
        "Physics", "History", "Geography", "Civics",
    ]
    return {name[:4].upper(): SubjectInfo(subject_id=name[:4].upper(), name=name) for name in names}


@pytest.fixture
def a_level_subjects() -> dict[str, SubjectInfo]:
    return {
        "PHY": SubjectInfo(subject_id="PHY", name="Physics", is_principal=True),
        "CHE": SubjectInfo(subject_id="CHE", name="Chemistry", is_principal=True),
        "MAT": SubjectInfo(subject_id="MAT", name="Advanced Mathematics", is_principal=True),
        "BAM": SubjectInfo(subject_id="BAM", name="Basic Applied Mathematics"),
        "GS": SubjectInfo(subject_id="GS", name="General Studies", is_counted=False),
    }
