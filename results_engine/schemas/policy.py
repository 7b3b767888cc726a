"""Grading policy schemas.

Every pure function in ``results_engine.services`` takes its policy as an
explicit argument. The presets below reproduce the O-Level and A-Level tables
used on printed academic reports.
"""

import enum
from decimal import Decimal

from pydantic import Field, model_validator

from results_engine.schemas.common import FrozenSchema
from results_engine.schemas.grading import Curriculum, Division, Grade


# ==========================================
# Grade scale
# ==========================================

class GradeBand(FrozenSchema):
    """Inclusive lower bound of a grade band."""

    grade: Grade
    min_mark: Decimal = Field(..., ge=0)


class GradeScale(FrozenSchema):
    """Mark bands, points and remarks for one curriculum."""

    name: str
    bands: tuple[GradeBand, ...]
    points: dict[Grade, int]
    remarks: dict[Grade, str] = {}
    max_mark: Decimal = Decimal("100")
    failing_grades: frozenset[Grade] = frozenset({Grade.F})

    @model_validator(mode="after")
    def validate_bands(self) -> "GradeScale":
        if not self.bands:
            raise ValueError("Grade scale needs at least one band")
        bounds = [band.min_mark for band in self.bands]
        if bounds != sorted(bounds, reverse=True) or len(set(bounds)) != len(bounds):
            raise ValueError("Grade bands must have strictly descending lower bounds")
        if bounds[-1] != 0:
            raise ValueError("Lowest grade band must start at 0")
        if bounds[0] > self.max_mark:
            raise ValueError("Grade band starts above max_mark")
        missing = [band.grade.value for band in self.bands if band.grade not in self.points]
        if missing or Grade.NA not in self.points:
            raise ValueError(f"Points missing for grades: {missing or ['NA']}")
        return self

    @property
    def worst_points(self) -> int:
        """Points of the worst gradable grade, used for padding."""
        return max(self.points[band.grade] for band in self.bands)

    @property
    def grades(self) -> list[Grade]:
        return [band.grade for band in self.bands]


# O-Level: 81-100 A, 61-80 B, 41-60 C, 31-40 D, 21-30 E, 0-20 F.
# F scores 9, not 6.
O_LEVEL_GRADE_SCALE = GradeScale(
    name="O_LEVEL",
    bands=(
        GradeBand(grade=Grade.A, min_mark=Decimal("81")),
        GradeBand(grade=Grade.B, min_mark=Decimal("61")),
        GradeBand(grade=Grade.C, min_mark=Decimal("41")),
        GradeBand(grade=Grade.D, min_mark=Decimal("31")),
        GradeBand(grade=Grade.E, min_mark=Decimal("21")),
        GradeBand(grade=Grade.F, min_mark=Decimal("0")),
    ),
    points={
        Grade.A: 1,
        Grade.B: 2,
        Grade.C: 3,
        Grade.D: 4,
        Grade.E: 5,
        Grade.F: 9,
        Grade.NA: 0,
    },
    remarks={
        Grade.A: "Excellent",
        Grade.B: "Very Good",
        Grade.C: "Good",
        Grade.D: "Satisfactory",
        Grade.E: "Pass",
        Grade.F: "Fail",
        Grade.NA: "-",
    },
)

A_LEVEL_GRADE_SCALE = GradeScale(
    name="A_LEVEL",
    bands=(
        GradeBand(grade=Grade.A, min_mark=Decimal("80")),
        GradeBand(grade=Grade.B, min_mark=Decimal("70")),
        GradeBand(grade=Grade.C, min_mark=Decimal("60")),
        GradeBand(grade=Grade.D, min_mark=Decimal("50")),
        GradeBand(grade=Grade.E, min_mark=Decimal("40")),
        GradeBand(grade=Grade.S, min_mark=Decimal("35")),
        GradeBand(grade=Grade.F, min_mark=Decimal("0")),
    ),
    points={
        Grade.A: 1,
        Grade.B: 2,
        Grade.C: 3,
        Grade.D: 4,
        Grade.E: 5,
        Grade.S: 6,
        Grade.F: 7,
        Grade.NA: 0,
    },
    remarks={
        Grade.A: "Excellent",
        Grade.B: "Very Good",
        Grade.C: "Good",
        Grade.D: "Satisfactory",
        Grade.E: "Pass",
        Grade.S: "Subsidiary Pass",
        Grade.F: "Fail",
        Grade.NA: "-",
    },
)


# ==========================================
# Division scale
# ==========================================

class DivisionBand(FrozenSchema):
    """Inclusive range of total points for one division."""

    division: Division
    min_points: int
    max_points: int

    @model_validator(mode="after")
    def validate_range(self) -> "DivisionBand":
        if self.division == Division.ZERO:
            raise ValueError("Division 0 is the fallback band and takes no range")
        if self.min_points > self.max_points:
            raise ValueError(f"Empty points range for division {self.division.value}")
        return self


class DivisionScale(FrozenSchema):
    """Disjoint division bands; totals outside every band fall to division 0."""

    name: str
    bands: tuple[DivisionBand, ...]

    @model_validator(mode="after")
    def validate_disjoint(self) -> "DivisionScale":
        ordered = sorted(self.bands, key=lambda band: band.min_points)
        for previous, current in zip(ordered, ordered[1:]):
            if current.min_points <= previous.max_points:
                raise ValueError(
                    f"Division bands {previous.division.value} and "
                    f"{current.division.value} overlap"
                )
        return self


O_LEVEL_DIVISIONS = DivisionScale(
    name="O_LEVEL",
    bands=(
        DivisionBand(division=Division.I, min_points=7, max_points=17),
        DivisionBand(division=Division.II, min_points=18, max_points=21),
        DivisionBand(division=Division.III, min_points=22, max_points=25),
        DivisionBand(division=Division.IV, min_points=26, max_points=33),
    ),
)

A_LEVEL_DIVISIONS = DivisionScale(
    name="A_LEVEL",
    bands=(
        DivisionBand(division=Division.I, min_points=3, max_points=9),
        DivisionBand(division=Division.II, min_points=10, max_points=12),
        DivisionBand(division=Division.III, min_points=13, max_points=17),
        DivisionBand(division=Division.IV, min_points=18, max_points=19),
    ),
)


# ==========================================
# Selection, ranking and summary policies
# ==========================================

class SelectionMode(str, enum.Enum):
    """How subjects compete for the best-N slots."""

    BEST_N = "best_n"
    PRINCIPAL_FIRST = "principal_first"
    PRINCIPAL_ONLY = "principal_only"


class PaddingRule(str, enum.Enum):
    """What to do when fewer than N subjects are gradable."""

    EXCLUDE = "exclude"            # sum whatever is gradable
    WORST_POINTS = "worst_points"  # fill each missing slot with the worst points


class SelectionPolicy(FrozenSchema):
    """Best-N subject selection policy.

    ``padding=None`` means no padding rule is defined, so a student with fewer
    than ``best_of`` gradable subjects raises InsufficientSubjectsError.
    """

    best_of: int = Field(7, ge=1)
    mode: SelectionMode = SelectionMode.BEST_N
    padding: PaddingRule | None = None
    excluded_subjects: frozenset[str] = frozenset()


class RankKey(str, enum.Enum):
    """Student attribute the ranker sorts on."""

    TOTAL_POINTS = "total_points"
    AVERAGE_MARKS = "average_marks"


class TiePolicy(str, enum.Enum):
    """Rank assignment for equal keys."""

    COMPETITION = "competition"  # 1, 1, 3
    DENSE = "dense"              # 1, 1, 2


class RankingPolicy(FrozenSchema):
    """Class ranking policy; ties are broken by student_id ascending."""

    key: RankKey = RankKey.TOTAL_POINTS
    descending: bool = True
    tie_policy: TiePolicy = TiePolicy.COMPETITION


class SummaryPolicy(FrozenSchema):
    """Class summary policy."""

    pass_threshold: Division = Division.IV

    @model_validator(mode="after")
    def validate_threshold(self) -> "SummaryPolicy":
        if self.pass_threshold == Division.ZERO:
            raise ValueError("Division 0 cannot be a pass threshold")
        return self


class GradingPolicy(FrozenSchema):
    """Complete policy bundle passed through the pipeline."""

    curriculum: Curriculum = Curriculum.O_LEVEL
    grade_scale: GradeScale = O_LEVEL_GRADE_SCALE
    divisions: DivisionScale = O_LEVEL_DIVISIONS
    selection: SelectionPolicy = SelectionPolicy(padding=PaddingRule.EXCLUDE)
    ranking: RankingPolicy = RankingPolicy()
    summary: SummaryPolicy = SummaryPolicy()

    @classmethod
    def o_level(cls, **overrides) -> "GradingPolicy":
        """Best seven subjects on the O-Level scale."""
        return cls(**overrides)

    @classmethod
    def a_level(cls, **overrides) -> "GradingPolicy":
        """Best three principal subjects on the A-Level scale."""
        values = {
            "curriculum": Curriculum.A_LEVEL,
            "grade_scale": A_LEVEL_GRADE_SCALE,
            "divisions": A_LEVEL_DIVISIONS,
            "selection": SelectionPolicy(
                best_of=3,
                mode=SelectionMode.PRINCIPAL_ONLY,
                padding=PaddingRule.EXCLUDE,
            ),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def for_curriculum(cls, curriculum: Curriculum | str) -> "GradingPolicy":
        curriculum = Curriculum(curriculum)
        if curriculum == Curriculum.A_LEVEL:
            return cls.a_level()
        return cls.o_level()
