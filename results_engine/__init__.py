"""School results engine: grading, ranking, class summaries and batch reports."""

from results_engine.core.config import Settings, get_settings
from results_engine.core.exceptions import (
    EmptyGroupError,
    EngineError,
    InsufficientSubjectsError,
    InvalidMarkError,
    MarksUnavailableError,
    NotFoundError,
    RenderFailure,
    RenderTimeoutError,
    ValidationError,
)
from results_engine.core.logging import configure_logging
from results_engine.schemas.batch import (
    BatchItemResult,
    BatchItemStatus,
    BatchProgress,
    BatchReport,
    StudentRef,
)
from results_engine.schemas.grading import (
    Curriculum,
    Division,
    Grade,
    MarkEntry,
    StudentAggregate,
    SubjectInfo,
    SubjectScore,
    SubjectSelection,
)
from results_engine.schemas.mark_sheet import MarkSheet, MarkSheetError
from results_engine.schemas.policy import (
    A_LEVEL_DIVISIONS,
    A_LEVEL_GRADE_SCALE,
    O_LEVEL_DIVISIONS,
    O_LEVEL_GRADE_SCALE,
    DivisionBand,
    DivisionScale,
    GradeBand,
    GradeScale,
    GradingPolicy,
    PaddingRule,
    RankingPolicy,
    RankKey,
    SelectionMode,
    SelectionPolicy,
    SummaryPolicy,
    TiePolicy,
)
from results_engine.schemas.summary import GroupSummary, SubjectPosition, SubjectStatistics
from results_engine.services.aggregation import aggregate, score_student
from results_engine.services.batch import BatchReportRunner, run_batch
from results_engine.services.division import classify
from results_engine.services.export import WorkbookReportRenderer, write_class_broadsheet
from results_engine.services.grade_table import grade, points, remarks, score_mark
from results_engine.services.mark_sheet import parse_mark_sheet
from results_engine.services.ranking import rank, subject_positions
from results_engine.services.report import CompiledGroup, ReportService
from results_engine.services.summary import subject_statistics, summarize

__version__ = "1.0.0"

__all__ = [
    # Errors
    "EngineError",
    "ValidationError",
    "InvalidMarkError",
    "InsufficientSubjectsError",
    "EmptyGroupError",
    "NotFoundError",
    "MarksUnavailableError",
    "RenderFailure",
    "RenderTimeoutError",
    # Records
    "Grade",
    "Division",
    "Curriculum",
    "MarkEntry",
    "SubjectInfo",
    "SubjectScore",
    "SubjectSelection",
    "StudentAggregate",
    "GroupSummary",
    "SubjectStatistics",
    "SubjectPosition",
    # Policy
    "GradeBand",
    "GradeScale",
    "DivisionBand",
    "DivisionScale",
    "SelectionMode",
    "SelectionPolicy",
    "PaddingRule",
    "RankKey",
    "TiePolicy",
    "RankingPolicy",
    "SummaryPolicy",
    "GradingPolicy",
    "O_LEVEL_GRADE_SCALE",
    "A_LEVEL_GRADE_SCALE",
    "O_LEVEL_DIVISIONS",
    "A_LEVEL_DIVISIONS",
    # Grading pipeline
    "grade",
    "points",
    "remarks",
    "score_mark",
    "aggregate",
    "score_student",
    "classify",
    "rank",
    "subject_positions",
    "summarize",
    "subject_statistics",
    # Batch
    "StudentRef",
    "BatchItemStatus",
    "BatchItemResult",
    "BatchProgress",
    "BatchReport",
    "BatchReportRunner",
    "run_batch",
    "CompiledGroup",
    "ReportService",
    # Workbooks
    "MarkSheet",
    "MarkSheetError",
    "parse_mark_sheet",
    "write_class_broadsheet",
    "WorkbookReportRenderer",
    # Settings
    "Settings",
    "get_settings",
    "configure_logging",
]
