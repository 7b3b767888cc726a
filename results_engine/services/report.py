"""Report assembly: compile a class result and drive per-student rendering."""

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pydantic import ConfigDict, Field, PrivateAttr

from results_engine.core.config import Settings, get_settings
from results_engine.core.exceptions import (
    EmptyGroupError,
    EngineError,
    MarksUnavailableError,
    NotFoundError,
    RenderFailure,
)
from results_engine.schemas.batch import BatchReport, StudentRef
from results_engine.schemas.common import BaseSchema
from results_engine.schemas.grading import MarkEntry, StudentAggregate, SubjectInfo
from results_engine.schemas.policy import GradingPolicy
from results_engine.schemas.summary import GroupSummary, SubjectPosition, SubjectStatistics
from results_engine.services.aggregation import score_student
from results_engine.services.batch import BatchReportRunner, ProgressCallback, StudentJob
from results_engine.services.export import WorkbookReportRenderer
from results_engine.services.ranking import rank, subject_positions
from results_engine.services.summary import subject_statistics, summarize

logger = logging.getLogger(__name__)


class MarksSource(Protocol):
    """Supplies a student's mark entries for one exam period."""

    def marks_for(self, student_id: str) -> Sequence[MarkEntry]: ...


class ReportRenderer(Protocol):
    """Renders one student's report and returns an artifact reference."""

    def render(self, aggregate: StudentAggregate, summary: GroupSummary) -> str: ...


class CompiledGroup(BaseSchema):
    """Ranked class results plus the students that could not be scored."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ranked: list[StudentAggregate]
    summary: GroupSummary
    subject_statistics: list[SubjectStatistics] = Field(default_factory=list)
    subject_positions: dict[str, list[SubjectPosition]] = Field(default_factory=dict)
    errors: dict[str, EngineError] = Field(default_factory=dict)

    _by_student: dict[str, StudentAggregate] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._by_student = {aggregate.student_id: aggregate for aggregate in self.ranked}

    def lookup(self, student_id: str) -> StudentAggregate:
        """Rank context for one student."""
        if student_id in self.errors:
            raise self.errors[student_id]
        if not self.ranked:
            raise EmptyGroupError()
        aggregate = self._by_student.get(student_id)
        if aggregate is None:
            raise NotFoundError("Student results", student_id)
        return aggregate

    def position_in(self, subject_id: str, student_id: str) -> SubjectPosition | None:
        for position in self.subject_positions.get(subject_id, []):
            if position.student_id == student_id:
                return position
        return None


class ReportService:
    """Class report compilation and batch generation."""

    def __init__(
        self,
        policy: GradingPolicy,
        renderer: ReportRenderer,
        max_workers: int = 1,
        item_timeout: float | None = None,
    ):
        self.policy = policy
        self.renderer = renderer
        self.max_workers = max_workers
        self.item_timeout = item_timeout

    @classmethod
    def from_settings(
        cls,
        renderer: ReportRenderer | None = None,
        settings: Settings | None = None,
        policy: GradingPolicy | None = None,
        subjects: Mapping[str, SubjectInfo] | None = None,
        student_names: Mapping[str, str] | None = None,
    ) -> "ReportService":
        """Build a service from settings.

        Without a renderer, result sheets are written to REPORT_OUTPUT_DIR,
        labelled with ``subjects`` and ``student_names`` where given.
        """
        settings = settings or get_settings()
        policy = policy or GradingPolicy.for_curriculum(settings.DEFAULT_CURRICULUM)
        if renderer is None:
            renderer = WorkbookReportRenderer(
                settings.REPORT_OUTPUT_DIR,
                scale=policy.grade_scale,
                subjects=subjects,
                student_names=student_names,
            )
        return cls(
            policy=policy,
            renderer=renderer,
            max_workers=settings.BATCH_MAX_WORKERS,
            item_timeout=settings.BATCH_ITEM_TIMEOUT_SECONDS,
        )

    def compile_group(
        self,
        students: Sequence[StudentRef],
        marks_source: MarksSource,
        subjects: Mapping[str, SubjectInfo] | None = None,
    ) -> CompiledGroup:
        """Fetch, score, rank and summarize one class.

        A student whose marks cannot be fetched or scored is left out of the
        ranking; the error is kept for that student's batch item. A student
        listed more than once is scored once.
        """
        scored: list[StudentAggregate] = []
        errors: dict[str, EngineError] = {}
        seen: set[str] = set()

        for student in students:
            if student.student_id in seen:
                continue
            seen.add(student.student_id)

            try:
                marks = marks_source.marks_for(student.student_id)
            except EngineError as e:
                errors[student.student_id] = e
                continue
            except Exception as e:
                logger.exception(f"Marks source failed for student {student.student_id}")
                errors[student.student_id] = MarksUnavailableError(student.student_id, str(e))
                continue

            try:
                scored.append(score_student(student.student_id, marks, self.policy, subjects))
            except EngineError as e:
                logger.warning(
                    f"Could not score student {student.student_id}: {e.message}",
                    extra={"student_id": student.student_id, "error_code": e.code},
                )
                errors[student.student_id] = e

        ranked = rank(scored, self.policy.ranking)
        summary = summarize(ranked, self.policy.summary)

        logger.info(
            f"Compiled class results: {len(ranked)} ranked, {len(errors)} with errors",
            extra={"ranked": len(ranked), "errors": len(errors)},
        )

        return CompiledGroup(
            ranked=ranked,
            summary=summary,
            subject_statistics=subject_statistics(ranked, self.policy.grade_scale),
            subject_positions=subject_positions(ranked),
            errors=errors,
        )

    def build_job(self, compiled: CompiledGroup) -> StudentJob:
        """Per-student job: rank-context lookup, then render."""

        def job(student: StudentRef) -> str:
            aggregate = compiled.lookup(student.student_id)
            try:
                return self.renderer.render(aggregate, compiled.summary)
            except EngineError:
                raise
            except Exception as e:
                raise RenderFailure(
                    str(e) or f"Renderer raised {type(e).__name__}",
                    details={"student_id": student.student_id},
                ) from e

        return job

    def generate_reports(
        self,
        students: Sequence[StudentRef],
        marks_source: MarksSource,
        subjects: Mapping[str, SubjectInfo] | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> tuple[CompiledGroup, BatchReport]:
        """Compile the class, then render every requested student's report."""
        compiled = self.compile_group(students, marks_source, subjects)
        runner = BatchReportRunner(
            self.build_job(compiled),
            max_workers=self.max_workers,
            item_timeout=self.item_timeout,
            progress_callback=progress_callback,
        )
        return compiled, runner.run(students, cancel_event=cancel_event)
