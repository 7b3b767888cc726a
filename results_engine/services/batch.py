"""Batch report orchestrator."""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from results_engine.core.exceptions import EngineError, RenderFailure, RenderTimeoutError
from results_engine.schemas.batch import (
    BatchItemResult,
    BatchItemStatus,
    BatchProgress,
    BatchReport,
    StudentRef,
)

logger = logging.getLogger(__name__)

StudentJob = Callable[[StudentRef], str]
ProgressCallback = Callable[[BatchProgress], None]


class BatchReportRunner:
    """Run a per-student job over a list of students.

    Results are stored in slots addressed by the student's position in the
    request, so ordering holds whether jobs run one at a time or on a pool.
    One student's failure is recorded against that student only.
    """

    def __init__(
        self,
        job: StudentJob,
        max_workers: int = 1,
        item_timeout: float | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if item_timeout is not None and item_timeout <= 0:
            raise ValueError("item_timeout must be positive")
        self.job = job
        self.max_workers = max_workers
        self.item_timeout = item_timeout
        self.progress_callback = progress_callback

    def run(
        self,
        students: Sequence[StudentRef],
        cancel_event: threading.Event | None = None,
    ) -> BatchReport:
        """Process every student and return the ordered BatchReport.

        ``cancel_event`` is checked before each job is launched. Jobs already
        running finish normally; students never launched are recorded as
        cancelled.
        """
        total = len(students)
        slots: list[BatchItemResult | None] = [None] * total
        started_at: dict[int, float] = {}
        started_lock = threading.Lock()
        completed = 0
        cancelled = False

        logger.info(f"[BATCH] Starting - {total} students, max_workers={self.max_workers}")

        def invoke(index: int) -> str:
            with started_lock:
                started_at[index] = time.monotonic()
            return self.job(students[index])

        def finish(index: int, result: BatchItemResult) -> None:
            nonlocal completed
            slots[index] = result
            completed += 1
            self._notify(completed, total)

        executor = self._new_executor()
        retired: list[ThreadPoolExecutor] = []
        pending: dict[Future, int] = {}
        next_index = 0
        try:
            while next_index < total or pending:
                while not cancelled and next_index < total and len(pending) < self.max_workers:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        logger.info(f"[BATCH] Cancelled before student #{next_index + 1}")
                        break
                    pending[executor.submit(invoke, next_index)] = next_index
                    next_index += 1

                if not pending:
                    break

                with started_lock:
                    wait_timeout = self._wait_timeout(pending.values(), started_at)
                done, _ = wait(pending, timeout=wait_timeout, return_when=FIRST_COMPLETED)

                for future in done:
                    index = pending.pop(future)
                    finish(index, self._collect(students[index], future))

                if self.item_timeout is None:
                    continue
                now = time.monotonic()
                timed_out = False
                for future, index in list(pending.items()):
                    with started_lock:
                        started = started_at.get(index)
                    if started is None or now - started < self.item_timeout or future.done():
                        continue
                    # The thread keeps running; its late result is dropped
                    del pending[future]
                    error = RenderTimeoutError(self.item_timeout)
                    logger.warning(
                        f"[BATCH] Student {students[index].student_id} timed out",
                        extra={"student_id": students[index].student_id, "timeout": self.item_timeout},
                    )
                    finish(index, self._failed(students[index], error.code, error.message))
                    timed_out = True

                if timed_out:
                    # A stuck worker still holds its pool slot; later items go to a fresh pool
                    retired.append(executor)
                    executor = self._new_executor()
        finally:
            for old in retired:
                old.shutdown(wait=False, cancel_futures=True)
            executor.shutdown(wait=False, cancel_futures=True)

        for index in range(next_index, total):
            slots[index] = BatchItemResult(
                student_id=students[index].student_id,
                student_name=students[index].student_name,
                status=BatchItemStatus.CANCELLED,
                error_message="Not attempted: batch cancelled",
            )

        report = BatchReport(
            results=slots,
            completed_count=total,
            attempted_count=completed,
            total_count=total,
            cancelled=cancelled,
        )
        logger.info(f"[BATCH] Completed: {report.message}")
        return report

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="report-batch")

    def _wait_timeout(self, indices, started_at: dict[int, float]) -> float | None:
        """Seconds until the earliest running job expires."""
        if self.item_timeout is None:
            return None
        now = time.monotonic()
        remaining = [
            self.item_timeout - (now - started_at[index])
            for index in indices
            if index in started_at
        ]
        if not remaining:
            return self.item_timeout
        return max(0.0, min(remaining))

    def _collect(self, student: StudentRef, future: Future) -> BatchItemResult:
        try:
            artifact = future.result()
        except EngineError as e:
            logger.warning(
                f"[BATCH] Student {student.student_id} failed: {e.message}",
                extra={"student_id": student.student_id, "error_code": e.code},
            )
            return self._failed(student, e.code, e.message)
        except Exception as e:
            logger.exception(f"[BATCH] Student {student.student_id} failed unexpectedly")
            return self._failed(student, RenderFailure().code, str(e) or type(e).__name__)

        return BatchItemResult(
            student_id=student.student_id,
            student_name=student.student_name,
            status=BatchItemStatus.SUCCEEDED,
            artifact_reference=artifact,
        )

    def _failed(self, student: StudentRef, code: str, message: str) -> BatchItemResult:
        return BatchItemResult(
            student_id=student.student_id,
            student_name=student.student_name,
            status=BatchItemStatus.FAILED,
            error_code=code,
            error_message=message or code,
        )

    def _notify(self, completed: int, total: int) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(BatchProgress(completed_count=completed, total_count=total))
        except Exception:
            logger.exception("[BATCH] Progress listener raised; continuing")


def run_batch(
    students: Sequence[StudentRef],
    job: StudentJob,
    max_workers: int = 1,
    item_timeout: float | None = None,
    progress_callback: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> BatchReport:
    """Convenience wrapper around BatchReportRunner."""
    runner = BatchReportRunner(
        job,
        max_workers=max_workers,
        item_timeout=item_timeout,
        progress_callback=progress_callback,
    )
    return runner.run(students, cancel_event=cancel_event)
