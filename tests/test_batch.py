"""Batch report runner tests."""

import threading
import time

import pytest

from results_engine.core.exceptions import NotFoundError
from results_engine.schemas.batch import BatchItemStatus, StudentRef
from results_engine.services.batch import BatchReportRunner, run_batch


def make_students(count: int) -> list[StudentRef]:
    return [StudentRef(student_id=f"S{i:03d}", student_name=f"Student {i}") for i in range(1, count + 1)]


def artifact_job(student: StudentRef) -> str:
    return f"reports/{student.student_id}.xlsx"


class TestBatchReportRunner:
    """Sequential and concurrent batch runs."""

    def test_one_failure_does_not_stop_the_batch(self):
        students = make_students(5)

        def job(student: StudentRef) -> str:
            if student.student_id == "S003":
                raise RuntimeError("renderer crashed")
            return artifact_job(student)

        report = run_batch(students, job)

        assert report.completed_count == 5
        assert report.attempted_count == 5
        assert report.total_count == 5
        assert [r.student_id for r in report.results] == [s.student_id for s in students]
        assert report.results[2].status == BatchItemStatus.FAILED
        assert report.results[2].error_code == "RENDER_FAILED"
        assert report.results[2].error_message == "renderer crashed"
        assert report.results[2].success is False
        assert all(report.results[i].success for i in (0, 1, 3, 4))
        assert report.results[0].artifact_reference == "reports/S001.xlsx"
        assert report.results[0].student_name == "Student 1"
        assert len(report.failed) == 1
        assert report.message == "Generated 4 of 5 reports, 1 failed"

    def test_engine_error_keeps_its_code(self):
        def job(student: StudentRef) -> str:
            raise NotFoundError("Student results", student.student_id)

        report = run_batch(make_students(1), job)

        assert report.results[0].error_code == "NOT_FOUND"
        assert report.results[0].error_message == "Student results not found"

    def test_exception_without_message_uses_type_name(self):
        def job(student: StudentRef) -> str:
            raise KeyError()

        report = run_batch(make_students(1), job)

        assert report.results[0].error_message == "KeyError"

    def test_order_preserved_with_worker_pool(self):
        students = make_students(8)

        def job(student: StudentRef) -> str:
            # Earlier students finish later
            time.sleep(0.01 * (9 - int(student.student_id[1:])))
            return artifact_job(student)

        report = run_batch(students, job, max_workers=3)

        assert [r.student_id for r in report.results] == [s.student_id for s in students]
        assert [r.artifact_reference for r in report.results] == [artifact_job(s) for s in students]
        assert report.completed_count == 8

    def test_progress_events(self):
        events = []

        report = run_batch(make_students(3), artifact_job, progress_callback=events.append)

        assert [(e.completed_count, e.total_count) for e in events] == [(1, 3), (2, 3), (3, 3)]
        assert events[-1].percent == 100.0
        assert report.completed_count == 3

    def test_progress_listener_errors_are_ignored(self):
        def listener(progress):
            raise RuntimeError("listener broke")

        report = run_batch(make_students(3), artifact_job, progress_callback=listener)

        assert len(report.succeeded) == 3

    def test_cancellation_stops_launching_new_items(self):
        cancel_event = threading.Event()

        def listener(progress):
            if progress.completed_count == 2:
                cancel_event.set()

        report = run_batch(
            make_students(5),
            artifact_job,
            progress_callback=listener,
            cancel_event=cancel_event,
        )

        assert report.cancelled is True
        assert report.completed_count == 5
        assert report.attempted_count == 2
        assert [r.status for r in report.results] == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.CANCELLED,
            BatchItemStatus.CANCELLED,
            BatchItemStatus.CANCELLED,
        ]
        assert report.results[2].error_message == "Not attempted: batch cancelled"
        assert len(report.not_attempted) == 3
        assert report.message.endswith("3 cancelled")

    def test_cancelled_before_start(self):
        cancel_event = threading.Event()
        cancel_event.set()

        report = run_batch(make_students(2), artifact_job, cancel_event=cancel_event)

        assert report.attempted_count == 0
        assert all(r.status == BatchItemStatus.CANCELLED for r in report.results)

    def test_item_timeout_fails_only_the_slow_item(self):
        def job(student: StudentRef) -> str:
            if student.student_id == "S001":
                time.sleep(0.5)
            return artifact_job(student)

        report = run_batch(make_students(3), job, item_timeout=0.05)

        assert report.results[0].status == BatchItemStatus.FAILED
        assert report.results[0].error_code == "RENDER_TIMEOUT"
        assert "timed out" in report.results[0].error_message
        assert report.results[1].success
        assert report.results[2].success
        assert report.completed_count == 3

    @pytest.mark.parametrize("max_workers", [1, 2])
    def test_hung_job_does_not_block_later_items(self, max_workers):
        release = threading.Event()

        def job(student: StudentRef) -> str:
            if student.student_id == "S001":
                release.wait(5)
            return artifact_job(student)

        started = time.monotonic()
        try:
            report = run_batch(make_students(3), job, max_workers=max_workers, item_timeout=0.1)
            elapsed = time.monotonic() - started
        finally:
            release.set()

        assert elapsed < 1.0
        assert report.results[0].error_code == "RENDER_TIMEOUT"
        assert report.results[1].success
        assert report.results[2].success
        assert report.attempted_count == 3

    def test_empty_batch(self):
        events = []

        report = run_batch([], artifact_job, progress_callback=events.append)

        assert report.results == []
        assert report.total_count == 0
        assert events == []

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"item_timeout": 0}, {"item_timeout": -1.0}])
    def test_invalid_runner_arguments(self, kwargs):
        with pytest.raises(ValueError):
            BatchReportRunner(artifact_job, **kwargs)
