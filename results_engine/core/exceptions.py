"""Custom exception classes and error handling."""

from typing import Any

from results_engine.schemas.common import ErrorDetail, ErrorResponse


class EngineError(Exception):
    """Base results engine exception."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Standard error envelope."""
        return ErrorResponse(
            error=ErrorDetail(code=self.code, message=self.message, details=self.details)
        ).model_dump()


class ValidationError(EngineError):
    """Input data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class InvalidMarkError(EngineError):
    """A present mark lies outside the grading scale."""

    def __init__(
        self,
        mark: Any,
        max_mark: Any = 100,
        subject_id: str | None = None,
    ):
        details: dict[str, Any] = {"mark": str(mark), "max_mark": str(max_mark)}
        if subject_id:
            details["subject_id"] = subject_id
        super().__init__(
            code="INVALID_MARK",
            message=f"Mark {mark} is outside the range 0-{max_mark}",
            details=details,
        )


class InsufficientSubjectsError(EngineError):
    """Fewer gradable subjects than the selection policy requires."""

    def __init__(
        self,
        required: int,
        available: int,
        student_id: str | None = None,
    ):
        self.required = required
        self.available = available
        details: dict[str, Any] = {"required": required, "available": available}
        if student_id:
            details["student_id"] = student_id
        super().__init__(
            code="INSUFFICIENT_SUBJECTS",
            message=f"{available} gradable subjects available, {required} required",
            details=details,
        )


class EmptyGroupError(EngineError):
    """An operation needed at least one ranked student."""

    def __init__(self, message: str = "Group has no ranked students"):
        super().__init__(
            code="EMPTY_GROUP",
            message=message,
        )


class NotFoundError(EngineError):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} not found",
            details=details,
        )


class MarksUnavailableError(EngineError):
    """The marks source could not supply a student's marks."""

    def __init__(self, student_id: str, reason: str):
        super().__init__(
            code="MARKS_UNAVAILABLE",
            message=f"Marks unavailable for student {student_id}: {reason}",
            details={"student_id": student_id},
        )


class RenderFailure(EngineError):
    """The external report renderer failed for one student."""

    def __init__(
        self,
        message: str = "Report rendering failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code="RENDER_FAILED",
            message=message,
            details=details,
        )


class RenderTimeoutError(RenderFailure):
    """The report job did not finish within the item timeout."""

    def __init__(self, timeout: float):
        super().__init__(
            message=f"Report generation timed out after {timeout:g}s",
            details={"timeout_seconds": timeout},
        )
        self.code = "RENDER_TIMEOUT"
