"""Common schema utilities and base classes."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable schema; derived copies are made with model_copy()."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )


class ErrorDetail(BaseSchema):
    """Error detail structure."""

    code: str
    message: str
    details: dict[str, Any] = {}


class ErrorResponse(BaseSchema):
    """Standard error response."""

    success: bool = False
    error: ErrorDetail
