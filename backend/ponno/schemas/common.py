"""
Shared response envelope and pagination schemas.

Successful requests answer with ``{success, message, data?}`` and failures with
``{success, message, code, errors?}``; keys without a value are omitted.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer


class ApiResponse(BaseModel):
    """Uniform success envelope."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Order created successfully",
                "data": {"order": {"id": "7d3f...", "status": "booked"}},
            }
        }
    )

    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Optional[Any] = Field(None, description="Response payload")

    @model_serializer(mode="wrap")
    def omit_empty_data(self, handler):
        body = handler(self)
        if body.get("data") is None:
            body.pop("data", None)
        return body


class ErrorDetail(BaseModel):
    """Single field validation failure."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope with a stable machine-readable code."""

    success: bool = False
    message: str
    code: str
    errors: Optional[list[ErrorDetail]] = None

    @model_serializer(mode="wrap")
    def omit_empty_errors(self, handler):
        body = handler(self)
        if body.get("errors") is None:
            body.pop("errors", None)
        return body


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation or business rule failure"},
    401: {"model": ErrorResponse, "description": "Missing, invalid or expired token"},
    403: {"model": ErrorResponse, "description": "Caller may not perform this action"},
    404: {"model": ErrorResponse, "description": "Referenced entity not found"},
}


class Pagination(BaseModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)


def success_response(message: str, **data: Any) -> ApiResponse:
    """Build a success envelope, omitting ``data`` when nothing is returned."""
    return ApiResponse(success=True, message=message, data=data or None)
