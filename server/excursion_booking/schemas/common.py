"""Common Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="JSON path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Problem(BaseModel):
    """RFC 9457 Problem Details response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    code: str = Field(..., description="Machine-checkable error kind")
    retryable: bool = Field(False, description="Whether the operation can be retried")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    error_id: Optional[str] = Field(None, description="Server-side error reference for 500 responses")
    violations: Optional[List[Violation]] = Field(None, description="Validation errors")


def problem_responses(*status_codes: int) -> dict:
    """OpenAPI ``responses`` entries documenting Problem Details bodies."""
    return {
        code: {"model": Problem, "content": {"application/problem+json": {}}}
        for code in status_codes
    }
