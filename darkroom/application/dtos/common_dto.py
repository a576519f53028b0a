"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    """Structured error; ``type`` is stable and safe to branch on."""
    type: str = Field(..., description="Error kind", example="invalid_operation")
    message: str = Field(..., description="Human readable description", example="brightness must be between 0.0 and 2.0, got 2.5")
    field: Optional[str] = Field(None, description="Offending parameter (invalid_operation)", example="brightness")
    bound: Optional[str] = Field(None, description="Violated bound (invalid_operation)", example="[0.0, 2.0]")
    operation_id: Optional[str] = Field(None, description="Failing operation (processing_error)")
    operation_kind: Optional[str] = Field(None, description="Kind of the failing operation (processing_error)")


class ErrorResponse(BaseModel):
    """Standard error response model."""
    detail: ErrorBody = Field(..., description="Error describing what went wrong")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", example="healthy")


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", example="ok")
    service: str = Field(..., description="Service name", example="darkroom")
    version: str = Field(..., description="API version", example="0.1.0")
