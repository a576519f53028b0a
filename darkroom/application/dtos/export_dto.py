from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from darkroom.application.dtos.operation_dto import OperationDTO


class ExportRequest(BaseModel):
    """Request model for writing the edited image to disk."""
    output_path: str = Field(..., description="Destination file path", example="/photos/beach-edited.jpg")
    format: str = Field(..., description="Output format: jpeg, jpg, png or webp", example="jpeg")
    quality: Optional[int] = Field(None, description="Encoder quality for jpeg/webp, 1-100 (default 90)", example=90)
    operations: Optional[list[OperationDTO]] = Field(
        None, description="Operations to replay; defaults to the session's applied operations"
    )
    original_path: Optional[str] = Field(
        None, description="Source image; defaults to the path the session was opened from"
    )


class ExportResponse(BaseModel):
    """Response model for a completed export."""
    path: str = Field(..., description="Path of the written file", example="/photos/beach-edited.jpg")
    byte_size: int = Field(..., description="Size of the written file in bytes", example=524288)
    format: str = Field(..., description="Format that was written", example="jpeg")
