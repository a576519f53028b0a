from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from darkroom.application.dtos.operation_dto import OperationDTO, operation_from_entity
from darkroom.domain.entities.edit_history import HistoryState
from darkroom.domain.entities.image import ImageMetadata
from darkroom.domain.entities.preview import PreviewResult


class ImageMetadataDTO(BaseModel):
    """Metadata of the loaded source image."""
    width: int = Field(..., description="Width in pixels", example=1920)
    height: int = Field(..., description="Height in pixels", example=1080)
    format: str = Field(..., description="Decoded container format", example="PNG")
    byte_size: int = Field(..., description="Size of the encoded source in bytes", example=2048576)
    path: Optional[str] = Field(None, description="Source path, absent for uploads", example="/photos/beach.png")

    @classmethod
    def from_entity(cls, meta: ImageMetadata) -> ImageMetadataDTO:
        return cls(
            width=meta.width,
            height=meta.height,
            format=meta.format,
            byte_size=meta.byte_size,
            path=meta.path,
        )


class PreviewResponse(BaseModel):
    """Rendered state of the session, downsampled for display."""
    preview_base64: str = Field(..., description="Preview as a data URL", example="data:image/png;base64,iVBORw0...")
    width: int = Field(..., description="Full-resolution width of the edited image", example=1920)
    height: int = Field(..., description="Full-resolution height of the edited image", example=1080)
    preview_width: int = Field(..., description="Width of the encoded preview", example=1024)
    preview_height: int = Field(..., description="Height of the encoded preview", example=576)

    @classmethod
    def from_entity(cls, result: PreviewResult) -> PreviewResponse:
        return cls(
            preview_base64=result.preview_base64,
            width=result.width,
            height=result.height,
            preview_width=result.preview_width,
            preview_height=result.preview_height,
        )


class OpenImageRequest(BaseModel):
    """Request model for opening an image from disk."""
    file_path: str = Field(..., description="Path of the image to edit", example="/photos/beach.png")
    preview_max_width: Optional[int] = Field(None, description="Preview bounding box width", example=1024, ge=1)
    preview_max_height: Optional[int] = Field(None, description="Preview bounding box height", example=1024, ge=1)


class OpenImageResponse(BaseModel):
    """Response model for a freshly opened image."""
    metadata: ImageMetadataDTO = Field(..., description="Source image metadata")
    preview: PreviewResponse = Field(..., description="Preview of the unedited image")


class ApplyOperationRequest(BaseModel):
    """Request model for applying one operation to the session."""
    operation: OperationDTO = Field(..., description="Operation to push onto the history")
    preview_max_width: Optional[int] = Field(None, description="Preview bounding box width", example=1024, ge=1)
    preview_max_height: Optional[int] = Field(None, description="Preview bounding box height", example=1024, ge=1)


class PreviewRequest(BaseModel):
    """Request model for previewing an arbitrary operation list."""
    operations: list[OperationDTO] = Field(default_factory=list, description="Operations to render, oldest first")
    max_width: Optional[int] = Field(None, description="Preview bounding box width", example=800, ge=1)
    max_height: Optional[int] = Field(None, description="Preview bounding box height", example=600, ge=1)


class CropSuggestionRequest(BaseModel):
    """Request model for the largest crop with a given aspect ratio."""
    aspect_ratio: float = Field(..., description="Width / height ratio", example=1.7778, gt=0)
    from_center: bool = Field(True, description="Center the rectangle instead of anchoring it top-left")


class HistoryStateResponse(BaseModel):
    """Undo/redo availability and the operations in effect."""
    can_undo: bool = Field(..., description="Whether undo is possible")
    can_redo: bool = Field(..., description="Whether redo is possible")
    history_count: int = Field(..., description="Number of applied operations", example=3, ge=0)
    redo_count: int = Field(..., description="Number of undone operations available to redo", example=1, ge=0)
    applied: list[OperationDTO] = Field(default_factory=list, description="Applied operations, oldest first")

    @classmethod
    def from_entity(cls, state: HistoryState) -> HistoryStateResponse:
        return cls(
            can_undo=state.can_undo,
            can_redo=state.can_redo,
            history_count=state.history_count,
            redo_count=state.redo_count,
            applied=[operation_from_entity(op) for op in state.applied],
        )
