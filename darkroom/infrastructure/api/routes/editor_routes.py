from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from darkroom.application.dtos.editor_dto import (
    ApplyOperationRequest,
    CropSuggestionRequest,
    PreviewRequest,
    PreviewResponse,
)
from darkroom.application.dtos.operation_dto import CropRectDTO
from darkroom.application.use_cases.image_state import ImageState
from darkroom.infrastructure.api.dependencies import get_image_state

router = APIRouter(
    prefix="/editor",
    tags=["Editing"],
    responses={
        409: {"description": "Conflict - No image loaded, or nothing to undo/redo"},
        422: {"description": "Validation Error - Operation parameters out of range"},
        500: {"description": "Processing Error - An operation failed while rendering"},
    },
)


@router.post(
    "/operations",
    response_model=PreviewResponse,
    summary="Apply Operation",
    description="""
    Validate an operation, push it onto the history and re-render.

    **Operation types** (`operation_type`):
    - `Filter` - params: `{"type": "grayscale|sepia|invert|blur|sharpen", "intensity": 1.0, "radius": 2.0}`
    - `Adjustment` - params: `{"brightness": 1.2, "contrast": 1.1, "saturation": 0.9, "hue": 15, "gamma": 1.0}`
    - `Transform` - params: `{"type": "rotate90|rotate180|rotate270|flip_horizontal|flip_vertical"}`
    - `Crop` - params: `{"rect": {"x": 0, "y": 0, "width": 800, "height": 600}, "aspect_ratio": null}`

    **Example Request:**
    ```json
    {
      "operation": {"id": "op-1", "operation_type": "Adjustment", "params": {"brightness": 1.5}},
      "preview_max_width": 1024,
      "preview_max_height": 1024
    }
    ```

    Pushing an operation clears the redo history. The history keeps the
    latest 50 operations; older ones are dropped. Operation ids must be
    unique within a session.

    **Response**: preview of the new state plus full-resolution dimensions
    """,
    response_description="Preview of the image with the operation applied",
)
async def apply_operation(
    body: ApplyOperationRequest,
    state: ImageState = Depends(get_image_state),
):
    """Apply one operation and return the new preview."""
    op = body.operation.to_entity()
    result = await asyncio.to_thread(
        state.apply, op, body.preview_max_width, body.preview_max_height
    )
    return PreviewResponse.from_entity(result)


@router.post(
    "/undo",
    response_model=PreviewResponse,
    summary="Undo",
    description="Move the most recent operation to the redo history and re-render.",
    response_description="Preview of the image without the undone operation",
)
async def undo(
    state: ImageState = Depends(get_image_state),
    max_width: int | None = Query(None, ge=1, description="Preview bounding box width"),
    max_height: int | None = Query(None, ge=1, description="Preview bounding box height"),
):
    """Undo the last operation."""
    result = await asyncio.to_thread(state.undo, max_width, max_height)
    return PreviewResponse.from_entity(result)


@router.post(
    "/redo",
    response_model=PreviewResponse,
    summary="Redo",
    description="Re-apply the most recently undone operation and re-render.",
    response_description="Preview of the image with the operation re-applied",
)
async def redo(
    state: ImageState = Depends(get_image_state),
    max_width: int | None = Query(None, ge=1, description="Preview bounding box width"),
    max_height: int | None = Query(None, ge=1, description="Preview bounding box height"),
):
    """Redo the last undone operation."""
    result = await asyncio.to_thread(state.redo, max_width, max_height)
    return PreviewResponse.from_entity(result)


@router.post(
    "/preview",
    response_model=PreviewResponse,
    summary="Preview Operations",
    description="""
    Render an arbitrary operation list against the source image without
    changing the history. Useful for live slider feedback before committing
    an operation.
    """,
    response_description="Preview of the source with the given operations",
)
async def preview(
    body: PreviewRequest,
    state: ImageState = Depends(get_image_state),
):
    """Preview operations without committing them."""
    ops = [dto.to_entity() for dto in body.operations]
    result = await asyncio.to_thread(state.preview, ops, body.max_width, body.max_height)
    return PreviewResponse.from_entity(result)


@router.post(
    "/reset",
    response_model=PreviewResponse,
    summary="Reset Edits",
    description="Clear undo and redo history and return to the unedited source image.",
    response_description="Preview of the unedited source image",
)
async def reset(state: ImageState = Depends(get_image_state)):
    """Discard every edit."""
    result = await asyncio.to_thread(state.reset)
    return PreviewResponse.from_entity(result)


@router.post(
    "/crop-suggestion",
    response_model=CropRectDTO,
    summary="Suggest Crop Rectangle",
    description="""
    Largest rectangle with the requested width/height ratio that fits the
    current image, centered or anchored top-left. Does not change the session.
    """,
    response_description="Crop rectangle in current image pixels",
)
async def crop_suggestion(
    body: CropSuggestionRequest,
    state: ImageState = Depends(get_image_state),
):
    """Suggest a crop for an aspect ratio."""
    rect = state.suggest_crop(body.aspect_ratio, body.from_center)
    return CropRectDTO.from_entity(rect)
