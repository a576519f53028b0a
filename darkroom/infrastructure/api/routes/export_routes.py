from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends

from darkroom.application.dtos.export_dto import ExportRequest, ExportResponse
from darkroom.application.use_cases.export_image import ExportImageUseCase
from darkroom.application.use_cases.image_state import ImageState
from darkroom.domain.errors import StateError
from darkroom.infrastructure.api.dependencies import get_export_use_case, get_image_state

router = APIRouter(
    prefix="/export",
    tags=["Export"],
    responses={
        403: {"description": "Forbidden - Destination not writable"},
        409: {"description": "Conflict - No source image to export from"},
        415: {"description": "Unsupported Media Type - Unknown export format"},
        422: {"description": "Validation Error - Quality or operation out of range"},
        500: {"description": "Save or Processing Error"},
    },
)


@router.post(
    "",
    response_model=ExportResponse,
    summary="Export Edited Image",
    description="""
    Write the edited image to disk at full resolution.

    The source is decoded again from disk and every operation is replayed;
    the preview cache is never used, so the file always matches the source
    plus the operation list.

    **Defaults:**
    - `operations` - the session's applied operations
    - `original_path` - the path the session was opened from

    **Formats**: `jpeg` (alias `jpg`), `png`, `webp`. `quality` (1-100,
    default 90) applies to jpeg and webp only.
    """,
    response_description="Path and size of the written file",
)
async def export_image(
    body: ExportRequest,
    state: ImageState = Depends(get_image_state),
    uc: ExportImageUseCase = Depends(get_export_use_case),
):
    """Export the edited image."""
    applied, source_path = state.export_snapshot()
    if body.operations is None:
        ops = list(applied)
    else:
        ops = [dto.to_entity() for dto in body.operations]

    original = body.original_path or source_path
    if original is None:
        raise StateError("No source path to export from; open an image from disk or pass original_path")

    result = await asyncio.to_thread(
        uc.execute, original, ops, body.output_path, body.format, body.quality
    )
    return ExportResponse(path=result.path, byte_size=result.byte_size, format=result.format)
