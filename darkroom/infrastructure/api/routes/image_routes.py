from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, UploadFile

from darkroom.application.dtos.editor_dto import (
    ImageMetadataDTO,
    OpenImageRequest,
    OpenImageResponse,
    PreviewResponse,
)
from darkroom.application.use_cases.image_state import ImageState
from darkroom.infrastructure.api.dependencies import get_image_state

router = APIRouter(
    prefix="/images",
    tags=["Image Loading"],
    responses={
        400: {"description": "Bad Request - Source unreadable or corrupt"},
        403: {"description": "Forbidden - No permission to read the source"},
        413: {"description": "Payload Too Large - Over 500 MB or 16384 px per side"},
        415: {"description": "Unsupported Media Type - Format not supported"},
    },
)


def _open(state: ImageState, source, max_width: int | None, max_height: int | None) -> OpenImageResponse:
    meta, preview = state.open(source, max_width, max_height)
    return OpenImageResponse(
        metadata=ImageMetadataDTO.from_entity(meta),
        preview=PreviewResponse.from_entity(preview),
    )


@router.post(
    "/open",
    response_model=OpenImageResponse,
    summary="Open Image From Disk",
    description="""
    Load an image from a local path and start a new editing session on it.

    **Supported formats**: PNG, JPEG, GIF, BMP, WEBP, TIFF
    **Limits**: 500 MB source, 16384 x 16384 pixels

    Opening an image:
    - Replaces the previous source image
    - Clears undo/redo history and the preview cache
    - Returns the metadata plus a preview of the unedited image

    A failed open leaves the current session untouched.
    """,
    response_description="Metadata and initial preview of the opened image",
)
async def open_image(
    body: OpenImageRequest,
    state: ImageState = Depends(get_image_state),
):
    """Open an image file and return its metadata and preview."""
    return await asyncio.to_thread(
        _open, state, body.file_path, body.preview_max_width, body.preview_max_height
    )


@router.post(
    "/upload",
    response_model=OpenImageResponse,
    summary="Upload Image",
    description="""
    Start a new editing session from uploaded image bytes.

    Same behaviour and limits as `/images/open`. Sessions opened this way
    have no source path, so `/export` needs an explicit `original_path`.
    """,
    response_description="Metadata and initial preview of the uploaded image",
)
async def upload_image(
    file: UploadFile = File(..., description="Image file to edit"),
    state: ImageState = Depends(get_image_state),
):
    """Upload an image and return its metadata and preview."""
    data = await file.read()
    return await asyncio.to_thread(_open, state, data, None, None)
