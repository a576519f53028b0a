from __future__ import annotations

from fastapi import Request

from darkroom.application.use_cases.export_image import ExportImageUseCase
from darkroom.application.use_cases.image_state import ImageState


def get_image_state(request: Request) -> ImageState:
    return request.app.state.image_state


def get_export_use_case(request: Request) -> ExportImageUseCase:
    state: ImageState = request.app.state.image_state
    return ExportImageUseCase(pipeline=state.pipeline, codec=state.codec)
