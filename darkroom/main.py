from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from darkroom.application.dtos.common_dto import ErrorResponse, HealthResponse, RootResponse
from darkroom.application.use_cases.image_state import ImageState
from darkroom.domain.services.render_pipeline import RenderPipeline
from darkroom.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from darkroom.infrastructure.api.routes.editor_routes import router as editor_router
from darkroom.infrastructure.api.routes.export_routes import router as export_router
from darkroom.infrastructure.api.routes.history_routes import router as history_router
from darkroom.infrastructure.api.routes.image_routes import router as image_router
from darkroom.infrastructure.config import Settings, get_settings
from darkroom.infrastructure.logging_config import setup_logging
from darkroom.infrastructure.storage.image_codec import PillowImageCodec
from darkroom.infrastructure.storage.preview_encoder import PreviewEncoder


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    pipeline = RenderPipeline(workers=settings.workers)
    image_state = ImageState(
        pipeline=pipeline,
        codec=PillowImageCodec(),
        preview_encoder=PreviewEncoder(settings.preview_format, settings.preview_quality),
        history_limit=settings.history_limit,
        preview_max_width=settings.preview_max_width,
        preview_max_height=settings.preview_max_height,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        pipeline.close()

    app = FastAPI(
        title="Darkroom",
        version="0.1.0",
        lifespan=lifespan,
        description="""
        ## Darkroom API

        Non-destructive image editing engine. The source image is never
        modified: every edit is recorded as an operation and the displayed
        image is always the source with the operation history replayed on it.

        ### Features
        - **Sessions**: Open an image from disk or upload it
        - **Editing**: Filters, tonal adjustments, lossless transforms and crops
        - **History**: Undo/redo over the last 50 operations
        - **Previews**: Downsampled base64 previews for display
        - **Export**: Full-resolution JPEG, PNG or WebP output

        ### Error Responses
        Every engine error is returned as
        `{"detail": {"type": "<kind>", "message": "..."}}`:
        - **400** `image_load_error`
        - **403** `file_access_denied`
        - **409** `state_error`
        - **413** `resource_exhausted`
        - **415** `unsupported_format`
        - **422** `invalid_operation`
        - **500** `processing_error`, `image_save_error`
        """,
        responses={
            400: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
            422: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.image_state = image_state

    add_default_middlewares(app, settings.env)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the Darkroom API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "darkroom", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(image_router)
    app.include_router(editor_router)
    app.include_router(history_router)
    app.include_router(export_router)
    return app


app = create_app()
