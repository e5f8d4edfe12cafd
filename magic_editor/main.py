from __future__ import annotations

from fastapi import FastAPI

from magic_editor.application.dtos.common_dto import HealthResponse, RootResponse
from magic_editor.config import Settings, configure_logging
from magic_editor.infrastructure.api.dependencies import EditorServices, build_services
from magic_editor.infrastructure.api.middlewares import add_default_middlewares
from magic_editor.infrastructure.api.routes.editing_routes import router as editing_router
from magic_editor.infrastructure.api.routes.intake_routes import router as intake_router
from magic_editor.infrastructure.api.routes.session_routes import router as session_router
from magic_editor.infrastructure.api.routes.settings_routes import router as settings_router


def create_app(services: EditorServices | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or (services.settings if services else Settings.from_env())
    configure_logging(settings.log_level)
    app = FastAPI(
        title="Magic Editor",
        version="0.1.0",
        description="""
        ## Magic Editor API

        Local host for the Magic Editor browser UI. Photos are edited through
        natural-language prompts, cropping, zooming and aspect-ratio-aware AI
        expansion, using xAI Grok and the Hugging Face Inference API.

        ### Features
        - **Sessions**: one edit history per uploaded image, with undo/redo/reset
        - **Intake**: uploads are downscaled; extreme aspect ratios can be padded,
          AI-expanded or used as they are
        - **Editing**: prompt edits, prompt suggestions, enhance, background removal,
          AI expand, crop and zoom
        - **Settings**: provider API keys, kept in memory only

        ### Error Responses
        Operation failures (provider errors, empty prompts, bad crops) are normal
        outcomes and come back with `ok: false` and a message. HTTP errors are
        reserved for addressing problems:
        - **404 Not Found**: unknown session or intake
        - **409 Conflict**: the session changed while an operation was running
        - **422 Unprocessable Entity**: validation error in the request body
        """,
    )
    app.state.services = services or build_services(settings)
    add_default_middlewares(app, settings)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the Magic Editor API",
    )
    async def root():
        """Get API root information."""
        return {"status": "ok", "service": "magic-editor", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running",
    )
    async def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(session_router)
    app.include_router(intake_router)
    app.include_router(editing_router)
    app.include_router(settings_router)
    return app


app = create_app()
