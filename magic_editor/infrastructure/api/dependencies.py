from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from magic_editor.application.orchestrator import EditOrchestrator
from magic_editor.application.providers import ImageEditProvider
from magic_editor.config import Settings
from magic_editor.domain.errors import StaleSessionError, StateContractViolation
from magic_editor.domain.services.geometry_service import GeometryService
from magic_editor.infrastructure.credentials import CredentialStore
from magic_editor.infrastructure.providers.grok_client import GrokClient
from magic_editor.infrastructure.providers.huggingface_client import HuggingFaceClient
from magic_editor.infrastructure.providers.hybrid import HybridEditProvider
from magic_editor.infrastructure.raster.pillow_backend import PillowRasterBackend

logger = logging.getLogger(__name__)


@dataclass
class EditorServices:
    """Process-wide objects shared by the routers, kept on ``app.state.services``."""

    settings: Settings
    credentials: CredentialStore
    orchestrator: EditOrchestrator
    huggingface: HuggingFaceClient | None = None


def _edit_provider(
    settings: Settings, grok: GrokClient, huggingface: HuggingFaceClient
) -> ImageEditProvider:
    if settings.edit_provider == "huggingface":
        return huggingface
    if settings.edit_provider == "hybrid":
        return HybridEditProvider(grok, huggingface)
    if settings.edit_provider != "grok":
        logger.warning("Unknown EDIT_PROVIDER %r, using grok", settings.edit_provider)
    return grok


def build_services(
    settings: Settings | None = None, credentials: CredentialStore | None = None
) -> EditorServices:
    settings = settings or Settings.from_env()
    credentials = credentials or CredentialStore.from_env()
    geometry = GeometryService(PillowRasterBackend(), settings.max_upload_dimension)
    grok = GrokClient(credentials, settings)
    huggingface = HuggingFaceClient(credentials, geometry, settings)
    orchestrator = EditOrchestrator(
        geometry,
        vision=grok,
        translator=grok,
        editor=_edit_provider(settings, grok, huggingface),
        outpainter=huggingface,
        conform_expanded_output=settings.conform_expanded_output,
    )
    return EditorServices(settings, credentials, orchestrator, huggingface)


def get_services(request: Request) -> EditorServices:
    return request.app.state.services


def get_orchestrator(request: Request) -> EditOrchestrator:
    return get_services(request).orchestrator


def get_credentials(request: Request) -> CredentialStore:
    return get_services(request).credentials


@contextmanager
def contract_errors_as_http() -> Iterator[None]:
    """Map addressing errors (unknown ids, stale sessions) to 404/409 responses."""
    try:
        yield
    except StaleSessionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StateContractViolation as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
