from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from magic_editor.application.dtos.common_dto import StatusResponse
from magic_editor.application.dtos.editing_dto import (
    CropRequest,
    EditPromptRequest,
    ExpandRequest,
    ZoomRequest,
)
from magic_editor.application.dtos.session_dto import OperationResponse
from magic_editor.application.orchestrator import EditOrchestrator, OperationOutcome
from magic_editor.infrastructure.api.dependencies import contract_errors_as_http, get_orchestrator

router = APIRouter(
    prefix="/editing",
    tags=["Editing"],
    responses={
        404: {"description": "Not Found - Session does not exist"},
        409: {"description": "Conflict - The session changed while the operation was running"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)

SessionQuery = Query(None, description="Target session; defaults to the active session")


def _respond(outcome: OperationOutcome, orchestrator: EditOrchestrator) -> OperationResponse:
    return OperationResponse.from_domain(outcome, orchestrator.status)


@router.get("/status", response_model=StatusResponse, summary="Operation Status")
async def get_status(orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    return StatusResponse.from_domain(orchestrator.status)


@router.post("/status/dismiss", response_model=StatusResponse, summary="Dismiss Error")
async def dismiss_error(orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    orchestrator.dismiss_error()
    return StatusResponse.from_domain(orchestrator.status)


@router.post(
    "/edit",
    response_model=OperationResponse,
    summary="Edit With Prompt",
    description="Translate the prompt to English (best effort) and let the edit provider apply it.",
)
async def edit_with_prompt(
    payload: EditPromptRequest,
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.edit_with_prompt(payload.prompt, session_id=session_id)
    return _respond(outcome, orchestrator)


@router.post(
    "/suggest-prompt",
    response_model=OperationResponse,
    summary="Suggest Prompt",
    description="Describe the current image and store the description as the session prompt.",
)
async def suggest_prompt(
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.suggest_prompt(session_id=session_id)
    return _respond(outcome, orchestrator)


@router.post("/enhance", response_model=OperationResponse, summary="Enhance")
async def enhance(
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.enhance(session_id=session_id)
    return _respond(outcome, orchestrator)


@router.post("/remove-background", response_model=OperationResponse, summary="Remove Background")
async def remove_background(
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.remove_background(session_id=session_id)
    return _respond(outcome, orchestrator)


@router.post(
    "/expand",
    response_model=OperationResponse,
    summary="AI Expand",
    description="Outpaint the current image to the requested aspect ratio.",
)
async def expand(
    payload: ExpandRequest,
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.expand(payload.ratio.strip(), session_id=session_id)
    return _respond(outcome, orchestrator)


@router.post("/crop", response_model=OperationResponse, summary="Crop")
async def crop(
    payload: CropRequest,
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.crop(
            payload.rect.to_domain(),
            payload.display_size(),
            payload.device_pixel_ratio,
            session_id=session_id,
        )
    return _respond(outcome, orchestrator)


@router.post(
    "/zoom",
    response_model=OperationResponse,
    summary="Zoom",
    description="Record a zoom request for the viewer. The history is not changed.",
)
async def zoom(
    payload: ZoomRequest,
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.zoom(
            payload.rect.to_domain(), payload.display_size(), session_id=session_id
        )
    return _respond(outcome, orchestrator)


@router.post("/zoom-and-crop", response_model=OperationResponse, summary="Zoom And Crop")
async def zoom_and_crop(
    payload: CropRequest,
    session_id: Optional[str] = SessionQuery,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.zoom_and_crop(
            payload.rect.to_domain(),
            payload.display_size(),
            payload.device_pixel_ratio,
            session_id=session_id,
        )
    return _respond(outcome, orchestrator)
