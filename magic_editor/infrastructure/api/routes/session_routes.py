from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from magic_editor.application.dtos.session_dto import (
    DeleteSessionResponse,
    SessionResponse,
    SetPromptRequest,
    WorkspaceResponse,
)
from magic_editor.application.orchestrator import EditOrchestrator
from magic_editor.infrastructure.api.dependencies import contract_errors_as_http, get_orchestrator

router = APIRouter(
    prefix="/sessions",
    tags=["Sessions"],
    responses={
        404: {"description": "Not Found - Session does not exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get(
    "",
    response_model=WorkspaceResponse,
    summary="Get Workspace",
    description="List open sessions in upload order with the active session's full state.",
)
async def get_workspace(orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    return WorkspaceResponse.from_domain(orchestrator.workspace, orchestrator.status)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get Session",
)
async def get_session(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    with contract_errors_as_http():
        session = orchestrator.sessions.require(session_id)
    return SessionResponse.from_domain(session)


@router.get(
    "/{session_id}/image",
    summary="Download Current Image",
    description="Raw bytes of the image currently shown in the session, for saving or sharing.",
    response_description="The encoded image",
)
async def download_current_image(
    session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)
):
    with contract_errors_as_http():
        session = orchestrator.sessions.require(session_id)
    asset = session.current_asset()
    filename = session.source_filename or f"{asset.id}"
    return Response(
        content=asset.raw_bytes,
        media_type=asset.mime_type,
        headers={"Content-Disposition": f'attachment; filename="edited-{filename}"'},
    )


@router.post(
    "/{session_id}/activate",
    response_model=WorkspaceResponse,
    summary="Switch Active Session",
    description="Make the session active. Unknown identifiers are ignored.",
)
async def activate_session(
    session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)
):
    orchestrator.switch_active(session_id)
    return WorkspaceResponse.from_domain(orchestrator.workspace, orchestrator.status)


@router.delete(
    "/{session_id}",
    response_model=DeleteSessionResponse,
    summary="Delete Session",
    description="Remove the session. Deleting the active one activates its left neighbour.",
)
async def delete_session(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    removed = orchestrator.delete_session(session_id)
    return DeleteSessionResponse(ok=removed, active_session_id=orchestrator.sessions.active_session_id)


@router.post("/{session_id}/undo", response_model=SessionResponse, summary="Undo")
async def undo(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    with contract_errors_as_http():
        session = orchestrator.undo(session_id)
    return SessionResponse.from_domain(session)


@router.post("/{session_id}/redo", response_model=SessionResponse, summary="Redo")
async def redo(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    with contract_errors_as_http():
        session = orchestrator.redo(session_id)
    return SessionResponse.from_domain(session)


@router.post(
    "/{session_id}/reset",
    response_model=SessionResponse,
    summary="Reset To Original",
    description="Discard all edits and the prompt of the session.",
)
async def reset(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    with contract_errors_as_http():
        session = orchestrator.reset(session_id)
    return SessionResponse.from_domain(session)


@router.put("/{session_id}/prompt", response_model=SessionResponse, summary="Set Prompt")
async def set_prompt(
    session_id: str,
    payload: SetPromptRequest,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        session = orchestrator.set_prompt(payload.prompt, session_id)
    return SessionResponse.from_domain(session)


@router.delete(
    "/{session_id}/viewport",
    response_model=SessionResponse,
    summary="Clear Zoom Request",
    description="Acknowledge a zoom request once the viewer has applied it.",
)
async def clear_viewport(session_id: str, orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    with contract_errors_as_http():
        session = orchestrator.clear_viewport(session_id)
    return SessionResponse.from_domain(session)
