from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile

from magic_editor.application.dtos.intake_dto import (
    PendingIntakeResponse,
    ResolveIntakeRequest,
    UploadResponse,
)
from magic_editor.application.dtos.session_dto import OperationResponse
from magic_editor.application.orchestrator import EditOrchestrator, IntakeChoice
from magic_editor.application.use_cases.upload_image import UploadedFile
from magic_editor.infrastructure.api.dependencies import contract_errors_as_http, get_orchestrator

router = APIRouter(
    prefix="/intake",
    tags=["Upload & Intake"],
    responses={
        404: {"description": "Not Found - Intake does not exist or was already resolved"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload Images",
    description="""
    Upload one or more images.

    Each image is downscaled so its longest edge fits the provider limit. Images
    with a supported aspect ratio open as new sessions; images with an extreme
    ratio are returned as pending intakes that must be resolved with pad,
    ai_expand or proceed. Files that are not images are listed as rejected.
    """,
)
async def upload_images(
    files: list[UploadFile] = File(..., description="Image files to upload"),
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    uploads = [
        UploadedFile(filename=f.filename, data=await f.read(), content_type=f.content_type)
        for f in files
    ]
    report = await orchestrator.upload(uploads)
    return UploadResponse.from_domain(
        report, orchestrator.sessions.active_session_id, orchestrator.status
    )


@router.get("", response_model=list[PendingIntakeResponse], summary="List Pending Intakes")
async def list_pending(orchestrator: EditOrchestrator = Depends(get_orchestrator)):
    return [PendingIntakeResponse.from_domain(i) for i in orchestrator.pending_intakes]


@router.post(
    "/{intake_id}/resolve",
    response_model=OperationResponse,
    summary="Resolve Pending Intake",
    description="""
    - **pad**: letterbox onto the nearest supported canvas (1:1, 2:3 or 3:2) and open it
    - **ai_expand**: open the image as-is, activate it and outpaint it to `expand_ratio`
    - **proceed**: open the image unchanged
    """,
)
async def resolve_intake(
    intake_id: str,
    payload: ResolveIntakeRequest,
    orchestrator: EditOrchestrator = Depends(get_orchestrator),
):
    with contract_errors_as_http():
        outcome = await orchestrator.resolve_intake(
            intake_id, IntakeChoice(payload.choice), payload.expand_ratio
        )
    return OperationResponse.from_domain(outcome, orchestrator.status)
