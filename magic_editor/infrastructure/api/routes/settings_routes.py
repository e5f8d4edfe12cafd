from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from magic_editor.application.dtos.settings_dto import (
    ConnectionTestResponse,
    CredentialsRequest,
    CredentialsStatusResponse,
)
from magic_editor.infrastructure.api.dependencies import EditorServices, get_services
from magic_editor.infrastructure.credentials import ENV_VARS

router = APIRouter(
    prefix="/settings",
    tags=["Settings"],
    responses={422: {"description": "Validation Error - Invalid request format"}},
)


def _status(services: EditorServices) -> CredentialsStatusResponse:
    return CredentialsStatusResponse(
        configured={key: services.credentials.is_set(key) for key in ENV_VARS},
        edit_provider=services.settings.edit_provider,
    )


@router.get(
    "/credentials",
    response_model=CredentialsStatusResponse,
    summary="Credential Status",
    description="Report which provider keys are configured. Key values are never returned.",
)
async def get_credentials_status(services: EditorServices = Depends(get_services)):
    return _status(services)


@router.put("/credentials", response_model=CredentialsStatusResponse, summary="Store Credentials")
async def update_credentials(
    payload: CredentialsRequest, services: EditorServices = Depends(get_services)
):
    for key, value in payload.model_dump(exclude_unset=True).items():
        services.credentials.set(key, value)
    return _status(services)


@router.delete(
    "/credentials/{key}",
    response_model=CredentialsStatusResponse,
    summary="Clear Credential",
    responses={404: {"description": "Not Found - Unknown credential name"}},
)
async def delete_credential(key: str, services: EditorServices = Depends(get_services)):
    if key not in ENV_VARS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown credential {key}")
    services.credentials.delete(key)
    return _status(services)


@router.post(
    "/huggingface/test",
    response_model=ConnectionTestResponse,
    summary="Test Hugging Face Connection",
)
async def test_huggingface_connection(services: EditorServices = Depends(get_services)):
    if services.huggingface is None:
        return ConnectionTestResponse(success=False, message="Hugging Face is not configured.")
    check = await services.huggingface.test_connection()
    return ConnectionTestResponse(
        success=check.success, message=check.message, status_code=check.status_code
    )
