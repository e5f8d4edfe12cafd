from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Provider keys to store. Omitted fields are left unchanged, empty strings clear a key."""
    xai_api_key: Optional[str] = Field(None, description="xAI API key")
    hf_api_key: Optional[str] = Field(None, description="Hugging Face API key, starts with hf_")
    hf_custom_endpoint: Optional[str] = Field(None, description="Custom Hugging Face inference endpoint URL", example="https://example.endpoints.huggingface.cloud")


class CredentialsStatusResponse(BaseModel):
    """Which credentials are configured. Values are never returned."""
    configured: dict[str, bool] = Field(..., description="Credential name to configured flag", example={"xai_api_key": True, "hf_api_key": False, "hf_custom_endpoint": False})
    edit_provider: str = Field(..., description="Adapter used for prompt edits", example="grok")


class ConnectionTestResponse(BaseModel):
    """Result of a Hugging Face connectivity check."""
    success: bool = Field(..., description="Whether the API answered successfully")
    message: str = Field(..., description="Human readable result")
    status_code: Optional[int] = Field(None, description="HTTP status of the check", example=200)
