"""Common DTOs for API responses."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from magic_editor.application.orchestrator import OperationStatus


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", example="healthy")


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", example="ok")
    service: str = Field(..., description="Service name", example="magic-editor")
    version: str = Field(..., description="API version", example="0.1.0")


class StatusResponse(BaseModel):
    """Progress of the running operation and the last error shown to the user."""
    state: str = Field(..., description="Operation state", example="calling")
    operation: Optional[str] = Field(None, description="Name of the running or failed operation", example="expand")
    step: int = Field(0, description="Current step of the operation", example=1, ge=0)
    total_steps: int = Field(0, description="Number of steps of the operation", example=2, ge=0)
    message: str = Field("", description="Progress message", example="Analyzing scene")
    busy: bool = Field(False, description="Whether an operation is running")
    last_error: Optional[str] = Field(None, description="Message of the last failed operation")

    @classmethod
    def from_domain(cls, status: OperationStatus) -> StatusResponse:
        return cls(
            state=status.state.value,
            operation=status.operation,
            step=status.step,
            total_steps=status.total_steps,
            message=status.message,
            busy=status.busy,
            last_error=status.last_error,
        )
