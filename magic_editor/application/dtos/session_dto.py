from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from magic_editor.application.dtos.common_dto import StatusResponse
from magic_editor.application.orchestrator import OperationOutcome, OperationStatus
from magic_editor.domain.entities.geometry import PixelRect
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.session import Session
from magic_editor.domain.entities.workspace import Workspace


class RectModel(BaseModel):
    """Rectangle in displayed-image coordinates."""
    x: float = Field(..., description="Left edge", example=10.0, ge=0)
    y: float = Field(..., description="Top edge", example=20.0, ge=0)
    width: float = Field(..., description="Width", example=300.0, gt=0)
    height: float = Field(..., description="Height", example=200.0, gt=0)

    def to_domain(self) -> PixelRect:
        return PixelRect(self.x, self.y, self.width, self.height)

    @classmethod
    def from_domain(cls, rect: PixelRect) -> RectModel:
        return cls(x=rect.x, y=rect.y, width=rect.width, height=rect.height)


class ImageAssetResponse(BaseModel):
    """An immutable image, inlined as a data URL."""
    id: str = Field(..., description="Unique identifier of the image", example="upload-3f2a")
    mime_type: str = Field(..., description="MIME type of the image", example="image/png")
    filename: Optional[str] = Field(None, description="Source filename of uploaded originals", example="photo.jpg")
    size: int = Field(..., description="Encoded size in bytes", example=204857, ge=0)
    data_url: str = Field(..., description="data: URL with the base64 image")

    @classmethod
    def from_domain(cls, asset: ImageAsset) -> ImageAssetResponse:
        return cls(
            id=asset.id,
            mime_type=asset.mime_type,
            filename=asset.filename,
            size=asset.size,
            data_url=asset.data_url,
        )


class SessionSummary(BaseModel):
    """Lightweight session entry for the session strip."""
    id: str = Field(..., description="Session identifier", example="session-9c1e")
    filename: Optional[str] = Field(None, description="Filename of the uploaded original", example="beach.jpg")
    history_index: int = Field(..., description="Position in history, -1 shows the original", example=0, ge=-1)
    history_length: int = Field(..., description="Number of edits in the history", example=2, ge=0)
    revision: int = Field(..., description="Bumped on every history change", example=3, ge=0)

    @classmethod
    def from_domain(cls, session: Session) -> SessionSummary:
        return cls(
            id=session.id,
            filename=session.source_filename,
            history_index=session.history_index,
            history_length=len(session.history),
            revision=session.revision,
        )


class SessionResponse(SessionSummary):
    """Full session state including the images."""
    original: ImageAssetResponse = Field(..., description="The uploaded original")
    current: ImageAssetResponse = Field(..., description="The image currently shown")
    can_undo: bool = Field(..., description="Whether undo is possible")
    can_redo: bool = Field(..., description="Whether redo is possible")
    prompt: str = Field("", description="Prompt text of this session", example="make the sky pink")
    viewport: Optional[RectModel] = Field(None, description="Pending zoom request for the viewer")

    @classmethod
    def from_domain(cls, session: Session) -> SessionResponse:
        return cls(
            id=session.id,
            filename=session.source_filename,
            history_index=session.history_index,
            history_length=len(session.history),
            revision=session.revision,
            original=ImageAssetResponse.from_domain(session.original),
            current=ImageAssetResponse.from_domain(session.current_asset()),
            can_undo=session.can_undo,
            can_redo=session.can_redo,
            prompt=session.prompt,
            viewport=RectModel.from_domain(session.viewport_request) if session.viewport_request else None,
        )


class WorkspaceResponse(BaseModel):
    """All open sessions and which one is active."""
    sessions: list[SessionSummary] = Field(..., description="Open sessions in upload order")
    active_session_id: Optional[str] = Field(None, description="Identifier of the active session")
    active_session: Optional[SessionResponse] = Field(None, description="Full state of the active session")
    status: StatusResponse = Field(..., description="Operation status")

    @classmethod
    def from_domain(cls, workspace: Workspace, status: OperationStatus) -> WorkspaceResponse:
        active = workspace.active_session
        return cls(
            sessions=[SessionSummary.from_domain(s) for s in workspace.sessions],
            active_session_id=workspace.active_session_id,
            active_session=SessionResponse.from_domain(active) if active else None,
            status=StatusResponse.from_domain(status),
        )


class SetPromptRequest(BaseModel):
    """Request model for storing a session's prompt text."""
    prompt: str = Field(..., description="Prompt text", example="add a rainbow over the lake")


class DeleteSessionResponse(BaseModel):
    """Response model for session deletion."""
    ok: bool = Field(..., description="Whether a session was removed")
    active_session_id: Optional[str] = Field(None, description="Active session after the deletion")


class OperationResponse(BaseModel):
    """Result of an editing operation. Failures are normal outcomes, reported with ok=false."""
    ok: bool = Field(..., description="Whether the operation succeeded")
    error: Optional[str] = Field(None, description="User-facing error message when ok is false")
    session: Optional[SessionResponse] = Field(None, description="Session state after the operation")
    status: StatusResponse = Field(..., description="Operation status after the operation")

    @classmethod
    def from_domain(cls, outcome: OperationOutcome, status: OperationStatus) -> OperationResponse:
        return cls(
            ok=outcome.ok,
            error=outcome.error,
            session=SessionResponse.from_domain(outcome.session) if outcome.session else None,
            status=StatusResponse.from_domain(status),
        )
