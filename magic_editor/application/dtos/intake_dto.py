from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from magic_editor.application.dtos.common_dto import StatusResponse
from magic_editor.application.dtos.session_dto import SessionSummary
from magic_editor.application.orchestrator import OperationStatus, PendingIntake, UploadReport
from magic_editor.application.use_cases.upload_image import RejectedUpload


class PendingIntakeResponse(BaseModel):
    """An upload with an extreme aspect ratio awaiting pad, AI expand or proceed."""
    id: str = Field(..., description="Intake identifier", example="intake-51c0")
    filename: Optional[str] = Field(None, description="Uploaded filename", example="panorama.jpg")
    ratio_label: str = Field(..., description="Aspect ratio of the upload", example="5:1")
    width: int = Field(..., description="Width after normalization", example=1536, gt=0)
    height: int = Field(..., description="Height after normalization", example=307, gt=0)
    suggested_ratio: str = Field(..., description="Nearest supported ratio for padding or expansion", example="3:2")
    data_url: str = Field(..., description="Preview of the upload as a data URL")

    @classmethod
    def from_domain(cls, intake: PendingIntake) -> PendingIntakeResponse:
        return cls(
            id=intake.id,
            filename=intake.filename,
            ratio_label=intake.ratio_label,
            width=intake.size.width,
            height=intake.size.height,
            suggested_ratio=intake.suggested_ratio,
            data_url=intake.asset.data_url,
        )


class RejectedUploadResponse(BaseModel):
    filename: Optional[str] = Field(None, description="Filename of the rejected file", example="notes.txt")
    reason: str = Field(..., description="Why the file was rejected")

    @classmethod
    def from_domain(cls, rejected: RejectedUpload) -> RejectedUploadResponse:
        return cls(filename=rejected.filename, reason=rejected.reason)


class UploadResponse(BaseModel):
    """Outcome of an upload batch."""
    sessions: list[SessionSummary] = Field(..., description="Sessions created for supported images")
    pending: list[PendingIntakeResponse] = Field(..., description="Uploads that need a ratio decision")
    rejected: list[RejectedUploadResponse] = Field(..., description="Files that could not be used")
    active_session_id: Optional[str] = Field(None, description="Active session after the upload")
    status: StatusResponse = Field(..., description="Operation status")

    @classmethod
    def from_domain(
        cls, report: UploadReport, active_session_id: Optional[str], status: OperationStatus
    ) -> UploadResponse:
        return cls(
            sessions=[SessionSummary.from_domain(s) for s in report.sessions],
            pending=[PendingIntakeResponse.from_domain(i) for i in report.pending],
            rejected=[RejectedUploadResponse.from_domain(r) for r in report.rejected],
            active_session_id=active_session_id,
            status=StatusResponse.from_domain(status),
        )


class ResolveIntakeRequest(BaseModel):
    """Request model for resolving a pending intake."""
    choice: str = Field(..., description="How to handle the upload", example="pad", pattern="^(pad|ai_expand|proceed)$")
    expand_ratio: Optional[str] = Field(None, description="Target ratio for ai_expand, defaults to the suggested ratio", example="3:2")
