from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from magic_editor.application.dtos.session_dto import RectModel
from magic_editor.domain.entities.geometry import Dimensions


class EditPromptRequest(BaseModel):
    """Request model for a prompt edit. Without a prompt the session's stored prompt is used."""
    prompt: Optional[str] = Field(None, description="Edit instruction in any language", example="gör himlen rosa")


class ExpandRequest(BaseModel):
    """Request model for AI expansion to a new aspect ratio."""
    ratio: str = Field(..., description="Target aspect ratio as W:H", example="16:9", pattern=r"^\s*\d+(\.\d+)?\s*[:/x]\s*\d+(\.\d+)?\s*$")


class CropRequest(BaseModel):
    """Request model for cropping (also used for zoom-and-crop)."""
    rect: RectModel = Field(..., description="Crop area in displayed-image coordinates")
    display_width: Optional[int] = Field(None, description="Width the image was displayed at", example=800, gt=0)
    display_height: Optional[int] = Field(None, description="Height the image was displayed at", example=600, gt=0)
    device_pixel_ratio: float = Field(1.0, description="Device pixel ratio of the display", example=2.0, gt=0)

    def display_size(self) -> Optional[Dimensions]:
        if self.display_width is None or self.display_height is None:
            return None
        return Dimensions(self.display_width, self.display_height)


class ZoomRequest(BaseModel):
    """Request model for zooming the viewer to an area."""
    rect: RectModel = Field(..., description="Zoom area in displayed-image coordinates")
    display_width: Optional[int] = Field(None, description="Width the image was displayed at", example=800, gt=0)
    display_height: Optional[int] = Field(None, description="Height the image was displayed at", example=600, gt=0)

    def display_size(self) -> Optional[Dimensions]:
        if self.display_width is None or self.display_height is None:
            return None
        return Dimensions(self.display_width, self.display_height)
