from __future__ import annotations

from dataclasses import dataclass

from magic_editor.domain.entities.geometry import Dimensions, PixelRect
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.errors import ValidationError
from magic_editor.domain.services.geometry_service import GeometryService


@dataclass
class CropImageUseCase:
    geometry: GeometryService

    def execute(
        self,
        asset: ImageAsset,
        rect: PixelRect,
        display_size: Dimensions | None = None,
        device_pixel_ratio: float = 1.0,
    ) -> ImageAsset:
        """Cut ``rect`` (in displayed coordinates) out of the image at full resolution."""
        if rect.is_empty:
            raise ValidationError("Select an area to crop first.")
        return self.geometry.crop(asset, rect, display_size, device_pixel_ratio)


@dataclass
class ZoomUseCase:
    """Validates a zoom rectangle against the image; zooming itself is a viewport change."""

    geometry: GeometryService

    def execute(
        self, asset: ImageAsset, rect: PixelRect, display_size: Dimensions | None = None
    ) -> PixelRect:
        if rect.is_empty:
            raise ValidationError("Select an area to zoom into first.")
        display = display_size or self.geometry.image_dimensions(asset)
        bounded = rect.clamped(display.width, display.height)
        if bounded.is_empty:
            raise ValidationError("The zoom area lies outside the image.")
        return bounded
