from __future__ import annotations

import logging
from dataclasses import dataclass

from magic_editor.application.providers import OutpaintProvider, VisionProvider
from magic_editor.application.use_cases.provider_results import (
    ProgressCallback,
    report,
    require_image,
    require_text,
)
from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.services.geometry_service import GeometryService
from magic_editor.domain.services.prompt_service import (
    EXPAND_TEMPLATE,
    build_prompt_with_description,
)

logger = logging.getLogger(__name__)


@dataclass
class ExpandImageUseCase:
    """Outpaint the current image to a new aspect ratio.

    The scene is described first so the provider can continue it consistently;
    the target size comes from ``GeometryService.target_dimensions_for_ratio``.
    """

    vision: VisionProvider
    outpainter: OutpaintProvider
    geometry: GeometryService
    conform_output: bool = True

    async def execute(
        self, asset: ImageAsset, ratio: str, progress: ProgressCallback | None = None
    ) -> ImageAsset:
        # invalid ratios fail before any provider call
        target = self.geometry.target_dimensions_for_ratio(ratio)

        report(progress, 1, 2, "Analyzing scene")
        description = require_text(await self.vision.describe(asset))
        instruction = build_prompt_with_description(EXPAND_TEMPLATE, description)

        report(progress, 2, 2, f"Expanding to {ratio}")
        result = require_image(
            await self.outpainter.outpaint(asset, target.width, target.height, instruction)
        )
        if not self.conform_output:
            return result

        produced = self.geometry.image_dimensions(result)
        if produced == target:
            return result
        logger.info("Provider returned %s for target %s, resizing to cover", produced, target)
        return self.geometry.resize_cover(result, target.width, target.height)
