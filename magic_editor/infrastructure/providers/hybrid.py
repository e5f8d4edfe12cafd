from __future__ import annotations

import logging

from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.provider_result import ProviderResult, TextResult
from magic_editor.infrastructure.providers.grok_client import GrokClient
from magic_editor.infrastructure.providers.huggingface_client import HuggingFaceClient

logger = logging.getLogger(__name__)


class HybridEditProvider:
    """Grok plans the edit prompt from the image, Hugging Face renders it."""

    name = "hybrid"

    def __init__(self, planner: GrokClient, renderer: HuggingFaceClient) -> None:
        self.planner = planner
        self.renderer = renderer

    async def edit(self, asset: ImageAsset, instruction: str) -> ProviderResult:
        plan = await self.planner.plan_edit(asset, instruction)
        if not isinstance(plan, TextResult):
            return plan
        logger.info("Hybrid edit prompt planned (%d chars)", len(plan.text))
        return await self.renderer.edit(asset, plan.text)
