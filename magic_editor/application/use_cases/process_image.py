from __future__ import annotations

import logging
from dataclasses import dataclass

from magic_editor.application.providers import ImageEditProvider, TextProvider, VisionProvider
from magic_editor.application.use_cases.provider_results import (
    ProgressCallback,
    report,
    require_image,
    require_text,
)
from magic_editor.domain.entities.image import PNG_MIME, ImageAsset
from magic_editor.domain.entities.provider_result import TextResult
from magic_editor.domain.errors import ValidationError
from magic_editor.domain.services.prompt_service import (
    ENHANCE_INSTRUCTION,
    REMOVE_BACKGROUND_INSTRUCTION,
    clean_model_text,
)

logger = logging.getLogger(__name__)


@dataclass
class EditWithPromptUseCase:
    editor: ImageEditProvider
    translator: TextProvider

    async def execute(
        self, asset: ImageAsset, prompt: str, progress: ProgressCallback | None = None
    ) -> ImageAsset:
        """Translate the prompt to English, then ask the edit provider for a new image.

        Translation is best effort: any failure or empty answer keeps the prompt as typed.
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Write a prompt describing the edit first.")

        report(progress, 1, 2, "Translating prompt")
        result = await self.translator.translate(prompt)
        translated = clean_model_text(result.text) if isinstance(result, TextResult) else ""
        if not translated:
            logger.info("Translation unavailable, using the prompt as typed")
            translated = prompt

        report(progress, 2, 2, "Editing image")
        return require_image(await self.editor.edit(asset, translated))


@dataclass
class SuggestPromptUseCase:
    vision: VisionProvider

    async def execute(self, asset: ImageAsset, progress: ProgressCallback | None = None) -> str:
        report(progress, 1, 1, "Analyzing image")
        return require_text(await self.vision.describe(asset))


@dataclass
class EnhanceImageUseCase:
    editor: ImageEditProvider

    async def execute(self, asset: ImageAsset, progress: ProgressCallback | None = None) -> ImageAsset:
        report(progress, 1, 1, "Enhancing image")
        return require_image(await self.editor.edit(asset, ENHANCE_INSTRUCTION))


@dataclass
class RemoveBackgroundUseCase:
    editor: ImageEditProvider

    async def execute(self, asset: ImageAsset, progress: ProgressCallback | None = None) -> ImageAsset:
        report(progress, 1, 1, "Removing background")
        result = require_image(await self.editor.edit(asset, REMOVE_BACKGROUND_INSTRUCTION))
        # transparent output is only representable as PNG
        return result.with_mime_type(PNG_MIME)
