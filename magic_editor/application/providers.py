from __future__ import annotations

from typing import Protocol

from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.provider_result import ProviderResult


class VisionProvider(Protocol):
    async def describe(self, asset: ImageAsset) -> ProviderResult: ...


class TextProvider(Protocol):
    async def translate(self, text: str) -> ProviderResult: ...


class ImageEditProvider(Protocol):
    async def edit(self, asset: ImageAsset, instruction: str) -> ProviderResult: ...


class OutpaintProvider(Protocol):
    async def outpaint(
        self, asset: ImageAsset, target_width: int, target_height: int, instruction: str
    ) -> ProviderResult: ...
