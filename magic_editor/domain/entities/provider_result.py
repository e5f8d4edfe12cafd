from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from magic_editor.domain.entities.image import ImageAsset


@dataclass(frozen=True)
class ImageResult:
    asset: ImageAsset
    provider: str = ""


@dataclass(frozen=True)
class TextResult:
    text: str
    provider: str = ""


@dataclass(frozen=True)
class ProviderFailure:
    message: str
    provider: str = ""
    blocked: bool = False  # policy/safety block reported by the provider


# Every provider adapter returns exactly one of these
ProviderResult = Union[ImageResult, TextResult, ProviderFailure]
