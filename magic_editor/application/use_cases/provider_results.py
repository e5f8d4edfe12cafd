from __future__ import annotations

from collections.abc import Callable

from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.provider_result import (
    ImageResult,
    ProviderFailure,
    ProviderResult,
    TextResult,
)
from magic_editor.domain.errors import ProviderError

# (step, total_steps, message)
ProgressCallback = Callable[[int, int, str], None]


def report(progress: ProgressCallback | None, step: int, total: int, message: str) -> None:
    if progress is not None:
        progress(step, total, message)


def require_image(result: ProviderResult) -> ImageAsset:
    """Unwrap an image result; text or failures become a ``ProviderError``."""
    if isinstance(result, ImageResult):
        return result.asset
    if isinstance(result, TextResult):
        raise ProviderError(
            f"The AI returned a description instead of an image: {result.text[:200]}"
        )
    if isinstance(result, ProviderFailure):
        raise ProviderError(result.message)
    raise ProviderError(f"Unexpected provider response {type(result).__name__}")


def require_text(result: ProviderResult) -> str:
    if isinstance(result, TextResult):
        if not result.text.strip():
            raise ProviderError("The AI returned an empty description.")
        return result.text.strip()
    if isinstance(result, ProviderFailure):
        raise ProviderError(result.message)
    if isinstance(result, ImageResult):
        raise ProviderError("The AI returned an image where text was expected.")
    raise ProviderError(f"Unexpected provider response {type(result).__name__}")
