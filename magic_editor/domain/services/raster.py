from __future__ import annotations

from typing import Any, Protocol

from magic_editor.domain.entities.geometry import Dimensions, PixelRect

RGBA = tuple[int, int, int, int]
BLACK: RGBA = (0, 0, 0, 255)
WHITE: RGBA = (255, 255, 255, 255)


class RasterSurface(Protocol):
    width: int
    height: int


class RasterBackend(Protocol):
    """2D drawing surface supplied by the host environment.

    The core only creates surfaces, draws decoded images into them, fills
    rectangles (mask construction) and exports encoded bytes.
    """

    def decode(self, raw: bytes) -> Any: ...

    def dimensions(self, image: Any) -> Dimensions: ...

    def detect_mime_type(self, image: Any) -> str | None: ...

    def create_surface(self, width: int, height: int, fill: RGBA = BLACK) -> RasterSurface: ...

    def draw_image_into(
        self, surface: RasterSurface, image: Any, src: PixelRect, dst: PixelRect
    ) -> None: ...

    def fill_rect(self, surface: RasterSurface, rect: PixelRect, color: RGBA) -> None: ...

    def export_as_encoded_image(self, surface: RasterSurface, mime_type: str) -> bytes: ...
