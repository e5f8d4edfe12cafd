from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from magic_editor.domain.entities.geometry import Dimensions, PixelRect
from magic_editor.domain.entities.image import JPEG_MIME, PNG_MIME
from magic_editor.domain.errors import GeometryError
from magic_editor.domain.services.geometry_service import round_half_up
from magic_editor.domain.services.raster import BLACK, RGBA

JPEG_QUALITY = 92

_PIL_FORMATS = {
    JPEG_MIME: "JPEG",
    PNG_MIME: "PNG",
    "image/webp": "WEBP",
}


@dataclass
class ArraySurface:
    """RGBA canvas backed by a (H, W, 4) uint8 array."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)


class PillowRasterBackend:
    """Raster surface implementation using Pillow for decode/resample/encode and NumPy for pixels."""

    def __init__(self, jpeg_quality: int = JPEG_QUALITY) -> None:
        self.jpeg_quality = jpeg_quality

    def decode(self, raw: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(raw))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise GeometryError(f"Could not decode image: {exc}") from exc
        return image

    def dimensions(self, image: Image.Image) -> Dimensions:
        width, height = image.size
        return Dimensions(width, height)

    def detect_mime_type(self, image: Image.Image) -> str | None:
        if not image.format:
            return None
        return Image.MIME.get(image.format)

    def create_surface(self, width: int, height: int, fill: RGBA = BLACK) -> ArraySurface:
        if width <= 0 or height <= 0:
            raise GeometryError(f"Cannot create a {width}x{height} surface")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = fill
        return ArraySurface(pixels)

    def draw_image_into(
        self, surface: ArraySurface, image: Image.Image, src: PixelRect, dst: PixelRect
    ) -> None:
        """Resample ``src`` of ``image`` into ``dst`` of the surface, alpha-compositing over it."""
        src = src.clamped(image.width, image.height)
        if src.is_empty:
            raise GeometryError("Source rectangle is empty")
        left, top = round_half_up(dst.x), round_half_up(dst.y)
        right, bottom = round_half_up(dst.right), round_half_up(dst.bottom)
        if right <= left or bottom <= top:
            return

        region = image.convert("RGBA").resize(
            (right - left, bottom - top),
            Image.Resampling.LANCZOS,
            box=(src.x, src.y, src.right, src.bottom),
        )
        layer = np.asarray(region, dtype=np.uint8)

        # clip destination to the surface
        x0, y0 = max(left, 0), max(top, 0)
        x1, y1 = min(right, surface.width), min(bottom, surface.height)
        if x1 <= x0 or y1 <= y0:
            return
        layer = layer[y0 - top : y1 - top, x0 - left : x1 - left]
        target = surface.pixels[y0:y1, x0:x1]
        surface.pixels[y0:y1, x0:x1] = self._composite(layer, target)

    def fill_rect(self, surface: ArraySurface, rect: PixelRect, color: RGBA) -> None:
        area = rect.clamped(surface.width, surface.height)
        x0, y0 = round_half_up(area.x), round_half_up(area.y)
        x1, y1 = round_half_up(area.right), round_half_up(area.bottom)
        if x1 > x0 and y1 > y0:
            surface.pixels[y0:y1, x0:x1] = color

    def export_as_encoded_image(self, surface: ArraySurface, mime_type: str) -> bytes:
        fmt = _PIL_FORMATS.get(mime_type)
        if fmt is None:
            raise GeometryError(f"Cannot export surface as {mime_type}")
        img = surface.to_image()
        buf = BytesIO()
        if fmt == "JPEG":
            img.convert("RGB").save(buf, format=fmt, quality=self.jpeg_quality)
        else:
            img.save(buf, format=fmt)
        return buf.getvalue()

    # --------- helpers ---------
    @staticmethod
    def _composite(layer: np.ndarray, target: np.ndarray) -> np.ndarray:
        # Source-over: out = src * a_s + dst * a_d * (1 - a_s)
        src = layer.astype(np.float32) / 255.0
        dst = target.astype(np.float32) / 255.0
        a_s = src[..., 3:4]
        a_d = dst[..., 3:4]
        a_out = a_s + a_d * (1.0 - a_s)
        safe = np.where(a_out == 0.0, 1.0, a_out)
        rgb = (src[..., :3] * a_s + dst[..., :3] * a_d * (1.0 - a_s)) / safe
        out = np.concatenate([rgb, a_out], axis=2)
        return np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)
