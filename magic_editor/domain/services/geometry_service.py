from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from magic_editor.domain.entities.geometry import AspectClass, Dimensions, PixelRect
from magic_editor.domain.entities.image import DIRECT_RASTER_MIMES, PNG_MIME, ImageAsset
from magic_editor.domain.errors import GeometryError, ValidationError
from magic_editor.domain.services.raster import BLACK, RGBA, RasterBackend

logger = logging.getLogger(__name__)

# Longest edge accepted by the generation providers
MAX_UPLOAD_DIMENSION = 1536

SQUARE_MIN_RATIO = 0.9
SQUARE_MAX_RATIO = 1.1
# 16:9 (1.778) and 9:16 are still editable directly; anything beyond needs a decision
EXTREME_WIDE_RATIO = 1.8
EXTREME_TALL_RATIO = 1 / 1.8

RATIO_MATCH_TOLERANCE = 0.01
COMMON_RATIOS: tuple[tuple[str, int, int], ...] = (
    ("1:1", 1, 1),
    ("16:9", 16, 9),
    ("9:16", 9, 16),
    ("4:3", 4, 3),
    ("3:4", 3, 4),
    ("3:2", 3, 2),
    ("2:3", 2, 3),
)

SQUARE_CANVAS = Dimensions(1024, 1024)
PORTRAIT_CANVAS = Dimensions(1024, 1536)  # 2:3
LANDSCAPE_CANVAS = Dimensions(1536, 1024)  # 3:2
PAD_BACKGROUND: RGBA = BLACK

EXPANSION_MAX_DIMENSION = 1792
EXPANSION_BASE_SIZE = 1024
WIDE_EXPANSION_RATIO = 1.5
TALL_EXPANSION_RATIO = 0.67

TRANSPARENT: RGBA = (0, 0, 0, 0)

_RATIO_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[:/x]\s*(\d+(?:\.\d+)?)\s*$")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class NormalizedUpload:
    asset: ImageAsset
    aspect_class: AspectClass
    ratio_label: str
    original_size: Dimensions
    size: Dimensions

    @property
    def was_downscaled(self) -> bool:
        return self.original_size != self.size

    @property
    def is_unsupported(self) -> bool:
        return self.aspect_class is AspectClass.UNSUPPORTED_EXTREME


class GeometryService:
    """Dimension, aspect-ratio and canvas operations applied before and after provider calls.

    The pure calculations are static; anything touching pixels goes through the
    injected raster backend.
    """

    def __init__(self, backend: RasterBackend, max_dimension: int = MAX_UPLOAD_DIMENSION) -> None:
        self.backend = backend
        self.max_dimension = max_dimension

    # --------- calculations ---------
    @staticmethod
    def exceeds_max_dimensions(width: int, height: int, max_dimension: int) -> bool:
        return width > max_dimension or height > max_dimension

    @staticmethod
    def downscaled_dimensions(width: int, height: int, max_dimension: int) -> Dimensions:
        if not GeometryService.exceeds_max_dimensions(width, height, max_dimension):
            return Dimensions(width, height)
        ratio = width / height
        if width > height:
            return Dimensions(max_dimension, max(1, round_half_up(max_dimension / ratio)))
        return Dimensions(max(1, round_half_up(max_dimension * ratio)), max_dimension)

    @staticmethod
    def classify_aspect(width: int, height: int) -> AspectClass:
        if width <= 0 or height <= 0:
            raise GeometryError(f"Invalid image size {width}x{height}")
        ratio = width / height
        if ratio < EXTREME_TALL_RATIO or ratio > EXTREME_WIDE_RATIO:
            return AspectClass.UNSUPPORTED_EXTREME
        if SQUARE_MIN_RATIO <= ratio <= SQUARE_MAX_RATIO:
            return AspectClass.SQUARE
        if ratio < 1.0:
            return AspectClass.PORTRAIT_MODERATE
        return AspectClass.LANDSCAPE_MODERATE

    @staticmethod
    def ratio_label(width: int, height: int) -> str:
        if width <= 0 or height <= 0:
            raise GeometryError(f"Invalid image size {width}x{height}")
        ratio = width / height
        best: tuple[float, str] | None = None
        for label, rw, rh in COMMON_RATIOS:
            diff = abs(ratio - rw / rh)
            if diff < RATIO_MATCH_TOLERANCE and (best is None or diff < best[0]):
                best = (diff, label)
        if best is not None:
            return best[1]
        divisor = math.gcd(width, height)
        return f"{width // divisor}:{height // divisor}"

    @staticmethod
    def parse_ratio(ratio_label: str) -> tuple[float, float]:
        match = _RATIO_RE.match(ratio_label or "")
        if not match:
            raise ValidationError(f"Unsupported aspect ratio '{ratio_label}', expected W:H")
        rw, rh = float(match.group(1)), float(match.group(2))
        if rw <= 0 or rh <= 0:
            raise ValidationError(f"Unsupported aspect ratio '{ratio_label}', expected W:H")
        return rw, rh

    @staticmethod
    def supported_canvas_for(width: int, height: int) -> Dimensions:
        ratio = width / height
        if SQUARE_MIN_RATIO <= ratio <= SQUARE_MAX_RATIO:
            return SQUARE_CANVAS
        if ratio < 1.0:
            return PORTRAIT_CANVAS
        return LANDSCAPE_CANVAS

    @staticmethod
    def nearest_supported_ratio(width: int, height: int) -> str:
        canvas = GeometryService.supported_canvas_for(width, height)
        return GeometryService.ratio_label(canvas.width, canvas.height)

    @staticmethod
    def target_dimensions_for_ratio(ratio_label: str) -> Dimensions:
        """Largest provider-friendly size with exactly the requested ratio.

        Strongly non-square ratios use the provider's maximum long edge, near-square
        ones the smaller base size.
        """
        rw, rh = GeometryService.parse_ratio(ratio_label)
        target = rw / rh
        if target >= 1:
            long_edge = EXPANSION_MAX_DIMENSION if target >= WIDE_EXPANSION_RATIO else EXPANSION_BASE_SIZE
            return Dimensions(long_edge, max(1, round_half_up(long_edge / target)))
        long_edge = EXPANSION_MAX_DIMENSION if target <= TALL_EXPANSION_RATIO else EXPANSION_BASE_SIZE
        return Dimensions(max(1, round_half_up(long_edge * target)), long_edge)

    @staticmethod
    def fit_layout(source: Dimensions, canvas: Dimensions) -> PixelRect:
        """Destination rect that fits the whole source inside the canvas, centered."""
        scale = min(canvas.width / source.width, canvas.height / source.height)
        width = source.width * scale
        height = source.height * scale
        return PixelRect((canvas.width - width) / 2, (canvas.height - height) / 2, width, height)

    @staticmethod
    def cover_source_rect(source: Dimensions, target: Dimensions) -> PixelRect:
        """Centered region of the source with the target's ratio (scale-to-cover, then crop)."""
        source_ratio = source.width / source.height
        target_ratio = target.width / target.height
        if source_ratio > target_ratio:
            width = source.height * target_ratio
            return PixelRect((source.width - width) / 2, 0.0, width, float(source.height))
        height = source.width / target_ratio
        return PixelRect(0.0, (source.height - height) / 2, float(source.width), height)

    # --------- pixel operations ---------
    def decode(self, asset: ImageAsset) -> tuple[Any, Dimensions]:
        image = self.backend.decode(asset.raw_bytes)
        return image, self.backend.dimensions(image)

    def image_dimensions(self, asset: ImageAsset) -> Dimensions:
        return self.decode(asset)[1]

    def normalize_upload(
        self, raw: bytes, filename: str | None = None, declared_mime: str | None = None
    ) -> NormalizedUpload:
        if not raw:
            raise GeometryError("Uploaded file is empty")
        image = self.backend.decode(raw)
        original = self.backend.dimensions(image)
        if declared_mime and declared_mime.startswith("image/"):
            mime = declared_mime
        else:
            mime = self.backend.detect_mime_type(image) or PNG_MIME

        size = self.downscaled_dimensions(original.width, original.height, self.max_dimension)
        if size == original:
            asset = ImageAsset.from_bytes(raw, mime, filename=filename, prefix="upload")
        else:
            out_mime = mime if mime in DIRECT_RASTER_MIMES else PNG_MIME
            surface = self.backend.create_surface(size.width, size.height, TRANSPARENT)
            self.backend.draw_image_into(surface, image, PixelRect.full(original), PixelRect.full(size))
            encoded = self.backend.export_as_encoded_image(surface, out_mime)
            asset = ImageAsset.from_bytes(encoded, out_mime, filename=filename, prefix="upload")
            logger.info("Image downscaled: %s -> %s (%s)", original, size, filename or asset.id)

        # label describes the returned asset, not the source file
        return NormalizedUpload(
            asset=asset,
            aspect_class=self.classify_aspect(size.width, size.height),
            ratio_label=self.ratio_label(size.width, size.height),
            original_size=original,
            size=size,
        )

    def pad_to_supported_ratio(self, asset: ImageAsset) -> ImageAsset:
        image, source = self.decode(asset)
        canvas = self.supported_canvas_for(source.width, source.height)
        surface = self.backend.create_surface(canvas.width, canvas.height, PAD_BACKGROUND)
        self.backend.draw_image_into(
            surface, image, PixelRect.full(source), self.fit_layout(source, canvas)
        )
        encoded = self.backend.export_as_encoded_image(surface, PNG_MIME)
        logger.info("Padded %s from %s to %s", asset.id, source, canvas)
        return ImageAsset.from_bytes(encoded, PNG_MIME, filename=asset.filename, prefix="padded")

    def resize_cover(self, asset: ImageAsset, target_width: int, target_height: int) -> ImageAsset:
        if target_width <= 0 or target_height <= 0:
            raise GeometryError(f"Invalid target size {target_width}x{target_height}")
        image, source = self.decode(asset)
        target = Dimensions(target_width, target_height)
        if source == target:
            return asset
        mime = asset.mime_type if asset.mime_type in DIRECT_RASTER_MIMES else PNG_MIME
        surface = self.backend.create_surface(target.width, target.height, TRANSPARENT)
        self.backend.draw_image_into(
            surface, image, self.cover_source_rect(source, target), PixelRect.full(target)
        )
        encoded = self.backend.export_as_encoded_image(surface, mime)
        return ImageAsset.from_bytes(encoded, mime, filename=asset.filename, prefix="resized")

    def crop(
        self,
        asset: ImageAsset,
        rect: PixelRect,
        display_size: Dimensions | None = None,
        device_pixel_ratio: float = 1.0,
    ) -> ImageAsset:
        """Rasterize ``rect`` (given in displayed-image coordinates) at native resolution."""
        image, natural = self.decode(asset)
        display = display_size or natural
        if display.width <= 0 or display.height <= 0:
            raise GeometryError(f"Invalid display size {display}")
        scale_x = natural.width / display.width
        scale_y = natural.height / display.height
        source = rect.scaled(scale_x, scale_y).clamped(natural.width, natural.height)
        pixel_ratio = device_pixel_ratio if device_pixel_ratio and device_pixel_ratio > 0 else 1.0
        out_width = math.floor(source.width * pixel_ratio)
        out_height = math.floor(source.height * pixel_ratio)
        if source.is_empty or out_width <= 0 or out_height <= 0:
            raise GeometryError("Crop area is empty")

        mime = asset.mime_type if asset.mime_type in DIRECT_RASTER_MIMES else PNG_MIME
        surface = self.backend.create_surface(out_width, out_height, TRANSPARENT)
        self.backend.draw_image_into(
            surface, image, source, PixelRect(0.0, 0.0, float(out_width), float(out_height))
        )
        encoded = self.backend.export_as_encoded_image(surface, mime)
        return ImageAsset.from_bytes(encoded, mime, filename=asset.filename, prefix="crop")
