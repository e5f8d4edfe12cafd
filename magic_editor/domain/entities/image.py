from __future__ import annotations

import base64
import binascii
import uuid
from dataclasses import dataclass, replace

from magic_editor.domain.errors import ValidationError

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"
# Raster types the canvas/export path can write directly
DIRECT_RASTER_MIMES = (JPEG_MIME, PNG_MIME)


def new_asset_id(prefix: str = "img") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class ImageAsset:
    id: str
    data: str  # base64-encoded image bytes
    mime_type: str
    filename: str | None = None  # source filename, set on uploaded originals

    @classmethod
    def from_bytes(
        cls,
        raw: bytes,
        mime_type: str,
        *,
        filename: str | None = None,
        prefix: str = "img",
    ) -> ImageAsset:
        if not raw:
            raise ValidationError("Image data is empty")
        return cls(
            id=new_asset_id(prefix),
            data=base64.b64encode(raw).decode("ascii"),
            mime_type=mime_type,
            filename=filename,
        )

    @property
    def raw_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError(f"Asset {self.id} does not hold valid base64 data") from exc

    @property
    def size(self) -> int:
        return len(self.raw_bytes)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def with_mime_type(self, mime_type: str) -> ImageAsset:
        if mime_type == self.mime_type:
            return self
        return replace(self, mime_type=mime_type)
