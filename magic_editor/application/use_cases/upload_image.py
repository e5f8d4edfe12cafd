from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from magic_editor.domain.errors import GeometryError, ValidationError
from magic_editor.domain.services.geometry_service import GeometryService, NormalizedUpload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    filename: str | None
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class RejectedUpload:
    filename: str | None
    reason: str


@dataclass
class UploadBatch:
    supported: list[NormalizedUpload] = field(default_factory=list)
    unsupported: list[NormalizedUpload] = field(default_factory=list)
    rejected: list[RejectedUpload] = field(default_factory=list)


def _may_be_image(content_type: str | None) -> bool:
    if not content_type or content_type == "application/octet-stream":
        return True
    return content_type.startswith("image/")


@dataclass
class UploadImagesUseCase:
    geometry: GeometryService

    def execute(self, files: Iterable[UploadedFile]) -> UploadBatch:
        """
        Normalize each uploaded file.

        Files are downscaled to the provider limit and sorted by aspect class:
        supported ones can become sessions right away, extreme ratios need the
        user's decision first. Files that are not images are reported, not raised,
        so one bad file does not drop the rest of the batch.
        """
        batch = UploadBatch()
        for file in files:
            if not _may_be_image(file.content_type):
                batch.rejected.append(RejectedUpload(file.filename, f"{file.filename} is not an image"))
                continue
            try:
                normalized = self.geometry.normalize_upload(
                    file.data, filename=file.filename, declared_mime=file.content_type
                )
            except (GeometryError, ValidationError) as exc:
                logger.warning("Rejected upload %s: %s", file.filename, exc)
                batch.rejected.append(RejectedUpload(file.filename, str(exc)))
                continue
            if normalized.is_unsupported:
                batch.unsupported.append(normalized)
            else:
                batch.supported.append(normalized)
        return batch
