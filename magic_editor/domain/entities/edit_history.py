from __future__ import annotations

from dataclasses import dataclass, field

from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.errors import StateContractViolation, ValidationError


@dataclass(frozen=True)
class EditHistory:
    """Linear undo/redo history of edits; the original image is not part of it.

    ``index == -1`` means the original is showing. Committing after an undo
    discards the undone tail.
    """

    entries: tuple[ImageAsset, ...] = field(default_factory=tuple)
    index: int = -1

    def __post_init__(self) -> None:
        if not -1 <= self.index < len(self.entries):
            raise StateContractViolation(
                f"History index {self.index} out of bounds for {len(self.entries)} entries"
            )

    @property
    def can_undo(self) -> bool:
        return self.index >= 0

    @property
    def can_redo(self) -> bool:
        return self.index < len(self.entries) - 1

    @property
    def current(self) -> ImageAsset | None:
        if self.index >= 0:
            return self.entries[self.index]
        return None

    def commit(self, asset: ImageAsset) -> EditHistory:
        if not isinstance(asset, ImageAsset):
            raise ValidationError("Only image assets can be committed to history")
        kept = self.entries[: self.index + 1]
        return EditHistory(entries=kept + (asset,), index=len(kept))

    def undo(self) -> EditHistory:
        if not self.can_undo:
            return self
        return EditHistory(entries=self.entries, index=self.index - 1)

    def redo(self) -> EditHistory:
        if not self.can_redo:
            return self
        return EditHistory(entries=self.entries, index=self.index + 1)

    def __len__(self) -> int:
        return len(self.entries)
