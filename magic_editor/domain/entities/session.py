from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace

from magic_editor.domain.entities.edit_history import EditHistory
from magic_editor.domain.entities.geometry import PixelRect
from magic_editor.domain.entities.image import ImageAsset


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Session:
    """One image lineage: the uploaded original plus its edit history.

    Sessions are values. Every mutation returns a new Session so a reader holding
    the previous one never observes a half-applied change.
    """

    id: str
    original: ImageAsset
    edits: EditHistory = field(default_factory=EditHistory)
    prompt: str = ""
    viewport_request: PixelRect | None = None
    # Bumped on every history mutation; operations compare it before committing
    revision: int = 0

    @classmethod
    def start(cls, original: ImageAsset, session_id: str | None = None) -> Session:
        return cls(id=session_id or new_session_id(), original=original)

    @property
    def history(self) -> tuple[ImageAsset, ...]:
        return self.edits.entries

    @property
    def history_index(self) -> int:
        return self.edits.index

    @property
    def can_undo(self) -> bool:
        return self.edits.can_undo

    @property
    def can_redo(self) -> bool:
        return self.edits.can_redo

    @property
    def source_filename(self) -> str | None:
        return self.original.filename

    def current_asset(self) -> ImageAsset:
        return self.edits.current or self.original

    def commit(self, asset: ImageAsset) -> Session:
        return replace(
            self,
            edits=self.edits.commit(asset),
            viewport_request=None,
            revision=self.revision + 1,
        )

    def undo(self) -> Session:
        if not self.can_undo:
            return self
        return replace(
            self, edits=self.edits.undo(), viewport_request=None, revision=self.revision + 1
        )

    def redo(self) -> Session:
        if not self.can_redo:
            return self
        return replace(
            self, edits=self.edits.redo(), viewport_request=None, revision=self.revision + 1
        )

    def reset(self) -> Session:
        return replace(
            self,
            edits=EditHistory(),
            prompt="",
            viewport_request=None,
            revision=self.revision + 1,
        )

    def with_prompt(self, prompt: str) -> Session:
        return replace(self, prompt=prompt)

    def with_viewport(self, rect: PixelRect | None) -> Session:
        return replace(self, viewport_request=rect)
