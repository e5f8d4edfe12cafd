from __future__ import annotations

from dataclasses import dataclass, field

from magic_editor.domain.entities.session import Session
from magic_editor.domain.errors import StateContractViolation


@dataclass(frozen=True)
class Workspace:
    sessions: tuple[Session, ...] = field(default_factory=tuple)
    active_session_id: str | None = None

    def __post_init__(self) -> None:
        if self.active_session_id is not None and self.index_of(self.active_session_id) < 0:
            raise StateContractViolation(
                f"Active session {self.active_session_id} is not in the workspace"
            )

    def index_of(self, session_id: str) -> int:
        for i, session in enumerate(self.sessions):
            if session.id == session_id:
                return i
        return -1

    def get(self, session_id: str) -> Session | None:
        idx = self.index_of(session_id)
        return self.sessions[idx] if idx >= 0 else None

    @property
    def active_session(self) -> Session | None:
        if self.active_session_id is None:
            return None
        return self.get(self.active_session_id)

    def __len__(self) -> int:
        return len(self.sessions)
