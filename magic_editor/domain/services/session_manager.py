from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from magic_editor.domain.entities.image import ImageAsset
from magic_editor.domain.entities.session import Session
from magic_editor.domain.entities.workspace import Workspace
from magic_editor.domain.errors import StateContractViolation

logger = logging.getLogger(__name__)

SessionUpdater = Callable[[Session], Session]


class SessionManager:
    """Owns the workspace value and is the only place that replaces it.

    Every change builds a new tuple of sessions and a new Workspace; readers that
    grabbed ``workspace`` earlier keep a consistent snapshot.
    """

    def __init__(self, workspace: Workspace | None = None) -> None:
        self._workspace = workspace or Workspace()

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._workspace.sessions

    @property
    def active_session_id(self) -> str | None:
        return self._workspace.active_session_id

    @property
    def active_session(self) -> Session | None:
        return self._workspace.active_session

    def get(self, session_id: str) -> Session | None:
        return self._workspace.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self._workspace.get(session_id)
        if session is None:
            raise StateContractViolation(f"Unknown session {session_id}")
        return session

    def add_sessions(self, assets: Iterable[ImageAsset], *, activate: bool = False) -> list[Session]:
        """Append one session per asset.

        The first new session becomes active when nothing is active, or always when
        ``activate`` is set.
        """
        created = [Session.start(asset) for asset in assets]
        if not created:
            return []
        active_id = self._workspace.active_session_id
        if active_id is None or activate:
            active_id = created[0].id
        self._workspace = Workspace(
            sessions=self._workspace.sessions + tuple(created), active_session_id=active_id
        )
        logger.debug("Added %d session(s), active=%s", len(created), active_id)
        return created

    def switch_active(self, session_id: str) -> None:
        if session_id == self._workspace.active_session_id:
            return
        if self._workspace.get(session_id) is None:
            logger.warning("Ignoring switch to unknown session %s", session_id)
            return
        self._workspace = replace(self._workspace, active_session_id=session_id)

    def delete_session(self, session_id: str) -> bool:
        removed_index = self._workspace.index_of(session_id)
        if removed_index < 0:
            return False
        remaining = tuple(s for s in self._workspace.sessions if s.id != session_id)
        active_id = self._workspace.active_session_id
        if session_id == active_id:
            active_id = remaining[max(0, removed_index - 1)].id if remaining else None
        self._workspace = Workspace(sessions=remaining, active_session_id=active_id)
        logger.debug("Deleted session %s, active=%s", session_id, active_id)
        return True

    def update_session(self, session_id: str, updater: SessionUpdater) -> Session:
        index = self._workspace.index_of(session_id)
        if index < 0:
            raise StateContractViolation(f"Unknown session {session_id}")
        current = self._workspace.sessions[index]
        updated = updater(current)
        if updated is current:
            return current
        if updated.id != current.id:
            raise StateContractViolation("A session update must not change the session id")
        sessions = self._workspace.sessions
        self._workspace = replace(
            self._workspace, sessions=sessions[:index] + (updated,) + sessions[index + 1 :]
        )
        return updated

    def update_active_session(self, updater: SessionUpdater) -> Session | None:
        active_id = self._workspace.active_session_id
        if active_id is None:
            return None
        return self.update_session(active_id, updater)
