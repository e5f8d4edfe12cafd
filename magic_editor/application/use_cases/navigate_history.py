from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from magic_editor.domain.entities.session import Session
from magic_editor.domain.services.session_manager import SessionManager


class HistoryAction(str, Enum):
    UNDO = "undo"
    REDO = "redo"
    RESET = "reset"


@dataclass
class NavigateHistoryUseCase:
    sessions: SessionManager

    def execute(self, session_id: str, action: HistoryAction) -> Session:
        """Move through a session's history; undo/redo at a boundary leave it unchanged.

        Reset returns to the original and also clears the session's prompt.
        """
        if action is HistoryAction.UNDO:
            return self.sessions.update_session(session_id, Session.undo)
        if action is HistoryAction.REDO:
            return self.sessions.update_session(session_id, Session.redo)
        return self.sessions.update_session(session_id, Session.reset)
