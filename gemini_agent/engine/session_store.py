"""In-memory store holding at most one active session."""
from __future__ import annotations

import logging

from gemini_agent.shared.models.session import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Holds the single active conversation, if any.

    Creating a session replaces the previous one outright; nothing is
    merged or persisted.
    """

    def __init__(self) -> None:
        self._current: Session | None = None

    @property
    def current(self) -> Session | None:
        return self._current

    def create(self, workspace_root: str) -> Session:
        previous = self._current
        self._current = Session(workspace_root=workspace_root)
        if previous is not None:
            logger.info(
                "Session %s replaced by %s (%d messages dropped)",
                previous.session_id, self._current.session_id,
                previous.message_count,
            )
        else:
            logger.info("Session %s created (workspace=%s)",
                        self._current.session_id, workspace_root or "<none>")
        return self._current

    def clear(self) -> Session | None:
        previous, self._current = self._current, None
        if previous is not None:
            logger.info("Session %s cleared", previous.session_id)
        return previous
