"""Per-session orchestrators sharing one capability registry."""

from __future__ import annotations

import logging

from agent_dispatch.agent.orchestrator import Orchestrator
from agent_dispatch.agent.registry import CapabilityRegistry
from agent_dispatch.config import DispatchConfig
from agent_dispatch.errors import NotFoundError

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory map of session id to its own Orchestrator."""

    def __init__(
        self, registry: CapabilityRegistry, config: DispatchConfig | None = None
    ) -> None:
        self.registry = registry
        self.config = config or DispatchConfig()
        self._sessions: dict[str, Orchestrator] = {}

    def get_or_create(self, session_id: str) -> Orchestrator:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            orchestrator = Orchestrator(self.registry, self.config)
            self._sessions[session_id] = orchestrator
            logger.info("Created session %s", session_id)
        return orchestrator

    def get(self, session_id: str) -> Orchestrator:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return orchestrator

    def drop(self, session_id: str) -> None:
        orchestrator = self._sessions.pop(session_id, None)
        if orchestrator is None:
            raise NotFoundError(f"Session not found: {session_id}")
        orchestrator.cancel()

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
