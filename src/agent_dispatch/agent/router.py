"""Routes a request to every capability whose trigger matches."""

from __future__ import annotations

import logging

from agent_dispatch.agent.registry import Capability, CapabilityRegistry
from agent_dispatch.types import Request

logger = logging.getLogger(__name__)


class RequestRouter:
    """Evaluates triggers in registration order and returns all matches.

    The router holds no state of its own; for a fixed registry and
    deterministic triggers, ``select`` returns the same tuple on every call.
    ``aselect`` is the variant used inside the event loop: it awaits
    triggers that talk to a model instead of blocking on them.
    """

    def __init__(self, registry: CapabilityRegistry) -> None:
        self._registry = registry

    def select(self, request: Request) -> tuple[Capability, ...]:
        selected = tuple(
            capability
            for capability in self._registry.all()
            if capability.matches(request)
        )
        self._log(request, selected)
        return selected

    async def aselect(self, request: Request) -> tuple[Capability, ...]:
        selected = []
        for capability in self._registry.all():
            if await capability.amatches(request):
                selected.append(capability)
        self._log(request, selected)
        return tuple(selected)

    @staticmethod
    def _log(request: Request, selected: tuple[Capability, ...] | list[Capability]) -> None:
        logger.debug(
            "Request %s routed to %s",
            request.correlation_id,
            [capability.name for capability in selected] or "no capability",
        )
