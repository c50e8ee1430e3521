"""Conversation history bounded by an estimated size budget."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from agent_dispatch.obs.metrics import estimate_size
from agent_dispatch.types import Role, Turn

logger = logging.getLogger(__name__)


def make_turn(role: Role | str, text: str) -> Turn:
    return Turn(role=Role(role), text=text, size=estimate_size(text))


def turns_as_messages(turns: Iterable[Turn]) -> list[tuple[str, str]]:
    """Render turns as ``(role, text)`` pairs accepted by LangChain chat models."""
    return [(turn.role.value, turn.text) for turn in turns]


class HistoryBuffer:
    """Ordered turns, oldest first, pruned from the head on every append.

    After ``append`` returns, ``total_size() <= budget`` unless only one turn
    is left; the most recently appended turn is never evicted.
    """

    def __init__(self, budget: int) -> None:
        if budget <= 0:
            raise ValueError("history budget must be > 0")
        self.budget = budget
        self._turns: deque[Turn] = deque()
        self._total = 0

    def append(self, turn: Turn) -> list[Turn]:
        """Add ``turn`` and return the turns evicted to respect the budget."""
        self._turns.append(turn)
        self._total += turn.size

        evicted: list[Turn] = []
        while self._total > self.budget and len(self._turns) > 1:
            oldest = self._turns.popleft()
            self._total -= oldest.size
            evicted.append(oldest)

        if evicted:
            logger.debug(
                "Pruned %d turn(s) from history; %d left, size %d/%d",
                len(evicted),
                len(self._turns),
                self._total,
                self.budget,
            )
        return evicted

    def add(self, role: Role | str, text: str) -> list[Turn]:
        return self.append(make_turn(role, text))

    def total_size(self) -> int:
        return self._total

    def snapshot(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def as_messages(self) -> list[tuple[str, str]]:
        return turns_as_messages(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
