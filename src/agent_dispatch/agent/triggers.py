"""Trigger predicates deciding whether a capability applies to a request."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from langchain_core.prompts import ChatPromptTemplate

from agent_dispatch.types import Request

logger = logging.getLogger(__name__)

_CLASSIFIER_PROMPT = """
You are a request router for a team of specialist agents.

Decide whether the specialist described below should handle any part of the
user's request. Answer with exactly one word: YES or NO.

Specialist: {name}
Responsibilities: {description}
""".strip()


@runtime_checkable
class Trigger(Protocol):
    """Anything that can tell whether a request should reach a capability.

    Triggers that do I/O may also define ``async amatches(request)``; the
    router awaits it in preference to ``matches``.
    """

    def matches(self, request: Request) -> bool:
        ...


class KeywordTrigger:
    """Case-insensitive substring match against a fixed keyword list."""

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = tuple(keyword.lower() for keyword in keywords if keyword)
        if not self.keywords:
            raise ValueError("KeywordTrigger requires at least one keyword")

    def matches(self, request: Request) -> bool:
        text = request.text.lower()
        return any(keyword in text for keyword in self.keywords)

    def __repr__(self) -> str:
        return f"KeywordTrigger({list(self.keywords)!r})"


class PredicateTrigger:
    """Adapts a plain ``(Request) -> bool`` callable to the trigger protocol."""

    def __init__(self, predicate: Callable[[Request], bool]) -> None:
        self._predicate = predicate

    def matches(self, request: Request) -> bool:
        return bool(self._predicate(request))


class ClassifierTrigger:
    """Model-driven trigger asking a chat model a yes/no routing question.

    The model is any LangChain chat model (or object exposing ``invoke`` and
    ``ainvoke``). The router awaits ``amatches`` so the event loop keeps
    serving other sessions while the model answers.
    Model failures are logged and count as "no match" so routing never raises.
    """

    def __init__(self, *, llm: Any, name: str, description: str) -> None:
        self.llm = llm
        self.name = name
        self.description = description
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", _CLASSIFIER_PROMPT),
                ("human", "{input}"),
            ]
        )

    def _messages(self, request: Request) -> list[Any]:
        return self._prompt.format_messages(
            name=self.name,
            description=self.description,
            input=request.text,
        )

    def matches(self, request: Request) -> bool:
        try:
            response = self.llm.invoke(self._messages(request))
        except Exception:
            logger.exception("Classifier trigger for %s failed", self.name)
            return False
        return _is_yes(response)

    async def amatches(self, request: Request) -> bool:
        try:
            response = await self.llm.ainvoke(self._messages(request))
        except Exception:
            logger.exception("Classifier trigger for %s failed", self.name)
            return False
        return _is_yes(response)


def _is_yes(response: Any) -> bool:
    answer = str(getattr(response, "content", response)).strip().upper()
    return answer.startswith("YES")
