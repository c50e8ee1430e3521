"""Capability registry built on Pydantic v2 models."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_dispatch.agent.handlers import invoke_handler
from agent_dispatch.agent.triggers import KeywordTrigger, Trigger
from agent_dispatch.errors import DuplicateCapabilityError, NotFoundError
from agent_dispatch.types import Request


class CapabilityToolInput(BaseModel):
    request: str = Field(min_length=1)


class Capability(BaseModel):
    """A named, triggerable unit of delegated work."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    trigger: Any
    handler: Callable[[Request], Any]
    tags: tuple[str, ...] = ()

    @field_validator("trigger")
    @classmethod
    def _check_trigger(cls, value: Any) -> Trigger:
        if not isinstance(value, Trigger):
            raise ValueError("trigger must define matches(request) -> bool")
        return value

    @classmethod
    def with_keywords(
        cls,
        name: str,
        keywords: Iterable[str],
        handler: Callable[[Request], Any],
        **kwargs: Any,
    ) -> "Capability":
        return cls(name=name, trigger=KeywordTrigger(keywords), handler=handler, **kwargs)

    def matches(self, request: Request) -> bool:
        return self.trigger.matches(request)

    async def amatches(self, request: Request) -> bool:
        amatches = getattr(self.trigger, "amatches", None)
        if amatches is None:
            return self.trigger.matches(request)
        return await amatches(request)


class CapabilityRegistry:
    """Stores capabilities by name, preserving registration order."""

    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}

    def register(self, capability: Capability) -> None:
        if capability.name in self._capabilities:
            raise DuplicateCapabilityError(
                f"Capability already registered: {capability.name}"
            )
        self._capabilities[capability.name] = capability

    def lookup(self, name: str) -> Capability:
        capability = self._capabilities.get(name)
        if capability is None:
            raise NotFoundError(f"Unknown capability: {name}")
        return capability

    def all(self) -> tuple[Capability, ...]:
        return tuple(self._capabilities.values())

    def names(self) -> list[str]:
        return list(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def as_langchain_tools(self) -> list[StructuredTool]:
        """Export capabilities as tools for a tool-calling chat model."""
        tools: list[StructuredTool] = []
        for capability in self._capabilities.values():
            tools.append(
                StructuredTool.from_function(
                    name=capability.name,
                    description=capability.description or capability.name,
                    args_schema=CapabilityToolInput,
                    coroutine=self._build_coroutine(capability),
                )
            )
        return tools

    @staticmethod
    def _build_coroutine(capability: Capability) -> Callable[..., Any]:
        async def _call(request: str) -> str:
            return await invoke_handler(capability.handler, Request(text=request))

        return _call
