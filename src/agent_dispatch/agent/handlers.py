"""Handler invocation helpers and chat-model backed handlers."""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Callable
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, convert_to_messages

from agent_dispatch.errors import classify_provider_error
from agent_dispatch.memory.history import turns_as_messages
from agent_dispatch.types import Request

Handler = Callable[[Request], Any]


async def invoke_handler(handler: Handler, request: Request) -> str:
    """Call a sync or async handler and normalise its result to text.

    Handlers may return a string, an awaitable, or a finite sync/async
    iterable of string chunks (streaming handlers). Chunks are joined.
    """

    result = handler(request)
    if inspect.isawaitable(result):
        result = await result
    return await collect_text(result)


async def collect_text(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if hasattr(result, "__aiter__"):
        return "".join([str(chunk) async for chunk in result])
    if isinstance(result, (list, tuple)) or inspect.isgenerator(result):
        return "".join(str(chunk) for chunk in result)
    return str(getattr(result, "content", result))


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            else:
                parts.append(str(item))
        return "".join(parts)
    return str(content)


class ChatModelHandler:
    """Specialist agent: one system prompt in front of a shared chat model.

    The session's pruned history travels with every request, so the model
    sees the earlier exchanges between the system prompt and the new message.
    """

    def __init__(self, *, llm: Any, system_prompt: str) -> None:
        self.llm = llm
        self.system_prompt = system_prompt

    def build_messages(self, request: Request) -> list[BaseMessage]:
        return [
            SystemMessage(content=self.system_prompt),
            *convert_to_messages(turns_as_messages(request.history)),
            HumanMessage(content=request.text),
        ]

    async def __call__(self, request: Request) -> str:
        try:
            response = await self.llm.ainvoke(self.build_messages(request))
        except Exception as exc:
            raise classify_provider_error(exc) from exc
        return _message_text(response)


class StreamingChatModelHandler(ChatModelHandler):
    """Variant yielding response chunks as the chat model streams them."""

    def __call__(self, request: Request) -> AsyncIterator[str]:  # type: ignore[override]
        return self._stream(request)

    async def _stream(self, request: Request) -> AsyncIterator[str]:
        try:
            async for chunk in self.llm.astream(self.build_messages(request)):
                text = _message_text(chunk)
                if text:
                    yield text
        except Exception as exc:
            raise classify_provider_error(exc) from exc
