"""Built-in capabilities: specialist agents and simple assistant tools."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from hashlib import blake2b
from typing import Any

from agent_dispatch.agent.handlers import ChatModelHandler, StreamingChatModelHandler
from agent_dispatch.agent.registry import Capability, CapabilityRegistry
from agent_dispatch.agent.triggers import KeywordTrigger, PredicateTrigger
from agent_dispatch.errors import FatalError
from agent_dispatch.types import Request

TRAVEL_PROMPT = (
    "You are a travel booking specialist. Book flights, hotels and rentals "
    "described in the user's request and confirm the booking details briefly."
)
CALENDAR_PROMPT = (
    "You are a calendar assistant. Schedule the meetings or events described "
    "in the user's request and confirm date, time and duration briefly."
)
EMAIL_PROMPT = (
    "You are an email assistant. Draft and send the email described in the "
    "user's request and confirm recipients and subject briefly."
)

_WEATHER_CONDITIONS = ("Sunny", "Cloudy", "Rainy", "Partly cloudy")
_NUMBER = r"(-?\d+(?:\.\d+)?)"
_OTHER_OPERATORS = r"\*|/|x|plus|minus|times|multiplied by|divided by"
_OPERATOR = rf"(\+|-|{_OTHER_OPERATORS})"
# Without an explicit cue, "-" must stand apart so dates like 2024-10-17 are not subtraction.
_SPACED_OPERATOR = rf"(\+|(?<=\s)-(?=\s)|{_OTHER_OPERATORS})"
_EXPRESSION_PATTERN = re.compile(rf"{_NUMBER}\s*{_OPERATOR}\s*{_NUMBER}", re.IGNORECASE)
_SPACED_EXPRESSION_PATTERN = re.compile(
    rf"{_NUMBER}\s*{_SPACED_OPERATOR}\s*{_NUMBER}", re.IGNORECASE
)
_ARITHMETIC_CUES = ("calculate", "compute")
_LOCATION_PATTERN = re.compile(r"\bin\s+([a-z][a-z .'-]*)", re.IGNORECASE)
_TASK_NOUN = r"(?:tasks?|to-?dos?)"
_ADD_TASK_PATTERN = re.compile(
    rf"\badd\b(?:\s+(?:a|an|the|new))*\s+{_TASK_NOUN}(?:\s+item)?\s*[:-]?\s*(.+)",
    re.IGNORECASE,
)
_ADD_TO_LIST_PATTERN = re.compile(
    rf"\badd\s+(.+?)\s+to\s+(?:my\s+|the\s+)?{_TASK_NOUN}", re.IGNORECASE
)
_LIST_TASKS_PATTERN = re.compile(r"\b(?:list|show|what are|what's on)\b", re.IGNORECASE)


def _contains(text: str, *words: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in words)


def _with_latency(
    reply: Callable[[Request], str], latency: float
) -> Callable[[Request], Awaitable[str]]:
    async def _handler(request: Request) -> str:
        if latency > 0:
            await asyncio.sleep(latency)
        return reply(request)

    return _handler


def _travel(request: Request) -> str:
    if _contains(request.text, "flight"):
        return "Flight booked successfully (Flight AA123, Dep: 10:00 AM)"
    if _contains(request.text, "hotel"):
        return "Hotel reserved (Grand Hotel, Check-in: Tomorrow)"
    return "Travel arrangement completed"


def _calendar(request: Request) -> str:
    if _contains(request.text, "meeting"):
        return "Meeting scheduled successfully (Next Wednesday, 2:00 PM)"
    return "Calendar event created"


def _email(request: Request) -> str:
    return "Email sent successfully to recipients"


def calculate(operation: str, left: float, right: float) -> float:
    """Apply one arithmetic operation, raising FatalError on bad input."""
    op = operation.lower()
    if op in ("+", "plus", "add"):
        return left + right
    if op in ("-", "minus", "subtract"):
        return left - right
    if op in ("*", "x", "times", "multiplied by", "multiply"):
        return left * right
    if op in ("/", "divided by", "divide"):
        if right == 0:
            raise FatalError("Cannot divide by zero")
        return left / right
    raise FatalError(f"Unknown operation '{operation}'")


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6g}"


def _find_expression(text: str) -> re.Match[str] | None:
    if _contains(text, *_ARITHMETIC_CUES):
        return _EXPRESSION_PATTERN.search(text)
    return _SPACED_EXPRESSION_PATTERN.search(text)


def _calculator(request: Request) -> str:
    match = _find_expression(request.text)
    if match is None:
        raise FatalError("No arithmetic expression found in request")
    left, operation, right = match.groups()
    result = calculate(operation, float(left), float(right))
    return f"Result: {_format_number(result)}"


def _looks_like_arithmetic(request: Request) -> bool:
    return _contains(request.text, *_ARITHMETIC_CUES) or bool(_find_expression(request.text))


def simulated_weather(location: str) -> str:
    """Deterministic weather report seeded by a stable hash of the city name."""
    digest = blake2b(location.lower().encode("utf-8"), digest_size=8).digest()
    condition = _WEATHER_CONDITIONS[digest[0] % len(_WEATHER_CONDITIONS)]
    temperature = 50 + digest[1] % 35
    return f"Weather in {location}: {condition}, {temperature}°F"


def _weather(request: Request) -> str:
    match = _LOCATION_PATTERN.search(request.text)
    if match is None:
        raise FatalError("No location given; ask for the weather 'in <city>'")
    location = match.group(1).strip(" .'-").title()
    if not location:
        raise FatalError("No location given; ask for the weather 'in <city>'")
    return simulated_weather(location)


def _task_description(text: str) -> str | None:
    match = _ADD_TASK_PATTERN.search(text) or _ADD_TO_LIST_PATTERN.search(text)
    if match is None:
        return None
    description = match.group(1).strip().strip("\"'").rstrip(".!?").strip()
    if not description:
        raise FatalError("Task description is empty")
    return description


def _tasks(request: Request) -> str:
    """To-do list kept in the session's ``session_data``."""
    tasks: list[str] = request.session_data.setdefault("tasks", [])
    description = _task_description(request.text)
    if description is not None:
        tasks.append(description)
        return f"Task added: '{description}' (Total tasks: {len(tasks)})"
    if _LIST_TASKS_PATTERN.search(request.text):
        if not tasks:
            return "No tasks in the list."
        lines = "\n".join(f"{index}. {task}" for index, task in enumerate(tasks, start=1))
        return f"Current tasks:\n{lines}"
    raise FatalError("Say 'add task <description>' or 'list tasks'")


def register_builtin_capabilities(
    registry: CapabilityRegistry,
    *,
    llm: Any | None = None,
    include_tools: bool = True,
    streaming: bool = False,
    simulated_latency: float = 0.0,
) -> None:
    """Register the default capability set.

    Capabilities:
    - `travel`: flights and hotels.
    - `calendar`: meetings and scheduling.
    - `email`: sending messages.
    - `calculator` / `weather` / `tasks`: deterministic assistant tools
      (only when ``include_tools`` is true). `tasks` keeps its to-do list in
      the session's ``session_data``.

    When ``llm`` is given, the three specialist agents are answered by the
    chat model with their own system prompt, streamed chunk by chunk when
    ``streaming`` is true; otherwise they reply with fixed confirmations so
    the system runs without credentials.
    """

    def _agent(prompt: str, fallback: Callable[[Request], str]) -> Callable[[Request], Any]:
        if llm is not None:
            handler_cls = StreamingChatModelHandler if streaming else ChatModelHandler
            return handler_cls(llm=llm, system_prompt=prompt)
        return _with_latency(fallback, simulated_latency)

    registry.register(
        Capability(
            name="travel",
            description="Book flights, hotels and rentals.",
            trigger=KeywordTrigger(["flight", "hotel"]),
            handler=_agent(TRAVEL_PROMPT, _travel),
            tags=("agent", "travel"),
        )
    )
    registry.register(
        Capability(
            name="calendar",
            description="Manage schedule and meetings.",
            trigger=KeywordTrigger(["meeting", "schedule"]),
            handler=_agent(CALENDAR_PROMPT, _calendar),
            tags=("agent", "calendar"),
        )
    )
    registry.register(
        Capability(
            name="email",
            description="Send and manage emails.",
            trigger=KeywordTrigger(["email", "send"]),
            handler=_agent(EMAIL_PROMPT, _email),
            tags=("agent", "email"),
        )
    )
    if not include_tools:
        return

    registry.register(
        Capability(
            name="calculator",
            description="Perform arithmetic: add, subtract, multiply or divide two numbers.",
            trigger=PredicateTrigger(_looks_like_arithmetic),
            handler=_with_latency(_calculator, simulated_latency),
            tags=("tool",),
        )
    )
    registry.register(
        Capability(
            name="weather",
            description="Get the current weather for a city.",
            trigger=KeywordTrigger(["weather", "forecast"]),
            handler=_with_latency(_weather, simulated_latency),
            tags=("tool",),
        )
    )
    registry.register(
        Capability(
            name="tasks",
            description="Add items to the to-do list or list the current tasks.",
            trigger=KeywordTrigger(["task", "to-do", "todo"]),
            handler=_with_latency(_tasks, simulated_latency),
            tags=("tool",),
        )
    )
