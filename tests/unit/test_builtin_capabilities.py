import pytest

from agent_dispatch.agent.capabilities import (
    calculate,
    register_builtin_capabilities,
    simulated_weather,
)
from agent_dispatch.agent.handlers import ChatModelHandler, StreamingChatModelHandler, invoke_handler
from agent_dispatch.agent.registry import CapabilityRegistry
from agent_dispatch.agent.router import RequestRouter
from agent_dispatch.errors import FatalError
from agent_dispatch.types import Request


@pytest.fixture
def registry() -> CapabilityRegistry:
    registry = CapabilityRegistry()
    register_builtin_capabilities(registry)
    return registry


async def _run(
    registry: CapabilityRegistry,
    name: str,
    text: str,
    session_data: dict | None = None,
) -> str:
    request = Request(text=text, session_data={} if session_data is None else session_data)
    return await invoke_handler(registry.lookup(name).handler, request)


def test_builtin_registration_order(registry: CapabilityRegistry) -> None:
    assert registry.names() == ["travel", "calendar", "email", "calculator", "weather", "tasks"]


def test_tools_can_be_left_out() -> None:
    registry = CapabilityRegistry()
    register_builtin_capabilities(registry, include_tools=False)

    assert registry.names() == ["travel", "calendar", "email"]


def test_multi_agent_request_routes_to_travel_and_email(registry: CapabilityRegistry) -> None:
    router = RequestRouter(registry)

    selected = router.select(
        Request(text="Book a hotel in SF for Monday night and send confirmation email")
    )

    assert [capability.name for capability in selected] == ["travel", "email"]


@pytest.mark.asyncio
async def test_travel_replies_depend_on_request(registry: CapabilityRegistry) -> None:
    assert "Flight booked" in await _run(registry, "travel", "Book a flight to NYC")
    assert "Hotel reserved" in await _run(registry, "travel", "Find a hotel")


@pytest.mark.asyncio
async def test_calculator_evaluates_expression(registry: CapabilityRegistry) -> None:
    assert await _run(registry, "calculator", "What's 25 * 48?") == "Result: 1200"
    assert await _run(registry, "calculator", "calculate 7 divided by 2") == "Result: 3.5"


@pytest.mark.asyncio
async def test_calculator_without_expression_is_fatal(registry: CapabilityRegistry) -> None:
    with pytest.raises(FatalError):
        await _run(registry, "calculator", "calculate my taxes")


def test_division_by_zero_is_fatal() -> None:
    with pytest.raises(FatalError, match="divide by zero"):
        calculate("/", 1.0, 0.0)


@pytest.mark.asyncio
async def test_weather_is_deterministic_per_city(registry: CapabilityRegistry) -> None:
    first = await _run(registry, "weather", "What's the weather in Seattle?")
    second = await _run(registry, "weather", "weather in seattle")

    assert first == second == simulated_weather("Seattle")
    assert first.startswith("Weather in Seattle: ")
    assert first.endswith("°F")


@pytest.mark.asyncio
async def test_weather_without_location_is_fatal(registry: CapabilityRegistry) -> None:
    with pytest.raises(FatalError):
        await _run(registry, "weather", "what is the weather like")


def test_dates_do_not_route_to_calculator(registry: CapabilityRegistry) -> None:
    router = RequestRouter(registry)

    selected = router.select(Request(text="Schedule a meeting on 2024-10-17"))

    assert [capability.name for capability in selected] == ["calendar"]


@pytest.mark.asyncio
async def test_subtraction_needs_spacing_or_a_cue(registry: CapabilityRegistry) -> None:
    router = RequestRouter(registry)

    assert [c.name for c in router.select(Request(text="What's 10 - 3?"))] == ["calculator"]
    assert await _run(registry, "calculator", "What's 10 - 3?") == "Result: 7"
    assert await _run(registry, "calculator", "calculate 10-3") == "Result: 7"


@pytest.mark.asyncio
async def test_tasks_are_added_and_listed_in_order(registry: CapabilityRegistry) -> None:
    session_data: dict = {}

    first = await _run(registry, "tasks", "Add a task: Review pull request", session_data)
    second = await _run(
        registry, "tasks", "add 'Update documentation' to my to-do list", session_data
    )
    listing = await _run(registry, "tasks", "List my tasks", session_data)

    assert first == "Task added: 'Review pull request' (Total tasks: 1)"
    assert second == "Task added: 'Update documentation' (Total tasks: 2)"
    assert listing == "Current tasks:\n1. Review pull request\n2. Update documentation"
    assert session_data["tasks"] == ["Review pull request", "Update documentation"]


@pytest.mark.asyncio
async def test_empty_task_list(registry: CapabilityRegistry) -> None:
    assert await _run(registry, "tasks", "show my tasks") == "No tasks in the list."


@pytest.mark.asyncio
async def test_unclear_task_request_is_fatal(registry: CapabilityRegistry) -> None:
    with pytest.raises(FatalError):
        await _run(registry, "tasks", "tasks")


class _StubModel:
    async def ainvoke(self, messages):
        return "ok"


def test_specialists_use_streaming_handlers_when_asked() -> None:
    streaming = CapabilityRegistry()
    register_builtin_capabilities(streaming, llm=_StubModel(), streaming=True)
    plain = CapabilityRegistry()
    register_builtin_capabilities(plain, llm=_StubModel())

    for name in ("travel", "calendar", "email"):
        assert isinstance(streaming.lookup(name).handler, StreamingChatModelHandler)
        assert type(plain.lookup(name).handler) is ChatModelHandler
