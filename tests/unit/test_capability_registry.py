import pytest
from langchain_core.tools import StructuredTool
from pydantic import ValidationError

from agent_dispatch.agent.registry import Capability, CapabilityRegistry
from agent_dispatch.errors import DuplicateCapabilityError, NotFoundError
from agent_dispatch.types import Request


def _echo(request: Request) -> str:
    return request.text.upper()


def test_registry_preserves_registration_order() -> None:
    registry = CapabilityRegistry()
    for name in ("travel", "calendar", "email"):
        registry.register(Capability.with_keywords(name, [name], _echo))

    assert [capability.name for capability in registry.all()] == [
        "travel",
        "calendar",
        "email",
    ]
    assert registry.lookup("calendar").name == "calendar"
    assert "email" in registry
    assert len(registry) == 3


def test_duplicate_capability_registration_rejected() -> None:
    registry = CapabilityRegistry()
    original = Capability.with_keywords("echo", ["echo"], _echo, description="first")
    registry.register(original)

    with pytest.raises(DuplicateCapabilityError):
        registry.register(Capability.with_keywords("echo", ["other"], _echo))

    assert registry.all() == (original,)
    assert registry.lookup("echo").description == "first"


def test_duplicate_error_is_a_value_error() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability.with_keywords("echo", ["echo"], _echo))

    with pytest.raises(ValueError):
        registry.register(Capability.with_keywords("echo", ["echo"], _echo))


def test_lookup_unknown_capability_raises_not_found() -> None:
    registry = CapabilityRegistry()

    with pytest.raises(NotFoundError, match="Unknown capability: missing"):
        registry.lookup("missing")


def test_capability_requires_a_trigger_with_matches() -> None:
    with pytest.raises(ValidationError):
        Capability(name="broken", trigger="flight", handler=_echo)


def test_capability_is_immutable() -> None:
    capability = Capability.with_keywords("echo", ["echo"], _echo)

    with pytest.raises(ValidationError):
        capability.name = "renamed"


def test_as_langchain_tools_exports_every_capability() -> None:
    registry = CapabilityRegistry()
    registry.register(
        Capability.with_keywords("echo", ["echo"], _echo, description="uppercase")
    )

    tools = registry.as_langchain_tools()

    assert len(tools) == 1
    assert isinstance(tools[0], StructuredTool)
    assert tools[0].name == "echo"
    assert tools[0].description == "uppercase"


@pytest.mark.asyncio
async def test_exported_tool_invokes_handler() -> None:
    registry = CapabilityRegistry()
    registry.register(Capability.with_keywords("echo", ["echo"], _echo))

    tool = registry.as_langchain_tools()[0]

    assert await tool.ainvoke({"request": "hello"}) == "HELLO"
