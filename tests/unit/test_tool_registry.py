import asyncio

import pytest
from pydantic import Field

from soustack_mcp.tools.registry import ToolRegistry, ToolSpec
from soustack_mcp.tools.schemas import WireModel


class CountInput(WireModel):
    max_count: int = Field(ge=1)


async def _handler(data: CountInput) -> dict[str, object]:
    return {"items": list(range(data.max_count))}


def _spec(**overrides: object) -> ToolSpec:
    fields: dict[str, object] = {
        "name": "count",
        "description": "count up",
        "args_schema": CountInput,
        "handler": _handler,
        "invalid_output": lambda payload: {"items": []},
    }
    fields.update(overrides)
    return ToolSpec(**fields)


def test_tool_registry_validation() -> None:
    registry = ToolRegistry()
    registry.register(_spec())

    assert asyncio.run(registry.execute("count", {"maxCount": 3})) == {"items": [0, 1, 2]}

    invalid = asyncio.run(registry.execute("count", {"maxCount": 0}))
    assert invalid["items"] == []
    assert len(invalid["errors"]) == 1
    assert invalid["errors"][0].startswith("maxCount:")


def test_invalid_output_defaults_to_errors_only() -> None:
    registry = ToolRegistry()
    registry.register(
        ToolSpec(name="bare", description="no empty shape", args_schema=CountInput, handler=_handler)
    )

    result = asyncio.run(registry.execute("bare", {}))
    assert list(result) == ["errors"]


def test_duplicate_tool_registration_rejected() -> None:
    registry = ToolRegistry()
    spec = _spec()

    registry.register(spec)
    with pytest.raises(ValueError):
        registry.register(spec)


def test_unknown_tool_raises_key_error() -> None:
    registry = ToolRegistry()

    assert registry.get("nope") is None
    with pytest.raises(KeyError):
        asyncio.run(registry.execute("nope", {}))


def test_handler_errors_propagate() -> None:
    async def _boom(data: CountInput) -> dict[str, object]:
        raise RuntimeError("provider exploded")

    registry = ToolRegistry()
    registry.register(_spec(handler=_boom))

    with pytest.raises(RuntimeError, match="provider exploded"):
        asyncio.run(registry.execute("count", {"maxCount": 1}))
