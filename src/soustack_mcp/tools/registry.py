"""Tool registry built on Pydantic v2 models."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from soustack_mcp.obs.tracing import Timer, preview
from soustack_mcp.tools.schemas import validate_payload
from soustack_mcp.types import ToolTrace

ToolOutput = dict[str, Any]


def _no_output(payload: dict[str, Any]) -> ToolOutput:
    return {}


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation.

    When the payload does not match `args_schema`, the handler is not called;
    `invalid_output` builds the tool's empty result and the validation
    messages are attached under `errors`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: Callable[[Any], Awaitable[ToolOutput]]
    invalid_output: Callable[[dict[str, Any]], ToolOutput] = Field(default=_no_output)
    tags: list[str] = Field(default_factory=list)

    async def invoke(self, payload: dict[str, Any]) -> ToolOutput:
        data, errors = validate_payload(self.args_schema, payload)
        if data is None:
            return {**self.invalid_output(payload), "errors": errors}
        return await self.handler(data)


class ToolRegistry:
    """Stores tool specs and dispatches calls by tool name."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    async def execute(self, name: str, payload: dict[str, Any]) -> ToolOutput:
        spec = self._tools.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")
        return await self._execute_spec(spec, payload)

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    async def _execute_spec(self, spec: ToolSpec, payload: dict[str, Any]) -> ToolOutput:
        with Timer() as timer:
            output = await spec.invoke(payload)

        if self._observer is not None:
            self._observer(
                ToolTrace(
                    name=spec.name,
                    input_payload=payload,
                    output_preview=preview(output),
                    latency_ms=timer.elapsed_ms,
                )
            )
        return output
