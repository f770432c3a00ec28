"""Asyncio JSON-lines server: one request per input line, one response per output line."""

from __future__ import annotations

import asyncio
import logging
from typing import IO, Any, Union

from soustack_mcp.config import GatewaySettings
from soustack_mcp.obs.tracing import log_tool_trace
from soustack_mcp.protocol import (
    ErrorResponse,
    Request,
    Response,
    encode_response,
    failure,
    parse_line,
    success,
)
from soustack_mcp.providers.resolver import ProviderResolver
from soustack_mcp.tools.builtin import register_builtin_tools
from soustack_mcp.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

InputStream = Union[asyncio.StreamReader, IO[str]]


class GatewayServer:
    """Reads requests, dispatches them to tools concurrently and writes responses.

    Every non-blank line becomes its own task, so a slow provider call only
    delays its own response. Each response is written with a single `write`
    call from the event loop thread, so responses never interleave, but their
    order follows completion rather than arrival.
    """

    def __init__(self, registry: ToolRegistry, output: IO[str]) -> None:
        self.registry = registry
        self.output = output

    async def serve(self, stream: InputStream) -> None:
        pending: set[asyncio.Task[None]] = set()
        while True:
            line = await _read_line(stream)
            if line is None:
                break
            if not line.strip():
                continue
            task = asyncio.create_task(self._respond(line))
            pending.add(task)
            task.add_done_callback(pending.discard)

        if pending:
            await asyncio.gather(*pending)

    async def handle_line(self, line: str) -> Response | None:
        parsed = parse_line(line)
        if parsed is None or isinstance(parsed, ErrorResponse):
            return parsed
        return await self.dispatch(parsed)

    async def dispatch(self, request: Request) -> Response:
        spec = self.registry.get(request.tool)
        if spec is None:
            return failure(
                request.id,
                "tool_not_found",
                f'Tool "{request.tool}" is not available.',
            )

        try:
            output = await self.registry.execute(request.tool, request.input)
            return success(request.id, output)
        except Exception as exc:
            logger.exception("Tool %s failed for request %s", request.tool, request.id)
            return _tool_error(request.id, exc)

    async def _respond(self, line: str) -> None:
        response = await self.handle_line(line)
        if response is None:
            return
        try:
            encoded = encode_response(response)
        except (TypeError, ValueError) as exc:
            logger.exception("Could not serialize response for request %s", response.id)
            encoded = encode_response(_tool_error(response.id, exc))
        self.output.write(encoded)
        self.output.flush()


def build_server(
    settings: GatewaySettings,
    output: IO[str],
    *,
    providers: ProviderResolver | None = None,
) -> GatewayServer:
    """Wire a registry with the built-in tools and the default trace observer."""

    registry = ToolRegistry()
    register_builtin_tools(registry, providers or ProviderResolver(settings), settings=settings)
    registry.set_observer(log_tool_trace)
    return GatewayServer(registry, output)


async def serve_stream(
    stream: InputStream,
    output: IO[str],
    settings: GatewaySettings,
    *,
    providers: ProviderResolver | None = None,
) -> None:
    await build_server(settings, output, providers=providers).serve(stream)


def _tool_error(request_id: str | None, exc: BaseException) -> ErrorResponse:
    return failure(
        request_id,
        "tool_error",
        "Tool execution failed.",
        {"error": str(exc)},
    )


async def _read_line(stream: Any) -> str | None:
    if isinstance(stream, asyncio.StreamReader):
        raw = await stream.readline()
        return raw.decode("utf-8", errors="replace") if raw else None
    line = await asyncio.to_thread(stream.readline)
    return line or None
