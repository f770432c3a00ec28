"""Latency timing and tool trace logging."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from soustack_mcp.types import ToolTrace

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 320


class Timer:
    """Simple context timer used around tool execution."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def preview(output: Any, max_length: int = PREVIEW_LENGTH) -> str:
    """Render a compact, truncated JSON preview of a tool output."""
    text = json.dumps(output, ensure_ascii=False, separators=(",", ":"), default=str)
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def log_tool_trace(trace: ToolTrace) -> None:
    """Default registry observer: one DEBUG line per executed tool."""
    logger.debug(
        "tool=%s latency_ms=%.2f output=%s",
        trace.name,
        trace.latency_ms,
        trace.output_preview,
    )
