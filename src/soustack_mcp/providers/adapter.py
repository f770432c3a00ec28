"""Capability lookup and invocation for loosely shaped provider modules.

Providers are third-party modules whose export layout is not under our
control: a stage may be a top-level function, a member of a `default`
export bag, or live in a nested `stages` bag. `ProviderAdapter` maps one
loaded provider onto the fixed stage vocabulary below and fails loudly,
naming the missing stage, when nothing matches.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from soustack_mcp.errors import StageNotFoundError

logger = logging.getLogger(__name__)

STAGE_CANDIDATES: dict[str, tuple[str, ...]] = {
    "normalize": ("normalize", "normalizeText", "normalize_text"),
    "segment": ("segment", "segmentText", "segment_text"),
    "extract": ("extract", "extractRecipe", "extract_recipe"),
    "toSoustack": ("toSoustack", "to_soustack", "convert"),
    "validate": ("validate", "validateRecipe", "validate_recipe", "validateRecipePayload"),
    "ingestDocument": ("ingest", "ingestDocument", "ingest_document"),
}

_MISSING = object()


@dataclass(frozen=True, slots=True)
class CallShape:
    """One way of calling a stage: positional and keyword arguments."""

    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class ProviderAdapter:
    """Resolves stage functions on a single loaded provider."""

    def __init__(self, provider: Any, *, role: str) -> None:
        self.provider = provider
        self.role = role
        self._resolved: dict[str, Callable[..., Any]] = {}

    def stage(self, name: str) -> Callable[..., Any]:
        if name in self._resolved:
            return self._resolved[name]

        candidates = STAGE_CANDIDATES.get(name, (name,))
        func = _find_callable(self.provider, candidates)
        if func is None:
            raise StageNotFoundError(self.role, name, candidates)
        self._resolved[name] = func
        return func

    def has_stage(self, name: str) -> bool:
        try:
            self.stage(name)
        except StageNotFoundError:
            return False
        return True


async def call_stage(func: Callable[..., Any], *shapes: CallShape) -> Any:
    """Invoke `func` with each call shape in turn until one succeeds.

    Every shape is attempted when earlier ones raise; there is no way to tell
    a signature mismatch from a failure inside the provider, so a genuine
    provider error on the first shape is retried with the next one. The
    exception from the last shape propagates.
    """

    if not shapes:
        shapes = (CallShape(),)

    *fallbacks, last = shapes
    for index, shape in enumerate(fallbacks):
        try:
            return await _invoke(func, shape)
        except Exception as exc:
            logger.debug(
                "Stage %s rejected call shape %d (%s); trying fallback.",
                getattr(func, "__name__", func),
                index,
                exc,
            )
    return await _invoke(func, last)


async def _invoke(func: Callable[..., Any], shape: CallShape) -> Any:
    if inspect.iscoroutinefunction(func):
        result = await func(*shape.args, **shape.kwargs)
    else:
        result = await asyncio.to_thread(func, *shape.args, **shape.kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def _find_callable(provider: Any, candidates: tuple[str, ...]) -> Callable[..., Any] | None:
    for location in _locations(provider):
        for name in candidates:
            value = _member(location, name)
            if callable(value):
                return value
    return None


def _locations(provider: Any) -> list[Any]:
    # Probe order: top level, default, stages, default.stages.
    locations = [provider]
    default = _member(provider, "default")
    if default is not _MISSING and default is not None:
        locations.append(default)
    for owner in list(locations):
        stages = _member(owner, "stages")
        if stages is not _MISSING and stages is not None:
            locations.append(stages)
    return locations


def _member(owner: Any, name: str) -> Any:
    if isinstance(owner, Mapping):
        return owner.get(name, _MISSING)
    return getattr(owner, name, _MISSING)
