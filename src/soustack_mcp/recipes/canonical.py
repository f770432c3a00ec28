"""Recipe canonicalization and slug derivation.

A canonical recipe always declares the canonical schema URI, a profile and a
non-empty `stacks` mapping, and has its keys sorted at every nesting level so
that serialized output is byte-stable across runs.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

CANONICAL_SCHEMA = "https://spec.soustack.org/soustack.schema.json"
DEFAULT_PROFILE = "soustack/recipe-lite"
DEFAULT_STACK = "recipe"
DEFAULT_SLUG = "recipe"

_RESERVED_KEYS = frozenset({"$schema", "profile", "stacks"})
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_SLUG_SAFE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_PATH_SEPARATORS = re.compile(r"[\\/]")
_EXTENSION = re.compile(r"\.[^.]*$")


def canonicalize_recipe(recipe: Any, slug_hint: str | None = None) -> dict[str, Any]:
    """Normalize any recipe-shaped value into the canonical schema form.

    Never raises: non-mapping input is treated as an empty recipe. The
    caller-declared `$schema` is always replaced. `slug_hint` only matters
    when the recipe has no usable `stacks`.
    """

    source: Mapping[str, Any] = recipe if isinstance(recipe, Mapping) else {}

    canonical: dict[str, Any] = {
        "$schema": CANONICAL_SCHEMA,
        "profile": _profile(source.get("profile")),
        "stacks": _stacks(source.get("stacks"), slug_hint),
    }
    for key, value in source.items():
        if key in _RESERVED_KEYS:
            continue
        canonical[str(key)] = sort_keys_deep(value)

    return _sorted_mapping(canonical)


def sort_keys_deep(value: Any) -> Any:
    """Recursively sort mapping keys; sequences keep their element order."""
    if isinstance(value, Mapping):
        return {str(key): sort_keys_deep(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [sort_keys_deep(item) for item in value]
    return value


def slugify(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return _NON_SLUG_CHARS.sub("-", value.lower()).strip("-")


def is_slug_safe(value: Any) -> bool:
    return isinstance(value, str) and bool(_SLUG_SAFE.match(value))


def ensure_slug(slug: Any = None, name: Any = None, source_path: Any = None) -> str:
    """Pick the first non-empty slug from an explicit slug, a name, or a file path.

    >>> ensure_slug("My Recipe!", "ignored", "ignored.txt")
    'my-recipe'
    >>> ensure_slug(None, None, "/a/b/Pancakes.txt")
    'pancakes'
    """

    for candidate in (slug, name, _path_stem(source_path)):
        normalized = slugify(candidate)
        if normalized:
            return normalized
    return DEFAULT_SLUG


def _path_stem(source_path: Any) -> str:
    if not isinstance(source_path, str) or not source_path:
        return ""
    basename = _PATH_SEPARATORS.split(source_path)[-1]
    return _EXTENSION.sub("", basename)


def _profile(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return DEFAULT_PROFILE


def _stacks(value: Any, slug_hint: str | None) -> dict[str, Any]:
    if isinstance(value, Mapping) and value:
        return sort_keys_deep(value)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and value:
        return _sorted_mapping({_stack_name(item): True for item in value})

    hint = slug_hint.strip() if isinstance(slug_hint, str) else ""
    return {hint or DEFAULT_STACK: True}


def _stack_name(item: Any) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, sort_keys=True, separators=(",", ":"), default=str)


def _sorted_mapping(mapping: dict[str, Any]) -> dict[str, Any]:
    return {key: mapping[key] for key in sorted(mapping)}
