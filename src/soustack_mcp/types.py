"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class IngestDocumentRecipe:
    """A canonical recipe produced by one document ingestion."""

    name: str
    slug: str
    recipe: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "slug": self.slug, "recipe": self.recipe}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of running a validator stage over one recipe."""

    ok: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "errors": sorted(self.errors)}


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
