"""Built-in tool implementations for the ingestion gateway."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from soustack_mcp.config import GatewaySettings
from soustack_mcp.errors import ProviderError
from soustack_mcp.providers.adapter import CallShape, ProviderAdapter, call_stage
from soustack_mcp.providers.resolver import ProviderResolver
from soustack_mcp.recipes.canonical import CANONICAL_SCHEMA, canonicalize_recipe, ensure_slug
from soustack_mcp.recipes.document import DocumentIngestor, coerce_validation
from soustack_mcp.tools.registry import ToolRegistry, ToolSpec
from soustack_mcp.tools.schemas import (
    DocumentInput,
    EmptyInput,
    ExtractInput,
    SegmentInput,
    ToSoustackInput,
    ValidateInput,
)

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "soustack-mcp"
SUPPORTED_INPUT_KINDS = ("text", "rtf", "rtfd.zip", "rtfd-dir")
EXTRACT_EMPTY_MESSAGE = "Extractor returned no recipe."


def register_builtin_tools(
    registry: ToolRegistry,
    providers: ProviderResolver,
    *,
    settings: GatewaySettings | None = None,
) -> None:
    """Register the fixed tool set exposed by the gateway.

    Tools:
    - `ping`: liveness check.
    - `ingest.meta`: versions of this package and both providers.
    - `ingest.segment`: split text into candidate recipe chunks.
    - `ingest.extract`: pull an intermediate recipe out of one chunk.
    - `ingest.toSoustack`: convert an intermediate recipe into a canonical recipe.
    - `ingest.validate`: run a validator over a recipe.
    - `ingest.document`: ingest a whole file, canonicalizing and validating every recipe.
    """

    settings = settings or providers.settings
    documents = DocumentIngestor(providers)

    async def _ping(_: EmptyInput) -> dict[str, Any]:
        return {"pong": True}

    async def _meta(_: EmptyInput) -> dict[str, Any]:
        gateway_version, ingest_version, validator_version = await asyncio.gather(
            asyncio.to_thread(_installed_version, DISTRIBUTION_NAME),
            asyncio.to_thread(_installed_version, settings.ingest_distribution),
            asyncio.to_thread(_installed_version, settings.validator_distribution),
        )
        return {
            "mcpVersion": gateway_version or "unknown",
            "soustackIngestVersion": ingest_version,
            "soustackVersion": validator_version,
            "supportedInputKinds": list(SUPPORTED_INPUT_KINDS),
            "canonicalSchema": CANONICAL_SCHEMA,
            "timestamp": _utc_timestamp(),
        }

    async def _segment(input_data: SegmentInput) -> dict[str, Any]:
        provider = await providers.ingest()
        segment = provider.stage("segment")
        text = await _normalized_text(provider, input_data.text)
        options = input_data.options.to_wire() if input_data.options else None

        result = await call_stage(
            segment,
            CallShape((text, options)),
            CallShape(({"text": text, "options": options},)),
        )
        chunks = result.get("chunks") if isinstance(result, Mapping) else result
        chunks = list(chunks) if isinstance(chunks, (list, tuple)) else []

        max_chunks = input_data.options.max_chunks if input_data.options else None
        if max_chunks is not None:
            chunks = chunks[:max_chunks]
        return {"chunks": chunks}

    async def _extract(input_data: ExtractInput) -> dict[str, Any]:
        provider = await providers.ingest()
        extract = provider.stage("extract")
        text = await _normalized_text(provider, input_data.text)
        lines = text.split("\n")
        chunk = input_data.chunk.to_wire()

        result = await call_stage(
            extract,
            CallShape((chunk, lines)),
            CallShape(({"chunk": chunk, "lines": lines, "text": text},)),
        )
        intermediate = _unwrap(result, "intermediate")
        if intermediate is None:
            return {"intermediate": None, "errors": [EXTRACT_EMPTY_MESSAGE]}
        return {"intermediate": intermediate}

    async def _to_soustack(input_data: ToSoustackInput) -> dict[str, Any]:
        provider = await providers.ingest()
        convert = provider.stage("toSoustack")
        intermediate = input_data.intermediate.to_wire()
        options = input_data.options.to_wire() if input_data.options else None

        result = await call_stage(
            convert,
            CallShape((intermediate, options)),
            CallShape(({"intermediate": intermediate, "options": options},)),
        )
        recipe = _unwrap(result, "recipe")
        name = recipe.get("name") if isinstance(recipe, Mapping) else None
        source_path = input_data.options.source_path if input_data.options else None
        slug = ensure_slug(None, name or input_data.intermediate.title, source_path)
        return {"recipe": canonicalize_recipe(recipe, slug)}

    async def _validate(input_data: ValidateInput) -> dict[str, Any]:
        validate = await _ingest_validate_stage(providers)
        if validate is None:
            validate = (await providers.validator()).stage("validate")

        result = await call_stage(validate, CallShape((input_data.recipe,)))
        return coerce_validation(result).to_dict()

    async def _document(input_data: DocumentInput) -> dict[str, Any]:
        return await documents.ingest(input_data)

    registry.register(
        ToolSpec(
            name="ping",
            description="Health check.",
            args_schema=EmptyInput,
            handler=_ping,
            tags=["health"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.meta",
            description="Report gateway and provider versions and supported inputs.",
            args_schema=EmptyInput,
            handler=_meta,
            tags=["meta"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.segment",
            description="Split document text into candidate recipe chunks.",
            args_schema=SegmentInput,
            handler=_segment,
            invalid_output=lambda payload: {"chunks": []},
            tags=["ingest"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.extract",
            description="Extract an intermediate recipe from one chunk of text.",
            args_schema=ExtractInput,
            handler=_extract,
            invalid_output=lambda payload: {"intermediate": None},
            tags=["ingest"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.toSoustack",
            description="Convert an intermediate recipe into a canonical soustack recipe.",
            args_schema=ToSoustackInput,
            handler=_to_soustack,
            invalid_output=lambda payload: {"recipe": None},
            tags=["ingest", "canonical"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.validate",
            description="Validate a recipe object.",
            args_schema=ValidateInput,
            handler=_validate,
            invalid_output=lambda payload: {"ok": False},
            tags=["validation"],
        )
    )
    registry.register(
        ToolSpec(
            name="ingest.document",
            description="Ingest a document, returning canonical, validated recipes.",
            args_schema=DocumentInput,
            handler=_document,
            invalid_output=_document_invalid_output,
            tags=["ingest", "canonical", "validation"],
        )
    )


async def _normalized_text(provider: ProviderAdapter, text: str) -> str:
    if not provider.has_stage("normalize"):
        return text
    result = await call_stage(
        provider.stage("normalize"),
        CallShape((text,)),
        CallShape(({"text": text},)),
    )
    if isinstance(result, str):
        return result
    if isinstance(result, Mapping) and isinstance(result.get("text"), str):
        return result["text"]
    return text


def _unwrap(result: Any, key: str) -> Any:
    if isinstance(result, Mapping) and key in result:
        return result[key]
    return result


async def _ingest_validate_stage(providers: ProviderResolver) -> Callable[..., Any] | None:
    # Falls back to the validator provider when ingest cannot be loaded or has no validate stage.
    try:
        provider = await providers.ingest()
    except ProviderError as exc:
        logger.warning("Ingest provider unavailable for validation: %s", exc)
        return None
    return provider.stage("validate") if provider.has_stage("validate") else None


def _document_invalid_output(payload: dict[str, Any]) -> dict[str, Any]:
    input_path = payload.get("inputPath")
    return {
        "ok": False,
        "source": {"inputPath": input_path if isinstance(input_path, str) else None},
    }


def _installed_version(distribution: str) -> str | None:
    try:
        return version(distribution)
    except PackageNotFoundError:
        return None


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
