"""Whole-document ingestion: provider call -> canonicalize -> validate."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError
from pydantic.alias_generators import to_camel

from soustack_mcp.errors import ProviderError
from soustack_mcp.providers.adapter import CallShape, call_stage
from soustack_mcp.providers.resolver import ProviderResolver
from soustack_mcp.recipes.canonical import canonicalize_recipe, ensure_slug
from soustack_mcp.tools.schemas import DocumentInput, DocumentOptions
from soustack_mcp.types import IngestDocumentRecipe, ValidationResult

logger = logging.getLogger(__name__)

PROVIDER_FAILED_MESSAGE = "Document ingestion failed."
VALIDATION_FAILED_MESSAGE = "Validation failed."


class EmittedFiles(BaseModel):
    """Where the ingest provider wrote its output files."""

    model_config = ConfigDict(alias_generator=to_camel, extra="allow")

    out_dir: StrictStr
    index_path: StrictStr
    recipes_dir: StrictStr
    count: StrictInt | StrictFloat


class DocumentIngestor:
    """Coordinates the ingest provider, canonicalizer and validator.

    One call is a linear pass with no retries: the provider produces recipes,
    each is given a slug and canonicalized, entries are ordered by slug, and
    every recipe is checked by the validator provider when one is available.
    """

    def __init__(self, providers: ProviderResolver) -> None:
        self._providers = providers

    async def ingest(self, request: DocumentInput) -> dict[str, Any]:
        options = request.options or DocumentOptions()
        emit_files = (
            options.emit_files if options.emit_files is not None else request.out_dir is not None
        )
        return_recipes = options.return_recipes if options.return_recipes is not None else True
        source = {"inputPath": request.input_path}

        provider = await self._providers.ingest()
        ingest_stage = provider.stage("ingestDocument")
        provider_request = _provider_request(request, options, emit_files, return_recipes)

        try:
            result = await call_stage(ingest_stage, CallShape((provider_request,)))
        except Exception as exc:
            logger.warning("Ingest provider failed for %s: %s", request.input_path, exc)
            return {"ok": False, "source": source, "errors": [str(exc) or PROVIDER_FAILED_MESSAGE]}

        result = result if isinstance(result, Mapping) else {}
        provider_errors = _string_list(result.get("errors"))
        if result.get("ok") is False:
            return {
                "ok": False,
                "source": source,
                "errors": provider_errors or [PROVIDER_FAILED_MESSAGE],
            }

        output: dict[str, Any] = {"ok": True, "source": source}
        validation_errors: list[str] = []

        if return_recipes:
            recipes = normalize_recipes(result.get("recipes"), request.input_path)
            validate = await self._validator_stage()
            if validate is not None:
                for entry in recipes:
                    verdict = await call_stage(validate, CallShape((entry.recipe,)))
                    outcome = coerce_validation(verdict)
                    if not outcome.ok:
                        validation_errors.extend(_prefixed(entry.slug, outcome.errors))
            output["recipes"] = [entry.to_dict() for entry in recipes]

        if emit_files:
            emitted = _emitted(result.get("emitted"))
            if emitted is not None:
                output["emitted"] = emitted

        if validation_errors:
            output["ok"] = False
        output["errors"] = provider_errors + sorted(validation_errors)
        return output

    async def _validator_stage(self) -> Callable[..., Any] | None:
        try:
            validator = await self._providers.validator()
            return validator.stage("validate")
        except ProviderError as exc:
            logger.warning("Skipping recipe validation: %s", exc)
            return None


def normalize_recipes(raw: Any, input_path: str) -> list[IngestDocumentRecipe]:
    """Slug, name and canonicalize provider recipe entries, ordered by slug then name."""

    if not isinstance(raw, (list, tuple)):
        return []

    entries: list[IngestDocumentRecipe] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        body = item.get("recipe")
        if not isinstance(body, Mapping):
            body = item

        name = _first_text(item.get("name"), body.get("name"))
        slug = ensure_slug(item.get("slug"), name, input_path)
        entries.append(
            IngestDocumentRecipe(
                name=name or slug,
                slug=slug,
                recipe=canonicalize_recipe(body, slug),
            )
        )

    entries.sort(key=lambda entry: (entry.slug, entry.name))
    return entries


def coerce_validation(result: Any) -> ValidationResult:
    """Accept `{ok, errors}` mappings or bare booleans from a validator."""

    if isinstance(result, bool):
        return ValidationResult(ok=result)
    if isinstance(result, Mapping):
        return ValidationResult(
            ok=result.get("ok") is True,
            errors=sorted(_string_list(result.get("errors"))),
        )
    return ValidationResult(ok=False)


def _provider_request(
    request: DocumentInput,
    options: DocumentOptions,
    emit_files: bool,
    return_recipes: bool,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "inputPath": request.input_path,
        "emitFiles": emit_files,
        "returnRecipes": return_recipes,
    }
    if request.out_dir is not None:
        payload["outDir"] = request.out_dir
    if options.max_recipes is not None:
        payload["maxRecipes"] = options.max_recipes
    if options.strict_validation is not None:
        payload["strictValidation"] = options.strict_validation
    return payload


def _prefixed(slug: str, errors: list[str]) -> list[str]:
    messages = errors or [VALIDATION_FAILED_MESSAGE]
    return [f"[{slug}] {message}" for message in messages]


def _emitted(raw: Any) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        EmittedFiles.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed emit metadata from ingest provider: %s", exc)
        return None
    return dict(raw)


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value]


def _first_text(*values: Any) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return ""
