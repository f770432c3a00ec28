"""Input models for the built-in tools.

Field names are snake_case in Python and camelCase on the wire. Scalars are
strict so that, for example, `"5"` is rejected where a line number is
expected instead of being silently coerced.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    Strict,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

LineNumber = Annotated[int, Strict(), Field(gt=0)]
NonEmptyStr = Annotated[str, Strict(), Field(min_length=1)]

ModelT = TypeVar("ModelT", bound=BaseModel)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class EmptyInput(WireModel):
    pass


class SegmentOptions(WireModel):
    max_chunks: Annotated[int, Strict(), Field(ge=0)] | None = None


class SegmentInput(WireModel):
    text: StrictStr
    options: SegmentOptions | None = None


class ChunkRef(WireModel):
    start_line: LineNumber
    end_line: LineNumber
    title_guess: StrictStr | None = None

    @model_validator(mode="after")
    def _check_line_order(self) -> "ChunkRef":
        if self.start_line > self.end_line:
            raise PydanticCustomError(
                "line_order", "startLine must be less than or equal to endLine."
            )
        return self


class ExtractInput(WireModel):
    text: StrictStr
    chunk: ChunkRef


class SourceSpan(WireModel):
    start_line: LineNumber | None = None
    end_line: LineNumber | None = None
    evidence: StrictStr | None = None

    @model_validator(mode="after")
    def _check_line_order(self) -> "SourceSpan":
        if (
            self.start_line is not None
            and self.end_line is not None
            and self.start_line > self.end_line
        ):
            raise PydanticCustomError(
                "line_order", "startLine must be less than or equal to endLine."
            )
        return self


class IntermediateRecipe(WireModel):
    # Unknown fields are forwarded to the converter untouched.
    model_config = ConfigDict(extra="allow")

    title: NonEmptyStr
    ingredients: list[StrictStr]
    instructions: list[StrictStr]
    source: SourceSpan | None = None


class ToSoustackOptions(WireModel):
    source_path: StrictStr | None = None


class ToSoustackInput(WireModel):
    intermediate: IntermediateRecipe
    options: ToSoustackOptions | None = None


class ValidateInput(WireModel):
    recipe: dict[str, Any]


class DocumentOptions(WireModel):
    emit_files: StrictBool | None = None
    return_recipes: StrictBool | None = None
    max_recipes: Annotated[int, Strict(), Field(ge=1)] | None = None
    strict_validation: StrictBool | None = None


class DocumentInput(WireModel):
    input_path: NonEmptyStr
    out_dir: StrictStr | None = None
    options: DocumentOptions | None = None


def validate_payload(
    model: type[ModelT], payload: dict[str, Any]
) -> tuple[ModelT | None, list[str]]:
    """Validate a raw tool payload, collecting every violation.

    Returns `(value, [])` on success and `(None, errors)` on failure; never
    both a value and errors.
    """

    try:
        return model.model_validate(payload), []
    except ValidationError as exc:
        return None, [_format_error(error) for error in exc.errors()]


def _format_error(error: Any) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value.")
    return f"{location}: {message}" if location else message
