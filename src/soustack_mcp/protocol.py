"""Newline-delimited JSON wire protocol: request parsing and response encoding."""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import (
    BaseModel,
    SerializerFunctionWrapHandler,
    StrictStr,
    ValidationError,
    model_serializer,
)


class Request(BaseModel):
    """One tool invocation read from the input stream."""

    id: StrictStr
    tool: StrictStr
    input: dict[str, Any]


class ErrorDetails(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None

    @model_serializer(mode="wrap")
    def _omit_empty_details(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if data.get("details") is None:
            data.pop("details", None)
        return data


class SuccessResponse(BaseModel):
    id: str
    ok: Literal[True] = True
    output: dict[str, Any]


class ErrorResponse(BaseModel):
    id: str | None
    ok: Literal[False] = False
    error: ErrorDetails


Response = Union[SuccessResponse, ErrorResponse]


def success(request_id: str, output: dict[str, Any]) -> SuccessResponse:
    return SuccessResponse(id=request_id, output=output)


def failure(
    request_id: str | None,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        id=request_id,
        error=ErrorDetails(code=code, message=message, details=details),
    )


def parse_line(line: str) -> Request | ErrorResponse | None:
    """Parse one input line.

    Returns `None` for blank lines (which get no response), an `ErrorResponse`
    with a null id for malformed JSON or a mis-shaped request, and a `Request`
    otherwise.
    """

    trimmed = line.strip()
    if not trimmed:
        return None

    try:
        parsed = json.loads(trimmed)
    except ValueError as exc:
        return failure(
            None,
            "invalid_json",
            "Request was not valid JSON.",
            {"error": str(exc)},
        )

    if not isinstance(parsed, dict):
        return _invalid_request()
    try:
        return Request.model_validate(parsed)
    except ValidationError:
        return _invalid_request()


def encode_response(response: Response) -> str:
    """Serialize a response as a single compact JSON line ending in a newline."""
    payload = response.model_dump()
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")) + "\n"


def _invalid_request() -> ErrorResponse:
    return failure(None, "invalid_request", "Request did not match the expected shape.")
