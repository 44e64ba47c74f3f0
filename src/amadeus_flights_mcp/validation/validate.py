"""Validation entry point shared by every tool handler."""

from __future__ import annotations

from collections.abc import Mapping
from functools import cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from amadeus_flights_mcp.errors import FieldIssue, FlightException, issues_from_validation_error

from .schemas import FlightParams

P = TypeVar("P", bound=FlightParams)


@cache
def _adapter(schema: type[P]) -> TypeAdapter[P]:
    return TypeAdapter(schema)


def validate_params(schema: type[P], raw: Mapping[str, Any] | None) -> P:
    """Validate a raw argument mapping against a tool schema.

    Field validation runs first; cross-field constraints run only when every
    field passed. No side effects.

    Raises:
        FlightException: VALIDATION_ERROR listing every violated field
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise FlightException.validation([FieldIssue(field="", message="Arguments must be an object", value=raw)])
    try:
        params = _adapter(schema).validate_python(dict(raw))
    except ValidationError as exc:
        raise FlightException.validation(issues_from_validation_error(exc)) from None
    if issues := params.violations():
        raise FlightException.validation(issues)
    return params


def input_schema(schema: type[FlightParams]) -> dict[str, Any]:
    """JSON schema advertised as a tool's inputSchema (camelCase, untitled)."""
    js = schema.model_json_schema(by_alias=True)
    js.pop("title", None)
    js.pop("description", None)
    return js
