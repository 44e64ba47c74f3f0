"""Tests for the error taxonomy and provider error translation.

Validates:
- Retryability by code and status
- Rendering of errors into LLM-facing text
- Exception classification
- SDK ResponseError translation
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from amadeus import ResponseError
from pydantic import BaseModel, ValidationError

from amadeus_flights_mcp.errors import (
    ErrorCode,
    FieldIssue,
    FlightError,
    FlightException,
    classify_exception,
    issues_from_validation_error,
)
from amadeus_flights_mcp.provider import translate_provider_error


class FakeResponseError(ResponseError):
    """ResponseError carrying a canned response, without touching the network layer."""

    def __init__(self, status: int | None, result: Any = None, text: str = "") -> None:
        self.response = SimpleNamespace(status_code=status, result=result)
        self._text = text

    def __str__(self) -> str:
        return self._text


# ═════════════════════════════════════════════════════════════════════════════
# Retryability
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("error", "retryable"),
    [
        (FlightException.network("reset").error, True),
        (FlightException.provider(500, "x").error, True),
        (FlightException.provider(503, "x").error, True),
        (FlightException.provider(429, "x").error, True),
        (FlightException.provider(408, "x").error, True),
        (FlightException.provider(400, "x").error, False),
        (FlightException.provider(401, "x").error, False),
        (FlightException.provider(404, "x").error, False),
        (FlightException.validation([]).error, False),
        (FlightException.unknown("x").error, False),
    ],
)
def test_retryable(error: FlightError, retryable: bool) -> None:
    assert error.is_retryable is retryable


def test_severity() -> None:
    assert FlightException.validation([]).error.severity == "warning"
    assert FlightException.provider(500, "x").error.severity == "error"


# ═════════════════════════════════════════════════════════════════════════════
# Rendering
# ═════════════════════════════════════════════════════════════════════════════


def test_render_provider_error() -> None:
    exc = FlightException.provider(429, "Too many requests", "38194")
    assert exc.error.render() == "Error: Amadeus API Error (429): Too many requests"
    assert str(exc) == "Amadeus API Error (429): Too many requests"
    assert exc.error.provider_code == "38194"


def test_render_lists_every_issue() -> None:
    exc = FlightException.validation([
        FieldIssue(field="origin", message="String should match pattern '^[A-Z]{3}$'", value="L1R"),
        FieldIssue(field="adults", message="Input should be less than or equal to 9", value=12),
    ])
    assert exc.error.render().splitlines() == [
        "Error: Invalid parameters provided",
        "- origin: String should match pattern '^[A-Z]{3}$' (got 'L1R')",
        "- adults: Input should be less than or equal to 9 (got 12)",
    ]


def test_render_input_level_issue() -> None:
    issue = FieldIssue(field="", message="Arguments must be an object", value=[1])
    assert issue.render() == "- (input): Arguments must be an object (got [1])"


def test_unknown_falls_back_to_default_message() -> None:
    assert FlightException.unknown("").error.message == "An unknown error occurred"


# ═════════════════════════════════════════════════════════════════════════════
# Classification
# ═════════════════════════════════════════════════════════════════════════════


class _Model(BaseModel):
    count: int


def test_classify_flight_exception_passthrough() -> None:
    exc = FlightException.provider(502, "bad gateway")
    assert classify_exception(exc) is exc.error


def test_classify_pydantic_error() -> None:
    with pytest.raises(ValidationError) as info:
        _Model.model_validate({"count": "many"})
    error = classify_exception(info.value)
    assert error.code == ErrorCode.VALIDATION_ERROR
    assert [i.field for i in error.issues] == ["count"]
    assert issues_from_validation_error(info.value)[0].value == "many"


@pytest.mark.parametrize("exc", [TimeoutError(), ConnectionRefusedError("refused"), OSError("unreachable")])
def test_classify_network(exc: Exception) -> None:
    error = classify_exception(exc)
    assert error.code == ErrorCode.NETWORK_ERROR
    assert error.message.startswith("Network error: ")


def test_classify_unknown() -> None:
    error = classify_exception(RuntimeError("something odd"))
    assert error.code == ErrorCode.UNKNOWN_ERROR
    assert error.message == "something odd"


# ═════════════════════════════════════════════════════════════════════════════
# Provider translation
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("status", [None, 0])
def test_no_status_is_network(status: int | None) -> None:
    exc = translate_provider_error(FakeResponseError(status, text="connection refused"))
    assert exc.code == ErrorCode.NETWORK_ERROR
    assert exc.error.message == "Network error: Unable to connect to Amadeus API - connection refused"
    assert exc.error.is_retryable


def test_first_error_detail_used() -> None:
    result = {"errors": [
        {"status": 400, "code": 477, "title": "INVALID FORMAT", "detail": "departureDate is in the past"},
        {"status": 400, "code": 32171, "title": "MANDATORY DATA MISSING"},
    ]}
    exc = translate_provider_error(FakeResponseError(400, result))
    assert exc.code == ErrorCode.PROVIDER_ERROR
    assert exc.error.message == "Amadeus API Error (400): departureDate is in the past"
    assert exc.error.status_code == 400
    assert exc.error.provider_code == "477"
    assert not exc.error.is_retryable


def test_title_when_no_detail() -> None:
    exc = translate_provider_error(FakeResponseError(500, {"errors": [{"title": "SYSTEM ERROR HAS OCCURRED"}]}))
    assert exc.error.message == "Amadeus API Error (500): SYSTEM ERROR HAS OCCURRED"
    assert exc.error.provider_code is None


def test_oauth_style_error() -> None:
    result = {"error": "invalid_client", "error_description": "Client credentials are invalid"}
    exc = translate_provider_error(FakeResponseError(401, result))
    assert exc.error.message == "Amadeus API Error (401): Client credentials are invalid"


def test_unparsed_body() -> None:
    assert translate_provider_error(FakeResponseError(502, None, text="")).error.message == (
        "Amadeus API Error (502): Unknown API error"
    )
    assert translate_provider_error(FakeResponseError(502, None, text="Bad Gateway")).error.message == (
        "Amadeus API Error (502): Bad Gateway"
    )
