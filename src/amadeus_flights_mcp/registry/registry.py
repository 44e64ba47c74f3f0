"""Central registry for tools and prompts.

The registry provides:
- Tool and prompt registration and lookup by name
- Dispatch: validation, handler call and error-to-text conversion

dispatch() never raises. Whatever goes wrong is logged and comes back as an
error outcome whose text the client can show to the model.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from amadeus_flights_mcp.errors import FieldIssue, FlightException, classify_exception
from amadeus_flights_mcp.observability import get_logger, log_context
from amadeus_flights_mcp.validation import FlightParams, input_schema, validate_params

log = get_logger("registry")

ToolHandler = Callable[[Any], Awaitable[str]]


# ═══════════════════════════════════════════════════════════════════════════════
# Specs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A tool: name, LLM-facing description, params schema and async handler."""

    name: str
    description: str
    params_schema: type[FlightParams]
    handler: ToolHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        return input_schema(self.params_schema)


@dataclass(frozen=True, slots=True)
class PromptArgument:
    name: str
    description: str
    required: bool = False


@dataclass(frozen=True, slots=True)
class PromptMessage:
    role: Literal["user", "assistant"]
    text: str


@dataclass(frozen=True, slots=True)
class PromptSpec:
    """A prompt template rendered from string arguments."""

    name: str
    description: str
    arguments: tuple[PromptArgument, ...]
    render: Callable[[Mapping[str, str]], list[PromptMessage]]

    def messages(self, arguments: Mapping[str, str] | None) -> list[PromptMessage]:
        """Render after checking required arguments.

        Raises:
            FlightException: a required argument is missing or empty
        """
        args = {k: v for k, v in (arguments or {}).items() if v is not None}
        missing = [a.name for a in self.arguments if a.required and not str(args.get(a.name, "")).strip()]
        if missing:
            raise FlightException.validation(
                [FieldIssue(field=name, message="Required argument is missing", value=None) for name in missing],
                message=f"Prompt '{self.name}' is missing required arguments",
            )
        return self.render(args)


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """Text returned to the client, flagged when it describes a failure."""

    text: str
    is_error: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════════════════


class ToolRegistry:
    """Registry for the server's tools and prompts.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(ToolSpec("search_flights", "...", SearchFlightsParams, handler))
        >>> outcome = await registry.dispatch("search_flights", {"origin": "LHR", ...})
        >>> outcome.is_error
        False
    """

    __slots__ = ("_tools", "_prompts")

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}
        self._prompts: dict[str, PromptSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' already registered")
        self._tools[spec.name] = spec

    def register_prompt(self, spec: PromptSpec) -> None:
        if spec.name in self._prompts:
            raise ValueError(f"Prompt '{spec.name}' already registered")
        self._prompts[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def get_prompt(self, name: str) -> PromptSpec | None:
        return self._prompts.get(name)

    @property
    def tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    @property
    def prompts(self) -> list[PromptSpec]:
        return list(self._prompts.values())

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def dispatch(self, name: str, arguments: Mapping[str, Any] | None) -> ToolOutcome:
        """Run a tool by name. Never raises."""
        spec = self._tools.get(name)
        if spec is None:
            log.warning("unknown tool", tool=name)
            return ToolOutcome(f"Error: Unknown tool '{name}'", is_error=True)

        with log_context(tool=name):
            try:
                params = validate_params(spec.params_schema, arguments)
                log.debug("dispatching", params=params.model_dump(by_alias=True, exclude_none=True, mode="json"))
                text = await spec.handler(params)
            except Exception as exc:  # noqa: BLE001
                error = classify_exception(exc)
                log.log(
                    error.severity,
                    "tool failed",
                    code=str(error.code),
                    error=error.message,
                    status=error.status_code,
                    issues=len(error.issues),
                )
                return ToolOutcome(error.render(), is_error=True)
        return ToolOutcome(text)
