"""Structured logging for the flights server.

Provides key=value structured logging with scoped context:
- Bound loggers carrying component context
- Scoped context (session id, tool name) via log_context
- Human-readable console output, JSON lines for production

All output goes to stderr. stdout belongs to the stdio transport.

Quick Start:
    >>> from amadeus_flights_mcp.observability import get_logger, configure_logging
    >>>
    >>> configure_logging(format="console", level="DEBUG")
    >>> log = get_logger("provider")
    >>> log.info("searching flights", origin="LHR", destination="JFK")

    >>> with log_context(session_id="abc123"):
    ...     log.info("tool called", tool="search_flights")
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, TextIO, runtime_checkable

import orjson

if TYPE_CHECKING:
    from types import TracebackType

# Scoped context (follows the current task across awaits)
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Core Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class BoundLogger:
    """Structured logger with bound context.

    Immutable: bind() returns a new logger with merged context. The level
    and renderer are read at call time, so loggers created at import time
    follow a later configure_logging().

    Example:
        >>> log = get_logger("http")
        >>> log.info("request", method="POST", path="/mcp")
        # => 10:30:45.123 [info] request logger="http" method="POST" path="/mcp"
    """

    context: dict[str, Any] = field(default_factory=dict)

    def bind(self, **kw: Any) -> BoundLogger:
        """Create new logger with additional bound context."""
        return BoundLogger(context={**self.context, **kw})

    def is_enabled_for(self, level: int) -> bool:
        return level >= _level

    def _log(self, level: int, event: str, **kw: Any) -> None:
        if level < _level:
            return
        # global scope -> bound -> call-site
        merged = {**_log_context.get(), **self.context, **kw}
        _get_renderer().render(LogEntry(
            timestamp=time.time(),
            level=logging.getLevelName(level).lower(),
            event=event,
            context=merged,
        ))

    def debug(self, event: str, **kw: Any) -> None:
        self._log(logging.DEBUG, event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log(logging.INFO, event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log(logging.WARNING, event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log(logging.ERROR, event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._log(logging.CRITICAL, event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log error with the active exception's traceback."""
        kw["exc_info"] = traceback.format_exc()
        self._log(logging.ERROR, event, **kw)

    def log(self, level_name: str, event: str, **kw: Any) -> None:
        """Log at a level given by name ("warning", "error", ...)."""
        self._log(logging.getLevelNamesMapping().get(level_name.upper(), logging.INFO), event, **kw)


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Single log entry with all context."""

    timestamp: float
    level: str
    event: str
    context: dict[str, Any]

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    """Protocol for log output renderers."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable console output.

    Format: timestamp [level] event key=value key2=value2

    Colors are auto-detected based on TTY.
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = hasattr(self.output, "isatty") and self.output.isatty()

    def render(self, entry: LogEntry) -> None:
        c = _COLORS if self.colors else _NO_COLORS
        level_color = _LEVEL_COLORS.get(entry.level, c["dim"]) if self.colors else ""
        parts = [
            f"{c['dim']}{entry.ts_human}{c['reset']}",
            f"{level_color}[{entry.level}]{c['reset']}",
            f"{c['bold']}{entry.event}{c['reset']}",
        ]
        for k, v in sorted(entry.context.items()):
            if k == "exc_info":
                continue
            parts.append(f"{c['cyan']}{k}{c['reset']}={_format_value(v, c)}")
        print(" ".join(parts), file=self.output, flush=True)
        if "exc_info" in entry.context:
            print(f"{c['red']}{entry.context['exc_info']}{c['reset']}", file=self.output, flush=True)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation."""

    output: TextIO = field(default_factory=lambda: sys.stderr)

    def render(self, entry: LogEntry) -> None:
        data = {"timestamp": entry.ts_iso, "level": entry.level, "event": entry.event, **entry.context}
        line = orjson.dumps(data, default=str, option=orjson.OPT_NON_STR_KEYS)
        print(line.decode(), file=self.output, flush=True)


@dataclass(slots=True)
class NoOpRenderer:
    """Silent renderer for testing."""

    def render(self, entry: LogEntry) -> None:
        pass


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────


_renderer: LogRenderer | None = None
_level: int = logging.INFO

# Third-party loggers routed through stdlib logging
_STDLIB_LOGGERS = ("amadeus", "mcp", "uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Configure global structured logging.

    Args:
        format: "console" (human), "json" (machine) or "none" (silent)
        level: Minimum level name, case-insensitive ("warn" is accepted)
        output: Output stream (default: stderr)
        colors: Force colors on/off (None = auto-detect)

    Returns:
        Configured renderer instance
    """
    global _renderer, _level

    name = level.upper()
    _level = logging.getLevelNamesMapping().get("WARNING" if name == "WARN" else name, logging.INFO)

    renderer: LogRenderer
    if format == "console":
        renderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
    elif format == "json":
        renderer = JsonRenderer(output=output or sys.stderr)
    elif format == "none":
        renderer = NoOpRenderer()
    else:
        raise ValueError(f"Unknown format: {format}. Use 'console', 'json', or 'none'")
    _renderer = renderer

    _route_stdlib(output or sys.stderr, silent=format == "none")
    return renderer


def _route_stdlib(stream: TextIO, *, silent: bool) -> None:
    """Send SDK and server library logs to stderr at the configured level."""
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, "_flights_handler", False)]:
        root.removeHandler(handler)
    level = logging.CRITICAL + 1 if silent else _level
    if not silent:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        handler._flights_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
    for name in _STDLIB_LOGGERS:
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None, **initial_context: Any) -> BoundLogger:
    """Get a structured logger with optional initial context.

    Example:
        >>> log = get_logger("tools", component="dispatch")
    """
    ctx = dict(initial_context)
    if name:
        ctx["logger"] = name
    return BoundLogger(context=ctx)


def _get_renderer() -> LogRenderer:
    global _renderer
    if _renderer is None:
        _renderer = ConsoleRenderer()
    return _renderer


class log_context:
    """Context manager for scoped logging context.

    Adds key-value pairs to all log entries within the scope.

    Example:
        >>> with log_context(session_id="abc123", tool="search_flights"):
        ...     log.info("dispatching")  # includes session_id and tool
    """

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: Any) -> None:
        self._ctx = dict(kw)
        self._token: Any = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._token is not None:
            _log_context.reset(self._token)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


_COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}

_NO_COLORS = {k: "" for k in _COLORS}

_LEVEL_COLORS = {
    "debug": _COLORS["dim"],
    "info": _COLORS["green"],
    "warning": _COLORS["yellow"],
    "error": _COLORS["red"],
    "critical": _COLORS["red"] + _COLORS["bold"],
}


def _format_value(v: object, c: dict[str, str]) -> str:
    if isinstance(v, str):
        return f'{c["yellow"]}"{v}"{c["reset"]}'
    if isinstance(v, bool):
        return f'{c["blue"]}{str(v).lower()}{c["reset"]}'
    if isinstance(v, (int, float)):
        return f'{c["blue"]}{v}{c["reset"]}'
    if isinstance(v, dict):
        return f'{c["dim"]}{{{len(v)} items}}{c["reset"]}'
    if isinstance(v, (list, tuple)):
        return f'{c["dim"]}[{len(v)} items]{c["reset"]}'
    return f'{c["white"]}{v!r}{c["reset"]}'
