"""Fatal fault handling for the server process.

An uncaught exception or an exception nobody retrieved from an event-loop
task leaves the process in an unknown state, so both are logged and the
process exits with status 1.
"""

from __future__ import annotations

import asyncio
import os
import sys
import traceback
from typing import TYPE_CHECKING, Any, Callable

from amadeus_flights_mcp.observability import get_logger

if TYPE_CHECKING:
    from types import TracebackType

log = get_logger("lifecycle")

ExitFn = Callable[[int], Any]


def install_fatal_handlers(*, exit: ExitFn = os._exit) -> None:  # noqa: A002
    """Route uncaught exceptions to the log, then exit(1)."""

    def excepthook(exc_type: type[BaseException], exc: BaseException, tb: TracebackType | None) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        log.critical(
            "uncaught exception",
            error=f"{exc_type.__name__}: {exc}",
            exc_info="".join(traceback.format_exception(exc_type, exc, tb)),
        )
        exit(1)

    sys.excepthook = excepthook


def install_loop_handler(loop: asyncio.AbstractEventLoop | None = None, *, exit: ExitFn = os._exit) -> None:  # noqa: A002
    """Treat exceptions escaping event-loop tasks as fatal."""
    loop = loop or asyncio.get_running_loop()

    def handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None:
            log.warning("event loop error", message=context.get("message"))
            return
        log.critical(
            "unhandled exception in task",
            message=context.get("message"),
            error=f"{type(exc).__name__}: {exc}",
            exc_info="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
        exit(1)

    loop.set_exception_handler(handler)
