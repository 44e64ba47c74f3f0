"""Tool and prompt registry with never-raising dispatch."""

from .registry import (
    PromptArgument,
    PromptMessage,
    PromptSpec,
    ToolHandler,
    ToolOutcome,
    ToolRegistry,
    ToolSpec,
)

__all__ = [
    "PromptArgument",
    "PromptMessage",
    "PromptSpec",
    "ToolHandler",
    "ToolOutcome",
    "ToolRegistry",
    "ToolSpec",
]
