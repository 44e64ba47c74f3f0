"""Prompt templates."""

from .templates import NO_RESULTS, PROMPTS, format_datetime, layover, render_flight_results

__all__ = ["NO_RESULTS", "PROMPTS", "format_datetime", "layover", "render_flight_results"]
