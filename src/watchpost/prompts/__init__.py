"""Prompt templates."""

from .insight import ALERT_INSIGHT_PROMPT, format_insight_prompt

__all__ = ["ALERT_INSIGHT_PROMPT", "format_insight_prompt"]
