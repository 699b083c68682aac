"""Alert insight prompts.

Prompt used by InsightClient to ask the text-generation service
for a summary and an actionable recommendation.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Alert insight (InsightClient.request_insight)
# ---------------------------------------------------------------------------

ALERT_INSIGHT_PROMPT = """\
Analyze the following security alert and provide a concise summary and a brief, actionable insight or recommendation.

Alert Title: "{title}"
Alert Description: "{description}"

Format your response as:
Summary: [Concise summary]
Insight: [Brief actionable insight/recommendation]"""


def format_insight_prompt(title: str, description: str) -> str:
    """Format the alert insight prompt with the alert's title and description."""
    return ALERT_INSIGHT_PROMPT.format(title=title, description=description)
