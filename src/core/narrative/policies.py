"""
Banned-phrase policies for AI-generated narrative text.

Each policy is an ordered tuple; validation reports violations in this order.
"""

import json
from typing import Literal, Optional

PLAN_SUMMARY_BANNED_PHRASES: tuple[str, ...] = (
    "you must",
    "you should",
    "you need to",
    "you have to",
    "you will fail",
    "guaranteed",
    "i recommend",
    "i suggest",
    "risk-free",
)

SCENARIO_EXPLANATION_BANNED_PHRASES: tuple[str, ...] = (
    "you should",
    "you need to",
    "you must",
    "you have to",
    "consider changing",
    "i recommend",
    "i suggest",
    "update your plan",
    "modify your",
    "change your",
    "adjust your plan",
    "rewrite",
)

INSIGHTS_EXPLANATION_BANNED_PHRASES: tuple[str, ...] = (
    "you should",
    "you need to",
    "you must",
    "you have to",
    "consider changing",
    "i recommend",
    "i suggest",
    "focus on",
    "prioritize",
    "take action",
    "immediately",
    "urgently",
)

PolicyName = Literal["planSummary", "scenarioExplanation", "insightsExplanation"]

NAMED_POLICIES: dict[str, tuple[str, ...]] = {
    "planSummary": PLAN_SUMMARY_BANNED_PHRASES,
    "scenarioExplanation": SCENARIO_EXPLANATION_BANNED_PHRASES,
    "insightsExplanation": INSIGHTS_EXPLANATION_BANNED_PHRASES,
}

PLANNING_DISCLAIMER = (
    "This retirement projection is for planning purposes only and is not financial, "
    "investment, tax, or legal advice. Actual results will vary based on market conditions, "
    "personal circumstances, and other factors. Consult with qualified professionals before "
    "making financial decisions."
)


def parse_banned_phrases(policy_json: Optional[str]) -> Optional[tuple[str, ...]]:
    """Parse a JSON array of phrases; returns None when absent or malformed."""
    normalized_json = (policy_json or "").strip()
    if not normalized_json:
        return None
    try:
        raw = json.loads(normalized_json)
    except json.JSONDecodeError:
        return None
    if not isinstance(raw, list):
        return None

    phrases: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        phrase = item.strip()
        if phrase and phrase not in phrases:
            phrases.append(phrase)
    return tuple(phrases) if phrases else None
