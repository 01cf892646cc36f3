"""Best-effort extraction of structure from free-text provider responses.

Recommendations and confidence are pulled out of the analysis text with
regex heuristics. This is inherently fragile, so it sits behind the
ResponseParser interface and adapters accept any implementation.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

# CONFIDENCE: <value> marker requested by the prompt templates
_CONFIDENCE_RE = re.compile(r"CONFIDENCE:\s*([\d.]+)", re.IGNORECASE)

# "1. Do something" / "2) Do something"
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.+?)\s*$", re.MULTILINE)

# "- item" / "* item" / "• item"
_BULLET_RE = re.compile(r"^\s*[•\-*]\s+(.+?)\s*$", re.MULTILINE)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_ADVICE_WORDS = ("recommend", "should", "optimize")

_MAX_NUMBERED = 5
_MAX_BULLETS = 3
_MAX_SENTENCES = 3
_MAX_RECOMMENDATIONS = 5


class ParsedResponse(BaseModel):
    """Structured view of a free-text response."""

    recommendations: list[str] = Field(default_factory=list)
    confidence: float | None = Field(
        default=None, description="Parsed CONFIDENCE marker, if any",
    )


class ResponseParser(ABC):
    """Turns a provider's raw text into structured fields."""

    @abstractmethod
    def parse(self, content: str) -> ParsedResponse:
        """Extract recommendations and confidence from ``content``."""


class HeuristicResponseParser(ResponseParser):
    """Regex-based parser for list-style analyses.

    Recommendations come from numbered items first, then bullet items.
    When neither exists, sentences that read like advice are used.
    """

    def parse(self, content: str) -> ParsedResponse:
        return ParsedResponse(
            recommendations=extract_recommendations(content),
            confidence=extract_confidence(content),
        )


def extract_recommendations(content: str) -> list[str]:
    """Extract up to five recommendations from ``content``."""
    body = _CONFIDENCE_RE.sub("", content)
    recommendations: list[str] = []
    recommendations.extend(_NUMBERED_RE.findall(body)[:_MAX_NUMBERED])
    recommendations.extend(_BULLET_RE.findall(body)[:_MAX_BULLETS])

    if not recommendations:
        sentences = [
            s.strip() for s in _SENTENCE_SPLIT_RE.split(body)
            if 20 < len(s.strip()) < 200
            and any(word in s.lower() for word in _ADVICE_WORDS)
        ]
        recommendations.extend(sentences[:_MAX_SENTENCES])

    return [r for r in recommendations if r][:_MAX_RECOMMENDATIONS]


def extract_confidence(content: str) -> float | None:
    """Extract the CONFIDENCE: <value> score, clamped to [0, 1].

    Values above 1 are read as percentages. Returns None when there is no
    valid marker.
    """
    match = _CONFIDENCE_RE.search(content)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    if value > 1.0:
        value /= 100
    return max(0.0, min(1.0, value))
