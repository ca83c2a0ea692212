"""Parse free-text provider responses into structured advice.

Providers are asked for a marker-delimited answer (``**RECOMMENDATION**:``,
``**CONFIDENCE**:``, ``**REASONING**:``) but nothing forces them to comply.
Every missing or malformed marker falls back to a default; parsing never
raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from augur.core.constants import DEFAULT_CONFIDENCE, DEFAULT_REASONING, DEFAULT_RECOMMENDATION

_RECOMMENDATION_RE = re.compile(r"\*\*RECOMMENDATION\*\*:\s*([A-Z]+)", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"\*\*CONFIDENCE\*\*:\s*(\d+)", re.IGNORECASE)
_REASONING_RE = re.compile(r"\*\*REASONING\*\*:\s*([^*]+)", re.IGNORECASE)

# First bold uppercase token, e.g. "**HOLD** - reasoning"
_LABEL_RE = re.compile(r"\*\*([A-Z]+)\*\*")


@dataclass(frozen=True)
class ParsedAdvice:
    recommendation: str
    confidence: float
    reasoning: str

    @property
    def advice(self) -> str:
        return format_advice(self.recommendation, self.reasoning)


def format_advice(recommendation: str, reasoning: str) -> str:
    """Embed a label in advice text so extract_label can find it again."""
    return f"**{recommendation}** - {reasoning}"


def _percent(digits: str) -> int:
    """Clamp a digit string to 0-100 without converting huge numbers."""
    digits = digits.lstrip("0") or "0"
    if len(digits) > 3:
        return 100
    return min(100, int(digits))


def parse_response(text: str) -> ParsedAdvice:
    """Extract recommendation, confidence (0-1) and reasoning from raw text."""
    recommendation = DEFAULT_RECOMMENDATION
    match = _RECOMMENDATION_RE.search(text)
    if match:
        recommendation = match.group(1).upper()

    confidence = DEFAULT_CONFIDENCE
    match = _CONFIDENCE_RE.search(text)
    if match:
        confidence = _percent(match.group(1)) / 100

    reasoning = DEFAULT_REASONING
    match = _REASONING_RE.search(text)
    if match and match.group(1).strip():
        reasoning = match.group(1).strip()

    return ParsedAdvice(recommendation=recommendation, confidence=confidence, reasoning=reasoning)


def extract_label(advice: str) -> str:
    """The recommendation label embedded in advice text, HOLD if absent."""
    match = _LABEL_RE.search(advice)
    return match.group(1) if match else DEFAULT_RECOMMENDATION
