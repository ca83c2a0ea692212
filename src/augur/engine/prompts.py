"""Prompt rendering for advice queries.

Prompts are Jinja2 templates rendered with StrictUndefined, so a missing
record field fails loudly at render time instead of producing a prompt
with a silent gap.
"""

from __future__ import annotations

from typing import Any

import jinja2

from augur.core.models import DecisionRecord, MarketContext

SYSTEM_PROMPT = """\
You are an expert sports betting advisor specialising in market analysis, \
player performance and risk management.

Base your advice on:
- Player statistics and recent form
- Market conditions and line movement
- Historical patterns and edge opportunities
- Risk and bankroll management

Every answer must contain:
1. A clear recommendation: HOLD, HEDGE or FADE
2. A confidence level from 0 to 100
3. Your reasoning
4. The main risks
5. Concrete next actions

Be concise and actionable."""

USER_PROMPT_TEMPLATE = """\
BETTING ANALYSIS REQUEST

Pick Details:
- Player: {{ record.subject or record.id }}
- Market: {{ record.category }}
- Line: {{ record.line }}
- Odds: {{ record.odds }}
- Tier: {{ record.tier or "Ungraded" }}
- Edge Score: {{ "N/A" if record.edge_score is none else record.edge_score }}
- Sharp Fade: {{ "YES" if record.against_the_crowd else "NO" }}
- Tags: {{ record.tags | join(", ") if record.tags else "None" }}
{% if context %}
Market Context:
- Regime: {{ context.regime }}
- Volatility: {{ context.volatility }}
- Sentiment: {{ context.sentiment }}
- Time: {{ context.time_bucket }}
- Day: {{ context.day_of_week or "Unknown" }}
- Market Pressure: {{ context.pressure }}
- Line Movement: {{ context.line_movement }}
{% endif %}
Reply using exactly this format:

**RECOMMENDATION**: [HOLD/HEDGE/FADE]
**CONFIDENCE**: [0-100]
**REASONING**: [Detailed analysis]
**RISK FACTORS**: [Key risks to consider]
**ACTION**: [Specific next steps]
"""


class PromptBuilder:
    """Builds the system and user prompts for one advice query."""

    def __init__(self, jinja_env: jinja2.Environment | None = None) -> None:
        self.env = jinja_env or jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._user_template = self.env.from_string(USER_PROMPT_TEMPLATE)

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_user_prompt(
        self,
        record: DecisionRecord,
        context: MarketContext | None = None,
    ) -> str:
        variables: dict[str, Any] = {
            "record": record.model_dump(),
            "context": context.model_dump() if context is not None else None,
        }
        return self._user_template.render(**variables)
