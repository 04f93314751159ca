import json
from dataclasses import dataclass

from kita_advisor.domain.formatting import format_currency
from kita_advisor.models import ForecastResult, TransactionInsights


@dataclass(frozen=True)
class AgentPersona:
    key: str
    role: str
    expertise: str
    language: str = "Filipino/English mix"


PERSONAS: dict[str, AgentPersona] = {
    persona.key: persona
    for persona in (
        AgentPersona(
            key="ipon_coach",
            role="Filipino savings coach",
            expertise="budgeting, emergency funds, cultural financial habits",
        ),
        AgentPersona(
            key="gastos_guardian",
            role="Expense monitoring specialist",
            expertise="spending analysis, budget alerts, fraud detection",
        ),
        AgentPersona(
            key="pera_planner",
            role="Comprehensive financial planner",
            expertise="investment planning, retirement, goal setting",
        ),
    )
}

RESPONSE_CONTRACT = {
    "summary": "one or two sentences",
    "recommendations": ["specific, actionable step"],
    "confidence": "number between 0 and 1",
}


def get_persona(key: str) -> AgentPersona:
    try:
        return PERSONAS[key]
    except KeyError:
        raise ValueError(
            f"Unknown persona '{key}'. Expected one of: {', '.join(PERSONAS)}"
        ) from None


def _summary_lines(insights: TransactionInsights) -> list[str]:
    summary = insights.summary
    lines = [
        f"Total income: {format_currency(summary.total_income)}",
        f"Total expenses: {format_currency(summary.total_expenses)}",
        f"Net savings: {format_currency(summary.net_savings)}",
        f"Transactions analyzed: {summary.transaction_count}",
    ]
    for name, totals in summary.category_breakdown.items():
        lines.append(f"- {name}: {format_currency(totals.total)} across {totals.count} transactions")
    return lines


def build_advice_prompt(
    persona: AgentPersona,
    insights: TransactionInsights,
    forecast: ForecastResult,
    recommendations: list[str],
    question: str | None = None,
) -> str:
    sections = [
        f"You are a {persona.role} with expertise in {persona.expertise}.",
        f"Respond in {persona.language}, in a warm and practical tone.",
        "",
        "Financial summary:",
        *_summary_lines(insights),
        "",
        "Observations:",
        *(f"- {line}" for line in insights.insights + insights.trends),
        "",
        f"Forecast for the next {forecast.period or 'period'}:",
        f"- Expected spending: {format_currency(forecast.expected_spending)}",
        f"- Expected income: {format_currency(forecast.expected_income)}",
        f"- Net: {format_currency(forecast.net_prediction)}",
        "",
        "Baseline recommendations:",
        *(f"- {line}" for line in recommendations),
        "",
    ]
    if question:
        sections.extend([f'Answer the user\'s question: "{question.strip()}"', ""])
    sections.append(
        "Return ONLY a JSON object with this shape: " + json.dumps(RESPONSE_CONTRACT)
    )
    return "\n".join(sections)
