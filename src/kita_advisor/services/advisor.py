import asyncio
from collections.abc import Sequence

from kita_advisor.ai.orchestrator import AIRequestOrchestrator
from kita_advisor.ai.parsing import parse_json
from kita_advisor.ai.prompts import PERSONAS, build_advice_prompt, get_persona
from kita_advisor.analytics.forecast import forecast
from kita_advisor.analytics.insights import InsightEngine
from kita_advisor.errors import AdvisorError
from kita_advisor.logger import get_logger
from kita_advisor.models import AdviceResult, AnalyticsReport, GenerationOptions, Transaction
from kita_advisor.sources import TransactionSource

logger = get_logger(__name__)

DEFAULT_FORECAST_DAYS = 30


class AdvisorService:
    def __init__(
        self,
        source: TransactionSource,
        orchestrator: AIRequestOrchestrator,
        engine: InsightEngine | None = None,
    ) -> None:
        self.source = source
        self.orchestrator = orchestrator
        self.engine = engine or InsightEngine()

    def analytics_for(
        self,
        transactions: Sequence[Transaction],
        days_ahead: int = DEFAULT_FORECAST_DAYS,
    ) -> AnalyticsReport:
        return AnalyticsReport(
            insights=self.engine.analyze(transactions),
            recommendations=self.engine.recommendations_for(transactions),
            forecast=forecast(transactions, days_ahead),
        )

    async def analytics(self, user_id: str, days_ahead: int = DEFAULT_FORECAST_DAYS) -> AnalyticsReport:
        transactions = await self.source.list_transactions(user_id)
        logger.debug("[ADVICE] Loaded %s transactions for user %s", len(transactions), user_id)
        return self.analytics_for(transactions, days_ahead)

    async def _advise_one(
        self,
        persona_key: str,
        prompt: str,
        options: GenerationOptions | None,
    ) -> AdviceResult:
        text = await self.orchestrator.generate(prompt, options)
        try:
            data = parse_json(text)
        except AdvisorError as exc:
            return AdviceResult(
                persona=persona_key,
                text=text,
                error=exc.user_message,
                error_kind=exc.kind,
            )
        return AdviceResult(persona=persona_key, text=text, data=data)

    async def advise(
        self,
        transactions: Sequence[Transaction],
        personas: Sequence[str] | None = None,
        question: str | None = None,
        options: GenerationOptions | None = None,
    ) -> list[AdviceResult]:
        """
        Ask each persona for advice concurrently.

        Results keep the order of ``personas``. A persona whose request fails
        with an ``AdvisorError`` gets an entry carrying the user-facing
        message; the other personas are unaffected.
        """
        persona_keys = list(personas) if personas else list(PERSONAS)
        resolved = [get_persona(key) for key in persona_keys]

        analytics = self.analytics_for(transactions)
        prompts = [
            build_advice_prompt(
                persona,
                analytics.insights,
                analytics.forecast,
                analytics.recommendations,
                question=question,
            )
            for persona in resolved
        ]

        outcomes = await asyncio.gather(
            *(
                self._advise_one(persona.key, prompt, options)
                for persona, prompt in zip(resolved, prompts)
            ),
            return_exceptions=True,
        )

        results: list[AdviceResult] = []
        for persona, outcome in zip(resolved, outcomes):
            if isinstance(outcome, AdvisorError):
                logger.warning(
                    "[ADVICE] %s failed (%s): %s",
                    persona.key,
                    outcome.kind.value,
                    outcome,
                )
                results.append(AdviceResult(
                    persona=persona.key,
                    error=outcome.user_message,
                    error_kind=outcome.kind,
                ))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
        return results
