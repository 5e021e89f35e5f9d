"""Creative research generation: parallel persona, summary and audience calls."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import structlog

from .extraction import extract_persona_facts
from .exceptions import BatchFailure, ProviderCallFailure
from .fanout import fan_out
from .llm import CompletionClient, LLMTask
from .profiles import persona_profile, tier_profile
from .prompts import DEFAULT_BRAND, general_audience_prompt, persona_insight_prompt, product_summary_prompt
from .retry import DEFAULT_POLICY, NO_RETRY_POLICY, ResilientInvoker, RetryPolicy
from .schemas import (
    CreativeResearch,
    GeneralAudienceInsights,
    PersonaId,
    PersonaInsight,
    ProductSummary,
    ResearchRequest,
    ResearchStatus,
)
from .storage import TrainingLibrary

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

SUMMARY_TASK = "product-summary"
PERSONAS_TASK = "persona-insights"
AUDIENCE_TASK = "general-audience"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_research(now: datetime, reason: str = "N/A") -> CreativeResearch:
    """Research document for tiers that plan no creative concepts."""

    return CreativeResearch(
        status=ResearchStatus.DRAFT,
        generated_at=now,
        product_summary=ProductSummary(
            key_differentiator=reason,
            primary_benefit="N/A",
            category_position="N/A",
        ),
        persona_insights=[],
        general_audience_insights=GeneralAudienceInsights(),
        recommended_total_concepts=0,
    )


def total_recommended_concepts(insights: Iterable[PersonaInsight]) -> int:
    return sum(insight.recommended_concept_count for insight in insights)


class ResearchGenerator:
    """Fan out one insight call per persona plus the two summary calls.

    Persona calls are retried under ``persona_policy`` and a persona that
    still fails is dropped from the result. The product summary and general
    audience calls use ``critical_policy``; the research document cannot be
    built without them, so their failure fails the whole request.
    """

    def __init__(
        self,
        client: CompletionClient,
        library: TrainingLibrary,
        *,
        invoker: Optional[ResilientInvoker] = None,
        persona_policy: RetryPolicy = DEFAULT_POLICY,
        critical_policy: RetryPolicy = NO_RETRY_POLICY,
        personas: Sequence[PersonaId] = tuple(PersonaId),
        brand: str = DEFAULT_BRAND,
        clock: Clock = _utcnow,
    ) -> None:
        self.client = client
        self.library = library
        self.invoker = invoker or ResilientInvoker()
        self.persona_policy = persona_policy
        self.critical_policy = critical_policy
        self.personas = tuple(personas)
        self.brand = brand
        self.clock = clock

    async def generate(self, request: ResearchRequest) -> CreativeResearch:
        total_concepts = tier_profile(request.tier).max_concepts
        if total_concepts == 0:
            logger.info("research_skipped_for_tier", tier=request.tier.value)
            return empty_research(self.clock(), reason=f"N/A - {request.tier.label} launch")

        logger.info("research_generation_started", product=request.product_name, tier=request.tier.value)
        outcomes = await fan_out(
            {
                SUMMARY_TASK: lambda: self._product_summary(request),
                PERSONAS_TASK: lambda: self._persona_insights(request, total_concepts),
                AUDIENCE_TASK: lambda: self._general_audience(request),
            }
        )

        for task in (SUMMARY_TASK, AUDIENCE_TASK):
            outcome = outcomes[task]
            if not outcome.ok:
                logger.error("research_task_failed", task=task, error=str(outcome.error))
                raise BatchFailure(f"Failed to generate research: {outcome.error}") from outcome.error

        persona_outcome = outcomes[PERSONAS_TASK]
        if not persona_outcome.ok:
            raise BatchFailure(f"Failed to generate research: {persona_outcome.error}") from persona_outcome.error

        insights: List[PersonaInsight] = [insight for insight in persona_outcome.value if insight is not None]
        research = CreativeResearch(
            status=ResearchStatus.DRAFT,
            generated_at=self.clock(),
            product_summary=outcomes[SUMMARY_TASK].value,
            persona_insights=insights,
            general_audience_insights=outcomes[AUDIENCE_TASK].value,
            recommended_total_concepts=total_recommended_concepts(insights),
            refinement_notes=request.refinement_notes or None,
        )
        logger.info(
            "research_generation_complete",
            personas_analyzed=len(insights),
            personas_requested=len(self.personas),
            recommended_total_concepts=research.recommended_total_concepts,
        )
        return research

    async def _product_summary(self, request: ResearchRequest) -> ProductSummary:
        spec = product_summary_prompt(request.pmc, request.creative_brief, brand=self.brand)
        return await self.invoker.invoke(
            LLMTask(self.client, spec, ProductSummary),
            self.critical_policy,
            label=spec.task,
        )

    async def _general_audience(self, request: ResearchRequest) -> GeneralAudienceInsights:
        spec = general_audience_prompt(request.pmc, request.creative_brief, brand=self.brand)
        return await self.invoker.invoke(
            LLMTask(self.client, spec, GeneralAudienceInsights),
            self.critical_policy,
            label=spec.task,
        )

    async def _persona_insights(self, request: ResearchRequest, total_concepts: int) -> List[Optional[PersonaInsight]]:
        outcomes = await fan_out(
            {
                persona_id: (lambda persona_id=persona_id: self._persona_insight(persona_id, request, total_concepts))
                for persona_id in self.personas
            }
        )
        results: Dict[PersonaId, Optional[PersonaInsight]] = {}
        for persona_id, outcome in outcomes.items():
            if outcome.ok:
                results[persona_id] = outcome.value
            else:
                logger.warning("persona_insight_dropped", persona_id=persona_id.value, error=str(outcome.error))
                results[persona_id] = None
        return [results[persona_id] for persona_id in self.personas]

    async def _persona_insight(
        self,
        persona_id: PersonaId,
        request: ResearchRequest,
        total_concepts: int,
    ) -> Optional[PersonaInsight]:
        markdown = self.library.load_persona(persona_id)
        if not markdown.strip():
            logger.warning("persona_document_missing", persona_id=persona_id.value)
            return None

        facts = extract_persona_facts(markdown)
        spec = persona_insight_prompt(
            persona_id,
            facts,
            request.pmc,
            request.creative_brief,
            request.tier,
            total_concepts,
            refinement_notes=request.refinement_notes,
            brand=self.brand,
        )
        task = LLMTask(self.client, spec, PersonaInsight)
        profile = persona_profile(persona_id)

        async def unit() -> PersonaInsight:
            insight = await task()
            if insight.persona_id is not persona_id:
                raise ProviderCallFailure(
                    f"{spec.task}: response described persona '{insight.persona_id.value}'"
                )
            return insight.model_copy(
                update={"persona_name": profile.name, "customer_base_percentage": profile.percentage}
            )

        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            logger.warning(
                "persona_insight_retry",
                persona_id=persona_id.value,
                attempt=attempt,
                error=str(error),
            )

        return await self.invoker.invoke(unit, self.persona_policy, label=spec.task, on_retry=on_retry)
