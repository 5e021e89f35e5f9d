"""Channel strategy generation, including creative concepts."""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog
from pydantic import Field

from .fanout import fan_out
from .llm import CompletionClient, LLMTask
from .profiles import PERSONAS, tier_profile
from .prompts import DEFAULT_BRAND, channel_strategy_prompt
from .retry import DEFAULT_POLICY, ResilientInvoker, RetryPolicy
from .schemas import (
    CamelModel,
    ChannelId,
    ChannelStrategies,
    ChannelStrategy,
    CreativeConcept,
    CreativePhase,
    CreativeResearch,
    CreativeStrategy,
    FormatMix,
    PersonaId,
    StrategyRequest,
)

logger = structlog.get_logger(__name__)


class ConceptPlan(CamelModel):
    """Shape the model returns for the creative channel."""

    summary: str = ""
    concepts: List[CreativeConcept] = Field(default_factory=list)


def _persona_name(target: str) -> str:
    try:
        return PERSONAS[PersonaId(target)].name
    except ValueError:
        return "General Audience"


def build_creative_strategy(plan: ConceptPlan, research: CreativeResearch) -> CreativeStrategy:
    """Normalize concept ids and persona names and recompute the format mix."""

    concepts = []
    for index, concept in enumerate(plan.concepts, start=1):
        target = concept.target_persona if concept.target_persona in PersonaId._value2member_map_ else "general"
        concepts.append(
            concept.model_copy(
                update={
                    "id": concept.id or f"concept-{index}",
                    "target_persona": target,
                    "persona_name": _persona_name(target),
                }
            )
        )
    return CreativeStrategy(
        current_phase=CreativePhase.CONCEPTS,
        research=research,
        summary=plan.summary,
        concepts=concepts,
        format_mix=FormatMix.from_concepts(concepts),
    )


class StrategyGenerator:
    """Generate one strategy document per selected channel, in parallel.

    Each channel is retried independently; a channel that still fails is
    left out of the returned map.
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        invoker: Optional[ResilientInvoker] = None,
        policy: RetryPolicy = DEFAULT_POLICY,
        brand: str = DEFAULT_BRAND,
    ) -> None:
        self.client = client
        self.invoker = invoker or ResilientInvoker()
        self.policy = policy
        self.brand = brand

    async def generate(self, request: StrategyRequest) -> ChannelStrategies:
        outcomes = await fan_out(
            {channel: (lambda channel=channel: self._channel(channel, request)) for channel in request.channels}
        )
        generated: Dict[str, ChannelStrategy | CreativeStrategy] = {}
        for channel, outcome in outcomes.items():
            if outcome.ok:
                generated[channel.strategy_key] = outcome.value
            else:
                logger.warning("channel_strategy_dropped", channel=channel.value, error=str(outcome.error))
        logger.info(
            "strategy_generation_complete",
            launch_id=request.launch_id,
            requested=[channel.value for channel in request.channels],
            generated=sorted(generated),
        )
        return ChannelStrategies(**generated)

    async def _channel(self, channel: ChannelId, request: StrategyRequest) -> ChannelStrategy | CreativeStrategy:
        if channel is ChannelId.CREATIVE:
            return await self._creative(request)

        spec = channel_strategy_prompt(
            channel,
            request.pmc,
            request.creative_brief,
            request.tier,
            request.product_name,
            brand=self.brand,
        )
        return await self.invoker.invoke(LLMTask(self.client, spec, ChannelStrategy), self.policy, label=spec.task)

    async def _creative(self, request: StrategyRequest) -> CreativeStrategy:
        research = request.creative_research
        if research is None:
            # Creative work starts with the research phase.
            return CreativeStrategy(current_phase=CreativePhase.RESEARCH)
        if tier_profile(request.tier).max_concepts == 0:
            return CreativeStrategy(current_phase=CreativePhase.CONCEPTS, research=research)

        spec = channel_strategy_prompt(
            ChannelId.CREATIVE,
            request.pmc,
            request.creative_brief,
            request.tier,
            request.product_name,
            research=research,
            brand=self.brand,
        )
        plan = await self.invoker.invoke(LLMTask(self.client, spec, ConceptPlan), self.policy, label=spec.task)
        return build_creative_strategy(plan, research)
