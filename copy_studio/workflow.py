"""Per-launch state: merges generation output and gates the creative phases.

The creative channel moves through three phases::

    research --approve--> strategy --approve & generate--> concepts

The phase rules below are pure functions over :class:`CreativeStrategy`;
:class:`LaunchWorkflow` applies them to persisted launches.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog
from pydantic import ValidationError

from .exceptions import BatchFailure, ConfigurationError, InvalidRequest, PhaseGateError
from .research import ResearchGenerator, total_recommended_concepts
from .schemas import (
    ChannelId,
    ChannelStrategies,
    CreativePhase,
    CreativeResearch,
    CreativeStrategy,
    GTMLaunch,
    LaunchStatus,
    PhaseReport,
    PhaseStatus,
    ResearchRequest,
    ResearchStatus,
    StrategyRequest,
)
from .storage import LaunchStore
from .strategy import StrategyGenerator

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Creative phase rules
# ---------------------------------------------------------------------------


def research_approved(strategy: Optional[CreativeStrategy]) -> bool:
    return bool(strategy and strategy.research and strategy.research.status is ResearchStatus.APPROVED)


def _concepts_started(strategy: Optional[CreativeStrategy]) -> bool:
    return bool(strategy and (strategy.current_phase is CreativePhase.CONCEPTS or strategy.concepts))


def phase_status(strategy: Optional[CreativeStrategy], phase: CreativePhase) -> PhaseStatus:
    if phase is CreativePhase.RESEARCH:
        if research_approved(strategy):
            return PhaseStatus.COMPLETE
        return PhaseStatus.CURRENT if strategy and strategy.research else PhaseStatus.PENDING
    if phase is CreativePhase.STRATEGY:
        if not research_approved(strategy):
            return PhaseStatus.LOCKED
        return PhaseStatus.COMPLETE if _concepts_started(strategy) else PhaseStatus.CURRENT
    return PhaseStatus.CURRENT if _concepts_started(strategy) else PhaseStatus.LOCKED


def phase_progress(strategy: Optional[CreativeStrategy], phase: CreativePhase) -> int:
    """Completion percentage shown for each phase."""

    research = strategy.research if strategy else None
    if phase in (CreativePhase.RESEARCH, CreativePhase.STRATEGY):
        if research is None:
            return 0
        return 100 if research.status is ResearchStatus.APPROVED else 50
    if not strategy or not strategy.concepts:
        return 0
    recommended = total_recommended_concepts(research.persona_insights) if research else 0
    return min(100, round(len(strategy.concepts) / (recommended or 1) * 100))


def enter_phase(strategy: Optional[CreativeStrategy], phase: CreativePhase) -> CreativeStrategy:
    """Move the phase pointer, rejecting moves past unapproved research."""

    if phase is not CreativePhase.RESEARCH and not research_approved(strategy):
        raise PhaseGateError(f"Research must be approved before entering the {phase.value} phase")
    current = strategy or CreativeStrategy()
    return current.model_copy(update={"current_phase": phase})


def approve_research(strategy: Optional[CreativeStrategy]) -> CreativeStrategy:
    """Approve draft research and move to the strategy phase; already approved research is left as is."""

    if strategy is None or strategy.research is None:
        raise PhaseGateError("Generate research before approving it")
    if research_approved(strategy):
        return strategy
    approved = strategy.research.model_copy(update={"status": ResearchStatus.APPROVED})
    return enter_phase(strategy.model_copy(update={"research": approved}), CreativePhase.STRATEGY)


def replace_research(strategy: Optional[CreativeStrategy], research: CreativeResearch) -> CreativeStrategy:
    """Swap in freshly generated research; approved research is frozen."""

    if research_approved(strategy):
        raise PhaseGateError("Research has already been approved and cannot be regenerated")
    current = strategy or CreativeStrategy()
    return current.model_copy(update={"research": research, "current_phase": CreativePhase.RESEARCH})


# ---------------------------------------------------------------------------
# Launch workflow
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LaunchWorkflow:
    """Read and update operations over persisted launches.

    This is the only component that writes launch state. Every write is a
    whole-field overwrite followed by one document save.
    """

    def __init__(
        self,
        store: LaunchStore,
        *,
        research_generator: Optional[ResearchGenerator] = None,
        strategy_generator: Optional[StrategyGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.research_generator = research_generator
        self.strategy_generator = strategy_generator
        self.clock = clock

    def get(self, launch_id: str) -> GTMLaunch:
        return self.store.get(launch_id)

    def list(self) -> List[GTMLaunch]:
        return self.store.list()

    def save(self, launch_id: str, updates: Mapping[str, Any]) -> GTMLaunch:
        """Shallow-merge *updates* (field names or JSON aliases) into the launch."""

        launch = self.store.get(launch_id)
        data = launch.model_dump(mode="json", by_alias=True)
        fields = GTMLaunch.model_fields
        for key, value in updates.items():
            alias = fields[key].alias if key in fields else key
            if alias in ("id", "createdAt"):
                continue
            data[alias] = value
        data["updatedAt"] = self.clock().isoformat()
        try:
            updated = GTMLaunch.model_validate(data)
        except ValidationError as exc:
            raise InvalidRequest(f"Invalid launch update: {exc.error_count()} error(s)") from exc
        logger.info("launch_saved", launch_id=launch_id, fields=sorted(updates))
        return self.store.put(updated)

    def _commit(self, launch: GTMLaunch, **fields: Any) -> GTMLaunch:
        updated = launch.model_copy(update={**fields, "updated_at": self.clock()})
        logger.info("launch_saved", launch_id=launch.id, fields=sorted(fields))
        return self.store.put(updated)

    def _with_creative(self, launch: GTMLaunch, creative: CreativeStrategy) -> ChannelStrategies:
        return launch.channel_strategies.model_copy(update={"creative": creative})

    def _require_research(self) -> ResearchGenerator:
        if self.research_generator is None:
            raise ConfigurationError("Research generation is not configured")
        return self.research_generator

    def _require_strategies(self) -> StrategyGenerator:
        if self.strategy_generator is None:
            raise ConfigurationError("Strategy generation is not configured")
        return self.strategy_generator

    def _strategy_request(
        self,
        launch: GTMLaunch,
        channels: List[ChannelId],
        research: Optional[CreativeResearch] = None,
    ) -> StrategyRequest:
        return StrategyRequest(
            launch_id=launch.id,
            channels=channels,
            pmc=launch.pmc,
            creative_brief=launch.creative_brief,
            tier=launch.tier,
            product_name=launch.product_name,
            creative_research=research,
        )

    async def generate_strategies(self, launch_id: str, channels: List[ChannelId]) -> ChannelStrategies:
        """Generate strategies for *channels* and replace the launch's strategy map.

        An existing creative strategy is carried over: its phases only move
        through the explicit research and concept actions.
        """

        generator = self._require_strategies()
        launch = self.store.get(launch_id)
        strategies = await generator.generate(self._strategy_request(launch, channels))
        existing_creative = launch.channel_strategies.creative
        if ChannelId.CREATIVE in channels and existing_creative is not None:
            strategies = strategies.model_copy(update={"creative": existing_creative})
        self._commit(
            launch,
            selected_channels=channels,
            channel_strategies=strategies,
            status=LaunchStatus.STRATEGY_REVIEW,
        )
        return strategies

    async def generate_research(self, launch_id: str, refinement_notes: Optional[str] = None) -> CreativeResearch:
        """(Re)generate creative research; allowed until the research is approved."""

        generator = self._require_research()
        launch = self.store.get(launch_id)
        creative = launch.channel_strategies.creative
        if research_approved(creative):
            raise PhaseGateError("Research has already been approved and cannot be regenerated")

        research = await generator.generate(
            ResearchRequest(
                tier=launch.tier,
                pmc=launch.pmc,
                creative_brief=launch.creative_brief,
                product_name=launch.product_name,
                refinement_notes=refinement_notes,
            )
        )
        self._commit(launch, channel_strategies=self._with_creative(launch, replace_research(creative, research)))
        logger.info("research_replaced", launch_id=launch_id, refined=bool(refinement_notes))
        return research

    def approve_research(self, launch_id: str) -> CreativeStrategy:
        launch = self.store.get(launch_id)
        creative = approve_research(launch.channel_strategies.creative)
        self._commit(launch, channel_strategies=self._with_creative(launch, creative))
        logger.info("research_approved", launch_id=launch_id)
        return creative

    async def approve_strategy_and_generate_concepts(self, launch_id: str) -> CreativeStrategy:
        """Generate concepts from the approved research and enter the concepts phase."""

        launch = self.store.get(launch_id)
        creative = launch.channel_strategies.creative
        enter_phase(creative, CreativePhase.CONCEPTS)
        generator = self._require_strategies()

        strategies = await generator.generate(
            self._strategy_request(launch, [ChannelId.CREATIVE], research=creative.research)
        )
        if strategies.creative is None:
            raise BatchFailure("Failed to generate concepts")

        concepts = strategies.creative.model_copy(
            update={"research": creative.research, "current_phase": CreativePhase.CONCEPTS}
        )
        self._commit(launch, channel_strategies=self._with_creative(launch, concepts))
        logger.info("concepts_generated", launch_id=launch_id, concepts=len(concepts.concepts))
        return concepts

    def approve_strategies(self, launch_id: str) -> GTMLaunch:
        """Mark every channel strategy approved and move the launch to generating."""

        launch = self.store.get(launch_id)
        present = launch.channel_strategies.present()
        if not present:
            raise PhaseGateError("Generate strategies before approving them")
        approved: Dict[str, Any] = {
            channel.strategy_key: strategy.model_copy(update={"status": ResearchStatus.APPROVED})
            for channel, strategy in present.items()
        }
        return self._commit(
            launch,
            channel_strategies=launch.channel_strategies.model_copy(update=approved),
            status=LaunchStatus.GENERATING,
        )

    def complete(self, launch_id: str, deliverables: Mapping[str, Any]) -> GTMLaunch:
        launch = self.store.get(launch_id)
        if launch.status is not LaunchStatus.GENERATING:
            raise PhaseGateError("Approve the channel strategies before storing deliverables")
        return self._commit(launch, channel_deliverables=dict(deliverables), status=LaunchStatus.COMPLETE)

    def phase_report(self, launch_id: str) -> List[PhaseReport]:
        creative = self.store.get(launch_id).channel_strategies.creative
        return [
            PhaseReport(phase=phase, status=phase_status(creative, phase), progress=phase_progress(creative, phase))
            for phase in CreativePhase
        ]
