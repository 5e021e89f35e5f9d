"""Pydantic models and enums for the Copy Studio API.

Python attributes are snake_case; every model serializes with camelCase
aliases so the JSON matches what the UI reads and writes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model with camelCase JSON aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OpenCamelModel(CamelModel):
    """camelCase model that keeps unknown fields (opaque client documents)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class PersonaId(str, Enum):
    """The fixed persona enumeration; member order is the aggregation order."""

    DEDICATED_EDUCATOR = "dedicated-educator"
    AGELESS_MATRIARCH = "ageless-matriarch"
    HIGH_POWERED_EXECUTIVE = "high-powered-executive"
    WELLNESS_HEALTHCARE_PRACTITIONER = "wellness-healthcare-practitioner"
    BUSY_SUBURBAN_SUPERMOM = "busy-suburban-supermom"
    CREATIVE_ENTREPRENEUR = "creative-entrepreneur"


class LaunchTier(str, Enum):
    TIER_1 = "tier-1"
    TIER_2 = "tier-2"
    TIER_3 = "tier-3"
    TIER_4 = "tier-4"

    @property
    def label(self) -> str:
        return self.value.replace("tier-", "Tier ")


class ChannelId(str, Enum):
    RETENTION = "retention"
    CREATIVE = "creative"
    PAID_MEDIA = "paid-media"
    ORGANIC_SOCIAL = "organic-social"
    INFLUENCER = "influencer"
    ECOM = "ecom"
    PR_AFFILIATE = "pr-affiliate"
    RETAIL = "retail"

    @property
    def strategy_key(self) -> str:
        """Attribute name of this channel on :class:`ChannelStrategies`."""

        return self.value.replace("-", "_")


# Channel ids used by earlier versions of the UI.
LEGACY_CHANNEL_IDS: Dict[str, ChannelId] = {
    "email": ChannelId.RETENTION,
    "sms": ChannelId.RETENTION,
    "paid-social": ChannelId.CREATIVE,
    "web": ChannelId.ECOM,
    "pr": ChannelId.PR_AFFILIATE,
}


def migrate_channel_ids(channels: Iterable[str]) -> List[ChannelId]:
    """Map legacy channel ids onto current ones, dropping duplicates in order."""

    migrated: List[ChannelId] = []
    for raw in channels:
        value = raw.value if isinstance(raw, ChannelId) else str(raw)
        channel = LEGACY_CHANNEL_IDS.get(value) or ChannelId(value)
        if channel not in migrated:
            migrated.append(channel)
    return migrated


class RelevanceScore(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HookFormula(str, Enum):
    PROBLEM_FIRST = "problem-first"
    IDENTITY_FIRST = "identity-first"
    CONTRARIAN = "contrarian"
    DIRECT_BENEFIT = "direct-benefit"


class ResearchStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"


class CreativePhase(str, Enum):
    RESEARCH = "research"
    STRATEGY = "strategy"
    CONCEPTS = "concepts"


class PhaseStatus(str, Enum):
    COMPLETE = "complete"
    CURRENT = "current"
    PENDING = "pending"
    LOCKED = "locked"


class LaunchStatus(str, Enum):
    DRAFT_REVIEW = "draft-review"
    STRATEGY_REVIEW = "strategy-review"
    GENERATING = "generating"
    COMPLETE = "complete"


class ConceptFormat(str, Enum):
    STATIC = "static"
    VIDEO = "video"
    CAROUSEL = "carousel"


def _lowered(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _migrated(value: Any) -> Any:
    return migrate_channel_ids(value) if isinstance(value, list) else value


# ---------------------------------------------------------------------------
# Client supplied context
# ---------------------------------------------------------------------------


class FounderQuote(OpenCamelModel):
    quote: str = ""
    context: str = ""


class ProductContext(OpenCamelModel):
    """Product master copy (PMC) for a launch."""

    name: str = ""
    tagline: str = ""
    what_it_is: str = ""
    why_we_love_it: str = ""
    how_its_different: str = ""
    who_its_for: str = ""
    how_to_use: str = ""
    bobbis_quotes: List[FounderQuote] = Field(default_factory=list)


class ConsumerInsights(OpenCamelModel):
    top_desires: List[str] = Field(default_factory=list)
    top_concerns: List[str] = Field(default_factory=list)


class CreativeBriefContext(OpenCamelModel):
    launch_overview: str = ""
    key_benefits: List[str] = Field(default_factory=list)
    target_demographic: str = ""
    consumer_insights: Optional[ConsumerInsights] = None
    key_differentiator: str = ""
    positioning_statement: str = ""


# ---------------------------------------------------------------------------
# Persona extraction
# ---------------------------------------------------------------------------


class ThemeAngles(CamelModel):
    theme: str
    angles: List[str] = Field(default_factory=list)


class JobsToBeDone(CamelModel):
    functional: List[str] = Field(default_factory=list)
    emotional: List[str] = Field(default_factory=list)
    social: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.functional or self.emotional or self.social)


class ObjectionResponse(CamelModel):
    objection: str
    response: str


class ExtractedPersonaFacts(CamelModel):
    """Structured facts mined from one persona document."""

    quotes: List[str] = Field(default_factory=list)
    voice_of_customer_quotes: List[str] = Field(default_factory=list)
    emotional_job_statement: str = ""
    copy_angles_by_theme: List[ThemeAngles] = Field(default_factory=list)
    jobs_to_be_done: JobsToBeDone = Field(default_factory=JobsToBeDone)
    objections: List[ObjectionResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Generation outputs
# ---------------------------------------------------------------------------


class ProductFit(CamelModel):
    relevance_score: RelevanceScore
    primary_jobs_to_be_done: List[str] = Field(default_factory=list)
    emotional_benefits: List[str] = Field(default_factory=list)
    functional_benefits: List[str] = Field(default_factory=list)

    @field_validator("relevance_score", mode="before")
    @classmethod
    def normalise_score(cls, value: Any) -> Any:
        return _lowered(value)


class MessagingAngle(CamelModel):
    angle: str
    hook_formula: HookFormula
    why_it_works: str = ""

    @field_validator("hook_formula", mode="before")
    @classmethod
    def normalise_formula(cls, value: Any) -> Any:
        return _lowered(value)


class HookOpportunity(CamelModel):
    hook: str
    voice_of_customer_source: Optional[str] = None


class PersonaInsight(CamelModel):
    persona_id: PersonaId
    persona_name: str = ""
    customer_base_percentage: float = 0
    product_fit: ProductFit
    messaging_angles: List[MessagingAngle] = Field(default_factory=list)
    hook_opportunities: List[HookOpportunity] = Field(default_factory=list)
    objections: List[str] = Field(default_factory=list)
    recommended_concept_count: int = Field(default=0, ge=0)


class ProductSummary(CamelModel):
    key_differentiator: str
    primary_benefit: str
    category_position: str


class GeneralAudienceInsights(CamelModel):
    universal_hooks: List[str] = Field(default_factory=list)
    broad_appeal_angles: List[str] = Field(default_factory=list)


class CreativeResearch(CamelModel):
    status: ResearchStatus = ResearchStatus.DRAFT
    generated_at: datetime = Field(default_factory=_utcnow)
    product_summary: ProductSummary
    persona_insights: List[PersonaInsight] = Field(default_factory=list)
    general_audience_insights: GeneralAudienceInsights = Field(default_factory=GeneralAudienceInsights)
    recommended_total_concepts: int = 0
    refinement_notes: Optional[str] = None


class CreativeConcept(CamelModel):
    id: str = ""
    name: str
    hook: str = ""
    hook_formula: HookFormula = HookFormula.DIRECT_BENEFIT
    angle: str = ""
    target_persona: str = "general"
    persona_name: str = ""
    formats: List[ConceptFormat] = Field(default_factory=lambda: [ConceptFormat.STATIC])

    @field_validator("hook_formula", mode="before")
    @classmethod
    def normalise_formula(cls, value: Any) -> Any:
        return _lowered(value)


class FormatMix(CamelModel):
    static: int = 0
    video: int = 0
    carousel: int = 0

    @classmethod
    def from_concepts(cls, concepts: Iterable[CreativeConcept]) -> "FormatMix":
        counts = {fmt.value: 0 for fmt in ConceptFormat}
        for concept in concepts:
            for fmt in concept.formats:
                counts[fmt.value] += 1
        return cls(**counts)


class CreativeStrategy(CamelModel):
    """Strategy document for the creative channel (the three-phase flow)."""

    status: ResearchStatus = ResearchStatus.DRAFT
    current_phase: CreativePhase = CreativePhase.RESEARCH
    research: Optional[CreativeResearch] = None
    summary: str = ""
    concepts: List[CreativeConcept] = Field(default_factory=list)
    format_mix: FormatMix = Field(default_factory=FormatMix)


class ChannelStrategy(OpenCamelModel):
    """Strategy document for every non-creative channel."""

    status: ResearchStatus = ResearchStatus.DRAFT
    summary: str = ""
    objectives: List[str] = Field(default_factory=list)
    key_messages: List[str] = Field(default_factory=list)
    tactics: List[str] = Field(default_factory=list)
    kpis: List[str] = Field(default_factory=list)


class ChannelStrategies(CamelModel):
    retention: Optional[ChannelStrategy] = None
    creative: Optional[CreativeStrategy] = None
    paid_media: Optional[ChannelStrategy] = None
    organic_social: Optional[ChannelStrategy] = None
    influencer: Optional[ChannelStrategy] = None
    ecom: Optional[ChannelStrategy] = None
    pr_affiliate: Optional[ChannelStrategy] = None
    retail: Optional[ChannelStrategy] = None

    def get(self, channel: ChannelId) -> ChannelStrategy | CreativeStrategy | None:
        return getattr(self, channel.strategy_key)

    def present(self) -> Dict[ChannelId, ChannelStrategy | CreativeStrategy]:
        """Return the generated strategies in channel enumeration order."""

        found: Dict[ChannelId, ChannelStrategy | CreativeStrategy] = {}
        for channel in ChannelId:
            strategy = self.get(channel)
            if strategy is not None:
                found[channel] = strategy
        return found


class GTMLaunch(CamelModel):
    """Persisted per-launch envelope."""

    id: str
    name: str = ""
    product: str = ""
    tier: LaunchTier
    pmc: ProductContext = Field(default_factory=ProductContext)
    creative_brief: CreativeBriefContext = Field(default_factory=CreativeBriefContext)
    selected_channels: List[ChannelId] = Field(default_factory=list)
    channel_strategies: ChannelStrategies = Field(default_factory=ChannelStrategies)
    channel_deliverables: Dict[str, Any] = Field(default_factory=dict)
    status: LaunchStatus = LaunchStatus.DRAFT_REVIEW
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("selected_channels", mode="before")
    @classmethod
    def migrate_legacy_channels(cls, value: Any) -> Any:
        return _migrated(value)

    @property
    def product_name(self) -> str:
        return self.product or self.name


# ---------------------------------------------------------------------------
# Request / response payloads
# ---------------------------------------------------------------------------


class ResearchRequest(CamelModel):
    """Payload for generating creative research."""

    tier: LaunchTier
    pmc: ProductContext
    creative_brief: CreativeBriefContext
    product_name: str = ""
    refinement_notes: Optional[str] = Field(
        default=None,
        description="Optional free-text guidance used when regenerating research.",
    )


class ResearchResponse(CamelModel):
    research: CreativeResearch


class StrategyRequest(CamelModel):
    """Payload for generating channel strategies."""

    launch_id: Optional[str] = None
    channels: List[ChannelId] = Field(..., min_length=1)
    pmc: ProductContext
    creative_brief: CreativeBriefContext
    tier: LaunchTier
    product_name: str = ""
    creative_research: Optional[CreativeResearch] = None

    @field_validator("channels", mode="before")
    @classmethod
    def migrate_legacy_channels(cls, value: Any) -> Any:
        return _migrated(value)


class StrategyResponse(CamelModel):
    channel_strategies: ChannelStrategies


class LaunchCreateRequest(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    product: str = ""
    tier: LaunchTier
    pmc: ProductContext = Field(default_factory=ProductContext)
    creative_brief: CreativeBriefContext = Field(default_factory=CreativeBriefContext)
    selected_channels: List[ChannelId] = Field(default_factory=list)

    @field_validator("selected_channels", mode="before")
    @classmethod
    def migrate_legacy_channels(cls, value: Any) -> Any:
        return _migrated(value)


class RefineResearchRequest(CamelModel):
    refinement_notes: Optional[str] = None


class GenerateStrategiesRequest(CamelModel):
    channels: List[ChannelId] = Field(..., min_length=1)

    @field_validator("channels", mode="before")
    @classmethod
    def migrate_legacy_channels(cls, value: Any) -> Any:
        return _migrated(value)


class DeliverablesRequest(CamelModel):
    channel_deliverables: Dict[str, Any]


class PhaseReport(CamelModel):
    phase: CreativePhase
    status: PhaseStatus
    progress: int


class Product(OpenCamelModel):
    """Catalog entry. Only ``name`` is required; ``id`` is derived when blank."""

    id: str = ""
    name: str = Field(..., min_length=1)
    category: str = ""
    price: str = ""
    description: str = ""
    key_benefits: List[str] = Field(default_factory=list)
    shades: str = ""
    best_for: str = ""


class ProductDeleteRequest(CamelModel):
    id: str = ""


class ProductSaveResponse(CamelModel):
    success: bool = True
    product: Product


class SuccessResponse(CamelModel):
    success: bool = True


class TrainingFile(CamelModel):
    name: str
    path: str
    category: str


class TrainingFileContent(CamelModel):
    path: str
    content: str


class ErrorResponse(CamelModel):
    error: str
