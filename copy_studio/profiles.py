"""Static persona, tier and channel profiles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .schemas import ChannelId, LaunchTier, PersonaId


@dataclass(frozen=True)
class PersonaProfile:
    """Describe one customer persona."""

    id: PersonaId
    name: str
    percentage: float
    document: str


PERSONAS: Dict[PersonaId, PersonaProfile] = {
    PersonaId.DEDICATED_EDUCATOR: PersonaProfile(
        id=PersonaId.DEDICATED_EDUCATOR,
        name="The Dedicated Educator",
        percentage=18,
        document="the-dedicated-educator.md",
    ),
    PersonaId.AGELESS_MATRIARCH: PersonaProfile(
        id=PersonaId.AGELESS_MATRIARCH,
        name="The Ageless Matriarch",
        percentage=24,
        document="the-ageless-matriarch.md",
    ),
    PersonaId.HIGH_POWERED_EXECUTIVE: PersonaProfile(
        id=PersonaId.HIGH_POWERED_EXECUTIVE,
        name="The High-Powered Executive",
        percentage=15,
        document="the-high-powered-executive.md",
    ),
    PersonaId.WELLNESS_HEALTHCARE_PRACTITIONER: PersonaProfile(
        id=PersonaId.WELLNESS_HEALTHCARE_PRACTITIONER,
        name="The Wellness & Healthcare Practitioner",
        percentage=12,
        document="the-wellness-healthcare-practitioner.md",
    ),
    PersonaId.BUSY_SUBURBAN_SUPERMOM: PersonaProfile(
        id=PersonaId.BUSY_SUBURBAN_SUPERMOM,
        name="The Busy Suburban Supermom",
        percentage=19,
        document="the-busy-suburban-supermom.md",
    ),
    PersonaId.CREATIVE_ENTREPRENEUR: PersonaProfile(
        id=PersonaId.CREATIVE_ENTREPRENEUR,
        name="The Creative Entrepreneur",
        percentage=12,
        document="the-creative-entrepreneur.md",
    ),
}


@dataclass(frozen=True)
class TierProfile:
    """Creative and deliverable budget for a launch tier."""

    tier: LaunchTier
    min_concepts: int
    max_concepts: int
    deliverables_per_channel: int


TIERS: Dict[LaunchTier, TierProfile] = {
    LaunchTier.TIER_1: TierProfile(LaunchTier.TIER_1, min_concepts=15, max_concepts=24, deliverables_per_channel=8),
    LaunchTier.TIER_2: TierProfile(LaunchTier.TIER_2, min_concepts=8, max_concepts=15, deliverables_per_channel=5),
    LaunchTier.TIER_3: TierProfile(LaunchTier.TIER_3, min_concepts=3, max_concepts=6, deliverables_per_channel=3),
    LaunchTier.TIER_4: TierProfile(LaunchTier.TIER_4, min_concepts=0, max_concepts=0, deliverables_per_channel=1),
}


CHANNEL_LABELS: Dict[ChannelId, str] = {
    ChannelId.RETENTION: "Retention (Email & SMS)",
    ChannelId.CREATIVE: "Creative (Paid Social Concepts)",
    ChannelId.PAID_MEDIA: "Paid Media",
    ChannelId.ORGANIC_SOCIAL: "Organic Social",
    ChannelId.INFLUENCER: "Influencer",
    ChannelId.ECOM: "Ecommerce Site",
    ChannelId.PR_AFFILIATE: "PR & Affiliate",
    ChannelId.RETAIL: "Retail",
}


def persona_profile(persona_id: PersonaId) -> PersonaProfile:
    return PERSONAS[persona_id]


def tier_profile(tier: LaunchTier) -> TierProfile:
    return TIERS[tier]
