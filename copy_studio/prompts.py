"""Prompt builders for every generation task.

Each builder is a pure function of its inputs. Optional context renders as
an empty string in a fixed slot instead of being dropped, so two prompts for
the same task always have the same line structure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from textwrap import dedent
from typing import Iterable, List, Optional

from .profiles import CHANNEL_LABELS, persona_profile, tier_profile
from .schemas import (
    ChannelId,
    ConceptFormat,
    CreativeBriefContext,
    CreativeResearch,
    ExtractedPersonaFacts,
    HookFormula,
    LaunchTier,
    PersonaId,
    ProductContext,
    RelevanceScore,
)

DEFAULT_BRAND = "Jones Road Beauty"
MAX_GOLD_NUGGET_QUOTES = 15
MAX_VOICE_OF_CUSTOMER_QUOTES = 8
JSON_ONLY = "Return ONLY the JSON, no explanation or markdown."


@dataclass(frozen=True)
class PromptSpec:
    """Container describing how to call the LLM for one task."""

    task: str
    system_prompt: str
    user_prompt: str
    temperature: float = 0.7
    max_tokens: int = 1000


def _choices(values: Iterable[object]) -> str:
    return "|".join(getattr(value, "value", str(value)) for value in values)


def _joined(items: Optional[Iterable[str]]) -> str:
    return ", ".join(item for item in (items or []) if item)


def _numbered(items: Iterable[str]) -> str:
    return "\n".join(f'{index}. "{item}"' for index, item in enumerate(items, start=1))


def _bullets(items: Iterable[str], fallback: str = "") -> str:
    rendered = "\n".join(f"- {item}" for item in items)
    return rendered or fallback


def _system_prompt(brand: str) -> str:
    return f"You are a senior creative strategist for {brand}."


# ---------------------------------------------------------------------------
# Shared context blocks
# ---------------------------------------------------------------------------


def _product_block(pmc: ProductContext, *, include_usage: bool = True) -> str:
    lines = [
        f"- Tagline: {pmc.tagline}",
        f"- What It Is: {pmc.what_it_is}",
        f"- Why We Love It: {pmc.why_we_love_it}",
        f"- How It's Different: {pmc.how_its_different}",
        f"- Who It's For: {pmc.who_its_for}",
    ]
    if include_usage:
        lines.append(f"- How To Use: {pmc.how_to_use}")
        lines.append(
            "\n".join(f'- Founder Quote: "{quote.quote}" ({quote.context})' for quote in pmc.bobbis_quotes)
        )
    return "\n".join(lines)


def _brief_block(brief: CreativeBriefContext) -> str:
    insights = brief.consumer_insights
    return "\n".join(
        [
            f"- Launch Overview: {brief.launch_overview}",
            f"- Key Benefits: {_joined(brief.key_benefits) or 'Not specified'}",
            f"- Target Demographic: {brief.target_demographic}",
            f"- Top Desires: {_joined(insights.top_desires) if insights else ''}",
            f"- Top Concerns: {_joined(insights.top_concerns) if insights else ''}",
            f"- Key Differentiator: {brief.key_differentiator}",
            f"- Positioning: {brief.positioning_statement}",
        ]
    )


def _refinement_block(notes: Optional[str]) -> str:
    if not notes or not notes.strip():
        return ""
    return f"## REFINEMENT GUIDANCE\nThe previous research was reviewed. Apply this guidance:\n{notes.strip()}"


def _facts_blocks(facts: ExtractedPersonaFacts) -> List[str]:
    """Render each extracted fact group; empty groups render as ``""``."""

    emotional = f"## EMOTIONAL JOB TO BE DONE\n{facts.emotional_job_statement}" if facts.emotional_job_statement else ""

    jobs = facts.jobs_to_be_done
    jtbd = ""
    if jobs.functional or jobs.emotional:
        jtbd = "\n".join(
            [
                "## JOBS TO BE DONE",
                "### Functional Jobs",
                _bullets(jobs.functional, "None extracted"),
                "### Emotional Jobs",
                _bullets(jobs.emotional, "None extracted"),
                "### Social Jobs",
                _bullets(jobs.social, "None extracted"),
            ]
        )

    gold = ""
    if facts.quotes:
        gold = "## GOLD NUGGET QUOTES (Real Customer Voices - USE THESE FOR HOOK INSPIRATION)\n" + _numbered(
            facts.quotes[:MAX_GOLD_NUGGET_QUOTES]
        )

    voc = ""
    if facts.voice_of_customer_quotes:
        voc = "## VOICE OF CUSTOMER QUOTES\n" + _numbered(
            facts.voice_of_customer_quotes[:MAX_VOICE_OF_CUSTOMER_QUOTES]
        )

    angles = ""
    if facts.copy_angles_by_theme:
        themes = [
            f"### {theme.theme}\n" + "\n".join(f'- "{angle}"' for angle in theme.angles)
            for theme in facts.copy_angles_by_theme
        ]
        angles = "## PROVEN COPY ANGLES BY THEME\n" + "\n\n".join(themes)

    objections = ""
    if facts.objections:
        objections = "## KNOWN OBJECTIONS & RESPONSES\n" + "\n".join(
            f'- "{item.objection}" -> {item.response}' for item in facts.objections
        )

    return [emotional, jtbd, gold, voc, angles, objections]


# ---------------------------------------------------------------------------
# Task prompts
# ---------------------------------------------------------------------------


def persona_insight_prompt(
    persona_id: PersonaId,
    facts: Optional[ExtractedPersonaFacts],
    pmc: ProductContext,
    brief: CreativeBriefContext,
    tier: LaunchTier,
    total_concepts: int,
    *,
    refinement_notes: Optional[str] = None,
    brand: str = DEFAULT_BRAND,
) -> PromptSpec:
    """Ask how the product maps onto one persona."""

    profile = persona_profile(persona_id)
    per_persona_cap = math.ceil(total_concepts / 3)

    header = dedent(
        f"""
        You are a senior creative strategist for {brand} analyzing how a product fits each customer persona.

        ## YOUR TASK
        Analyze how the following product maps to this specific persona. Generate insights that will guide creative concept development.

        ## PERSONA: {profile.name}
        This persona represents {profile.percentage:g}% of the {brand} customer base.
        """
    ).strip()

    instructions = dedent(
        f"""
        ## TIER CONTEXT
        This is a {tier.label} launch with approximately {total_concepts} total concepts planned across all personas.

        ## ANALYSIS INSTRUCTIONS
        1. Determine how RELEVANT this product is to this persona (high/medium/low)
           - HIGH: Product directly solves key pain points and aligns with core motivations
           - MEDIUM: Product has some relevance but isn't a perfect fit
           - LOW: Product doesn't strongly connect to this persona's needs

        2. Identify which Jobs To Be Done this product solves (reference the JTBD section above)

        3. Extract 2-4 messaging angles that would resonate with this persona.
           Reference the "Proven Copy Angles by Theme" section above and adapt them for this product.
           For each angle give the angle, the hook formula that fits best ({_choices(HookFormula)}) and why it resonates.

        4. Generate 3-5 hook opportunities in this persona's own voice.
           Use the "Gold Nugget Quotes" and "Voice of Customer Quotes" above as direct inspiration and cite the source quote when applicable.

        5. Identify 2-3 potential purchase objections (reference the "Known Objections" section if available)

        6. Recommend how many concepts should target this persona (0-{per_persona_cap}) based on:
           - Relevance score
           - Customer base percentage ({profile.percentage:g}%)
           - Strategic priority

        Reply with a single JSON object and nothing else, using exactly this shape:
        {{
          "personaId": "{persona_id.value}",
          "personaName": "{profile.name}",
          "customerBasePercentage": {profile.percentage:g},
          "productFit": {{
            "relevanceScore": "{_choices(RelevanceScore)}",
            "primaryJobsToBeDone": ["JTBD 1", "JTBD 2"],
            "emotionalBenefits": ["How this makes them FEEL"],
            "functionalBenefits": ["What it DOES for them"]
          }},
          "messagingAngles": [
            {{
              "angle": "The specific creative angle",
              "hookFormula": "{_choices(HookFormula)}",
              "whyItWorks": "Why this resonates with this persona"
            }}
          ],
          "hookOpportunities": [
            {{
              "hook": "Actual hook text to use in creative",
              "voiceOfCustomerSource": "VOC quote that inspired this (if applicable)"
            }}
          ],
          "objections": ["Potential purchase objection 1", "Objection 2"],
          "recommendedConceptCount": 0
        }}
        """
    ).strip()

    sections = [
        header,
        *_facts_blocks(facts or ExtractedPersonaFacts()),
        "",
        "## PRODUCT INFORMATION",
        _product_block(pmc),
        "",
        "## CREATIVE BRIEF CONTEXT",
        _brief_block(brief),
        "",
        _refinement_block(refinement_notes),
        "",
        instructions,
        "",
        JSON_ONLY,
    ]
    return PromptSpec(
        task=f"persona-insight:{persona_id.value}",
        system_prompt=_system_prompt(brand),
        user_prompt="\n".join(sections),
        temperature=0.7,
        max_tokens=2500,
    )


def product_summary_prompt(
    pmc: ProductContext,
    brief: CreativeBriefContext,
    *,
    brand: str = DEFAULT_BRAND,
) -> PromptSpec:
    """Ask for a three-sentence positioning summary of the product."""

    shape = dedent(
        """
        Reply with a single JSON object and nothing else, using exactly this shape:
        {
          "keyDifferentiator": "The single most important thing that sets this product apart (1 sentence)",
          "primaryBenefit": "The main benefit customers will experience (1 sentence)",
          "categoryPosition": "How this product positions in its category (1 sentence)"
        }

        Be specific to THIS product, not generic category claims.
        """
    ).strip()
    sections = [
        f"You are a senior creative strategist for {brand}.",
        "",
        "Analyze this product and provide a concise summary for creative development.",
        "",
        "PRODUCT:",
        _product_block(pmc, include_usage=False),
        f"- Key Differentiator: {brief.key_differentiator}",
        f"- Positioning: {brief.positioning_statement}",
        "",
        shape,
        JSON_ONLY,
    ]
    return PromptSpec(
        task="product-summary",
        system_prompt=_system_prompt(brand),
        user_prompt="\n".join(sections),
        temperature=0.5,
        max_tokens=500,
    )


def general_audience_prompt(
    pmc: ProductContext,
    brief: CreativeBriefContext,
    *,
    brand: str = DEFAULT_BRAND,
) -> PromptSpec:
    """Ask for hooks and angles that work across every persona."""

    shape = dedent(
        """
        Reply with a single JSON object and nothing else, using exactly this shape:
        {
          "universalHooks": [
            "Hook that works for anyone (3-5 hooks)",
            "Another universal hook"
          ],
          "broadAppealAngles": [
            "Creative angle with broad appeal (2-3 angles)",
            "Another broad angle"
          ]
        }

        Make hooks punchy and direct. Make angles specific to the product.
        """
    ).strip()
    sections = [
        f"You are a senior creative strategist for {brand}.",
        "",
        "Generate universal hooks and broad appeal angles for this product that work across ALL audiences (not persona-specific).",
        "",
        "PRODUCT:",
        f"- Tagline: {pmc.tagline}",
        f"- What It Is: {pmc.what_it_is}",
        f"- Why We Love It: {pmc.why_we_love_it}",
        f"- How It's Different: {pmc.how_its_different}",
        f"- Launch Overview: {brief.launch_overview}",
        f"- Key Benefits: {_joined(brief.key_benefits)}",
        "",
        shape,
        JSON_ONLY,
    ]
    return PromptSpec(
        task="general-audience",
        system_prompt=_system_prompt(brand),
        user_prompt="\n".join(sections),
        temperature=0.8,
        max_tokens=800,
    )


def _research_block(research: CreativeResearch) -> str:
    summary = research.product_summary
    lines = [
        "## APPROVED CREATIVE RESEARCH",
        f"- Key Differentiator: {summary.key_differentiator}",
        f"- Primary Benefit: {summary.primary_benefit}",
        f"- Category Position: {summary.category_position}",
        f"- Recommended Total Concepts: {research.recommended_total_concepts}",
    ]
    for insight in research.persona_insights:
        lines.append("")
        lines.append(
            f"### {insight.persona_name or insight.persona_id.value} ({insight.persona_id.value}) - "
            f"relevance {insight.product_fit.relevance_score.value}, {insight.recommended_concept_count} concepts"
        )
        lines.extend(
            f"- Angle ({angle.hook_formula.value}): {angle.angle}" for angle in insight.messaging_angles
        )
        lines.extend(f'- Hook: "{hook.hook}"' for hook in insight.hook_opportunities)
    general = research.general_audience_insights
    lines.append("")
    lines.append("### General Audience")
    lines.extend(f'- Universal Hook: "{hook}"' for hook in general.universal_hooks)
    lines.extend(f"- Broad Angle: {angle}" for angle in general.broad_appeal_angles)
    if research.refinement_notes:
        lines.append(f"- Reviewer Guidance: {research.refinement_notes}")
    return "\n".join(lines)


def channel_strategy_prompt(
    channel: ChannelId,
    pmc: ProductContext,
    brief: CreativeBriefContext,
    tier: LaunchTier,
    product_name: str,
    *,
    research: Optional[CreativeResearch] = None,
    brand: str = DEFAULT_BRAND,
) -> PromptSpec:
    """Ask for the strategy document of one marketing channel.

    The creative channel is seeded with approved research and asks for a
    list of concepts; every other channel uses the generic strategy shape.
    """

    profile = tier_profile(tier)
    intro = [
        f"You are a senior go-to-market strategist for {brand}.",
        "",
        f"Build the {CHANNEL_LABELS[channel]} strategy for the launch of {product_name}.",
        "",
        "## PRODUCT INFORMATION",
        _product_block(pmc),
        "",
        "## CREATIVE BRIEF CONTEXT",
        _brief_block(brief),
        "",
    ]

    if channel is ChannelId.CREATIVE:
        persona_ids = _choices([*PersonaId, "general"])
        shape = dedent(
            f"""
            ## TIER CONTEXT
            This is a {tier.label} launch. Plan between {profile.min_concepts} and {profile.max_concepts} concepts in total.
            Distribute concepts across personas following each persona's recommended concept count.

            Reply with a single JSON object and nothing else, using exactly this shape:
            {{
              "summary": "Two sentences describing the creative strategy",
              "concepts": [
                {{
                  "name": "Short concept name",
                  "hook": "Opening line of the creative",
                  "hookFormula": "{_choices(HookFormula)}",
                  "angle": "The creative angle",
                  "targetPersona": "{persona_ids}",
                  "formats": ["{_choices(ConceptFormat)}"]
                }}
              ]
            }}
            """
        ).strip()
        sections = intro + [_research_block(research) if research else "", "", shape, JSON_ONLY]
        return PromptSpec(
            task="channel-strategy:creative",
            system_prompt=_system_prompt(brand),
            user_prompt="\n".join(sections),
            temperature=0.8,
            max_tokens=4000,
        )

    shape = dedent(
        f"""
        ## TIER CONTEXT
        This is a {tier.label} launch with roughly {profile.deliverables_per_channel} deliverables planned for this channel.

        Reply with a single JSON object and nothing else, using exactly this shape:
        {{
          "summary": "Two sentences describing the channel strategy",
          "objectives": ["Objective 1", "Objective 2"],
          "keyMessages": ["Message 1", "Message 2"],
          "tactics": ["Tactic 1", "Tactic 2"],
          "kpis": ["KPI 1", "KPI 2"]
        }}
        """
    ).strip()
    sections = intro + ["", "", shape, JSON_ONLY]
    return PromptSpec(
        task=f"channel-strategy:{channel.value}",
        system_prompt=_system_prompt(brand),
        user_prompt="\n".join(sections),
        temperature=0.7,
        max_tokens=1500,
    )
