"""Shared fixtures: a scripted completion client and a persona training library."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from copy_studio.config import get_settings
from copy_studio.profiles import PERSONAS
from copy_studio.prompts import PromptSpec
from copy_studio.retry import ResilientInvoker
from copy_studio.schemas import CreativeBriefContext, ProductContext
from copy_studio.storage import TrainingLibrary


PERSONA_MARKDOWN = """\
# The Dedicated Educator

## Gold Nugget Quotes

> "I need makeup that survives a full day of teaching."
> "Too short."
> "My students notice when I look tired, and so do I."
> “I want five minutes in the morning, not twenty-five.”

---

> "This quote sits after the rule and belongs to no section."

## Voice of Customer

> "Finally a concealer that does not crease by lunch."

```markdown
## Not A Heading
```

> "Still part of the voice of customer section."

## Copy Angles by Theme

Intro text before the first theme is ignored.
**Static copy:** "Orphaned copy with no theme."

### Time Is Precious
#### Angle 1: "Five-minute face"
**Static copy:** "Ready before the first bell."
**Static copy:** "Ready before the first bell."

#### Major Theme B: "Confidence"
#### Angle: "Look awake for every class"

### Theme Without Angles

## Jobs To Be Done

### Functional Jobs
1. **Look put-together fast** - mornings are rushed
2. **Last through the day** - no touch-ups

### Emotional Jobs
1. **Feel confident in front of a room** - visible all day

### Social Jobs
1. **Be seen as capable** - by peers and parents

### The Emotional Job This Product Is Doing
She wants to feel like herself, only rested.
**Note:** this line is commentary.

### In One Sentence
**"Makeup for women who are short on time and long on standards."**

### Objections & How to Overcome

| Objection | Response |
|---|---|
| "It's too expensive" | One product replaces three |
| "I don't know how to apply it" | Fingers work; no brushes needed |
"""


SUMMARY_REPLY = json.dumps(
    {
        "keyDifferentiator": "A tinted balm that replaces three products.",
        "primaryBenefit": "Fresh skin in under a minute.",
        "categoryPosition": "Clean, minimal complexion essential.",
    }
)

AUDIENCE_REPLY = json.dumps(
    {
        "universalHooks": ["One swipe. Done.", "Your skin, but better rested."],
        "broadAppealAngles": ["Minimal routine, maximum glow"],
    }
)

CONCEPTS_REPLY = json.dumps(
    {
        "summary": "Lead with speed, close with confidence.",
        "concepts": [
            {
                "name": "Before The Bell",
                "hook": "Ready before the first bell.",
                "hookFormula": "Identity-First",
                "angle": "Five-minute face",
                "targetPersona": "dedicated-educator",
                "formats": ["static", "video"],
            },
            {
                "name": "Everyone Glows",
                "hook": "One swipe. Done.",
                "hookFormula": "direct-benefit",
                "angle": "Minimal routine",
                "targetPersona": "everyone",
                "formats": ["carousel"],
            },
        ],
    }
)

CHANNEL_REPLY = json.dumps(
    {
        "summary": "Announce to loyal customers first.",
        "objectives": ["Drive launch-week revenue"],
        "keyMessages": ["Replaces three products"],
        "tactics": ["Early access email"],
        "kpis": ["Revenue per recipient"],
        "cadence": "3 sends over launch week",
    }
)


def persona_reply(persona_id: str, count: int = 2) -> str:
    payload = {
        "personaId": persona_id,
        "productFit": {
            "relevanceScore": "High",
            "primaryJobsToBeDone": ["Look put-together fast"],
            "emotionalBenefits": ["Feels rested"],
            "functionalBenefits": ["Three products in one"],
        },
        "messagingAngles": [
            {"angle": "Five-minute face", "hookFormula": "Problem-First", "whyItWorks": "Mornings are rushed"}
        ],
        "hookOpportunities": [{"hook": "Ready before the first bell."}],
        "objections": ["Price"],
        "recommendedConceptCount": count,
    }
    return f"Here is the analysis you asked for:\n```json\n{json.dumps(payload)}\n```"


def default_reply(spec: PromptSpec) -> str:
    task = spec.task
    if task.startswith("persona-insight:"):
        return persona_reply(task.split(":", 1)[1])
    if task == "product-summary":
        return SUMMARY_REPLY
    if task == "general-audience":
        return AUDIENCE_REPLY
    if task == "channel-strategy:creative":
        return CONCEPTS_REPLY
    if task.startswith("channel-strategy:"):
        return CHANNEL_REPLY
    raise AssertionError(f"Unexpected task {task}")


class FakeCompletionClient:
    """Completion client scripted per task name.

    An override may be a reply string, an exception instance to raise, a
    callable taking the prompt, or a list consumed one item per call (the
    last item repeats).
    """

    provider = "fake"

    def __init__(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.overrides = dict(overrides or {})
        self.delays = dict(delays or {})
        self.calls: List[PromptSpec] = []

    @property
    def tasks(self) -> List[str]:
        return [spec.task for spec in self.calls]

    def count(self, task: str) -> int:
        return self.tasks.count(task)

    async def complete(self, spec: PromptSpec) -> str:
        self.calls.append(spec)
        delay = self.delays.get(spec.task)
        if delay:
            await asyncio.sleep(delay)
        reply = self.overrides.get(spec.task, default_reply)
        if isinstance(reply, list):
            reply = reply.pop(0) if len(reply) > 1 else reply[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(spec)
        return reply


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Ensure cached settings do not leak between tests."""

    get_settings.cache_clear()


@pytest.fixture
def make_client() -> Callable[..., FakeCompletionClient]:
    return FakeCompletionClient


@pytest.fixture
def fake_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def persona_markdown() -> str:
    return PERSONA_MARKDOWN


@pytest.fixture
def persona_reply_for() -> Callable[..., str]:
    return persona_reply


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def invoker(sleeps: List[float]) -> ResilientInvoker:
    """Invoker that records backoff delays instead of sleeping, with no jitter."""

    async def record(seconds: float) -> None:
        sleeps.append(seconds)

    return ResilientInvoker(sleep=record, jitter=lambda: 0.0)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    personas = tmp_path / "personas"
    personas.mkdir()
    for profile in PERSONAS.values():
        (personas / profile.document).write_text(PERSONA_MARKDOWN, encoding="utf-8")
    return tmp_path


@pytest.fixture
def library(data_dir: Path) -> TrainingLibrary:
    return TrainingLibrary(data_dir)


@pytest.fixture
def pmc() -> ProductContext:
    return ProductContext(
        name="Miracle Balm",
        tagline="The do-everything tinted balm",
        what_it_is="A tinted balm for cheeks, lips and glow.",
        why_we_love_it="It looks like skin.",
        how_its_different="Replaces highlighter, blush and bronzer.",
        who_its_for="Anyone short on time.",
        how_to_use="Warm with fingers and pat on.",
        bobbis_quotes=[{"quote": "Makeup should be easy.", "context": "launch interview"}],
    )


@pytest.fixture
def brief() -> CreativeBriefContext:
    return CreativeBriefContext(
        launch_overview="Spring launch of four new shades.",
        key_benefits=["Fast", "Buildable"],
        consumer_insights={"topDesires": ["Look rested"], "topConcerns": ["Price"]},
        key_differentiator="One product, three jobs.",
        positioning_statement="The minimal routine hero.",
    )
