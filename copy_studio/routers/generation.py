"""Stateless generation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import get_research_generator, get_strategy_generator
from ..research import ResearchGenerator
from ..schemas import ResearchRequest, ResearchResponse, StrategyRequest, StrategyResponse
from ..strategy import StrategyGenerator


router = APIRouter(tags=["generation"])


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}


@router.post("/research", response_model=ResearchResponse)
async def generate_research(
    payload: ResearchRequest,
    generator: ResearchGenerator = Depends(get_research_generator),
) -> ResearchResponse:
    """Generate creative research (persona insights plus summaries) for a launch."""

    return ResearchResponse(research=await generator.generate(payload))


@router.post("/strategy", response_model=StrategyResponse, response_model_exclude_none=True)
async def generate_strategy(
    payload: StrategyRequest,
    generator: StrategyGenerator = Depends(get_strategy_generator),
) -> StrategyResponse:
    """Generate one strategy per selected channel; failed channels are omitted."""

    return StrategyResponse(channel_strategies=await generator.generate(payload))
