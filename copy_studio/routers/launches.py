"""Launch endpoints: persisted state and the creative phase workflow."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends

from ..dependencies import get_generating_workflow, get_launch_store, get_workflow
from ..schemas import (
    ChannelStrategies,
    CreativeStrategy,
    DeliverablesRequest,
    GenerateStrategiesRequest,
    GTMLaunch,
    LaunchCreateRequest,
    PhaseReport,
    RefineResearchRequest,
    ResearchResponse,
)
from ..storage import LaunchStore
from ..workflow import LaunchWorkflow


router = APIRouter(prefix="/launches", tags=["launches"])


@router.get("", response_model=List[GTMLaunch])
async def list_launches(workflow: LaunchWorkflow = Depends(get_workflow)) -> List[GTMLaunch]:
    return workflow.list()


@router.post("", response_model=GTMLaunch, status_code=201)
async def create_launch(payload: LaunchCreateRequest, store: LaunchStore = Depends(get_launch_store)) -> GTMLaunch:
    return store.create(payload)


@router.get("/{launch_id}", response_model=GTMLaunch)
async def fetch_launch(launch_id: str, workflow: LaunchWorkflow = Depends(get_workflow)) -> GTMLaunch:
    return workflow.get(launch_id)


@router.put("/{launch_id}", response_model=GTMLaunch)
async def save_launch(
    launch_id: str,
    updates: Dict[str, Any] = Body(...),
    workflow: LaunchWorkflow = Depends(get_workflow),
) -> GTMLaunch:
    """Shallow-merge the supplied top-level fields into the stored launch."""

    return workflow.save(launch_id, updates)


@router.post("/{launch_id}/strategies", response_model=ChannelStrategies, response_model_exclude_none=True)
async def generate_strategies(
    launch_id: str,
    payload: GenerateStrategiesRequest,
    workflow: LaunchWorkflow = Depends(get_generating_workflow),
) -> ChannelStrategies:
    return await workflow.generate_strategies(launch_id, payload.channels)


@router.post("/{launch_id}/strategies/approve", response_model=GTMLaunch)
async def approve_strategies(launch_id: str, workflow: LaunchWorkflow = Depends(get_workflow)) -> GTMLaunch:
    return workflow.approve_strategies(launch_id)


@router.post("/{launch_id}/research", response_model=ResearchResponse)
async def generate_research(
    launch_id: str,
    payload: Optional[RefineResearchRequest] = None,
    workflow: LaunchWorkflow = Depends(get_generating_workflow),
) -> ResearchResponse:
    """Generate, or regenerate with refinement notes, the creative research."""

    notes = payload.refinement_notes if payload else None
    return ResearchResponse(research=await workflow.generate_research(launch_id, notes))


@router.post("/{launch_id}/research/approve", response_model=CreativeStrategy)
async def approve_research(launch_id: str, workflow: LaunchWorkflow = Depends(get_workflow)) -> CreativeStrategy:
    return workflow.approve_research(launch_id)


@router.post("/{launch_id}/concepts", response_model=CreativeStrategy)
async def generate_concepts(
    launch_id: str,
    workflow: LaunchWorkflow = Depends(get_generating_workflow),
) -> CreativeStrategy:
    return await workflow.approve_strategy_and_generate_concepts(launch_id)


@router.post("/{launch_id}/deliverables", response_model=GTMLaunch)
async def store_deliverables(
    launch_id: str,
    payload: DeliverablesRequest,
    workflow: LaunchWorkflow = Depends(get_workflow),
) -> GTMLaunch:
    return workflow.complete(launch_id, payload.channel_deliverables)


@router.get("/{launch_id}/creative/phases", response_model=List[PhaseReport])
async def creative_phases(launch_id: str, workflow: LaunchWorkflow = Depends(get_workflow)) -> List[PhaseReport]:
    return workflow.phase_report(launch_id)
