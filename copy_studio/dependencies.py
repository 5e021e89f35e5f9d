"""FastAPI dependency providers.

Everything is built from the :class:`Settings` stored on ``app.state`` so
tests can swap any piece with ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from .config import Settings
from .llm import CompletionClient, build_completion_client
from .research import ResearchGenerator
from .storage import LaunchStore, ProductCatalog, TrainingLibrary
from .strategy import StrategyGenerator
from .workflow import LaunchWorkflow


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_completion_client(settings: Settings = Depends(get_app_settings)) -> CompletionClient:
    """Client for the primary provider; 503 when no credential is configured."""

    return build_completion_client(settings)


def get_training_library(settings: Settings = Depends(get_app_settings)) -> TrainingLibrary:
    return TrainingLibrary(settings.data_dir)


def get_launch_store(settings: Settings = Depends(get_app_settings)) -> LaunchStore:
    return LaunchStore(settings.data_dir / "launches")


def get_product_catalog(settings: Settings = Depends(get_app_settings)) -> ProductCatalog:
    return ProductCatalog(settings.data_dir / "products" / "products.json")


def get_research_generator(
    client: CompletionClient = Depends(get_completion_client),
    library: TrainingLibrary = Depends(get_training_library),
    settings: Settings = Depends(get_app_settings),
) -> ResearchGenerator:
    return ResearchGenerator(client, library, brand=settings.brand_name)


def get_strategy_generator(
    client: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_app_settings),
) -> StrategyGenerator:
    return StrategyGenerator(client, brand=settings.brand_name)


def get_workflow(store: LaunchStore = Depends(get_launch_store)) -> LaunchWorkflow:
    """Workflow for reads and state transitions that never call the provider."""

    return LaunchWorkflow(store)


def get_generating_workflow(
    store: LaunchStore = Depends(get_launch_store),
    research_generator: ResearchGenerator = Depends(get_research_generator),
    strategy_generator: StrategyGenerator = Depends(get_strategy_generator),
) -> LaunchWorkflow:
    return LaunchWorkflow(
        store,
        research_generator=research_generator,
        strategy_generator=strategy_generator,
    )
