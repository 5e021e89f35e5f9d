from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from copy_studio.app import create_app
from copy_studio.config import Settings
from copy_studio.dependencies import get_completion_client, get_research_generator
from copy_studio.exceptions import ProviderCallFailure
from copy_studio.research import ResearchGenerator
from copy_studio.schemas import PersonaId
from copy_studio.storage import TrainingLibrary


def _research_payload() -> dict[str, object]:
    return {
        "tier": "tier-2",
        "productName": "Miracle Balm",
        "pmc": {"name": "Miracle Balm", "tagline": "The do-everything tinted balm"},
        "creativeBrief": {"launchOverview": "Spring launch", "keyBenefits": ["Fast"]},
    }


def _launch_payload() -> dict[str, object]:
    return {
        "name": "Spring Launch",
        "product": "Miracle Balm",
        "tier": "tier-2",
        "pmc": {"tagline": "The do-everything tinted balm"},
        "creativeBrief": {"launchOverview": "Spring launch"},
        "selectedChannels": ["email", "sms"],
    }


def _client_for(data_dir: Path, completion_client=None) -> TestClient:
    app = create_app(Settings(data_dir=data_dir, json_logs=False))
    if completion_client is not None:
        app.dependency_overrides[get_completion_client] = lambda: completion_client
    return TestClient(app)


@pytest.fixture
def client(data_dir: Path, fake_client) -> TestClient:
    return _client_for(data_dir, fake_client)


@pytest.fixture
def unconfigured_client(data_dir: Path) -> TestClient:
    return _client_for(data_dir)


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_research_returns_camel_case_document(client: TestClient) -> None:
    response = client.post("/research", json=_research_payload())

    assert response.status_code == 200
    research = response.json()["research"]
    assert research["status"] == "draft"
    assert research["recommendedTotalConcepts"] == 12
    assert [item["personaId"] for item in research["personaInsights"]] == [persona.value for persona in PersonaId]
    assert research["productSummary"]["keyDifferentiator"]


def test_validation_errors_are_400(client: TestClient) -> None:
    response = client.post("/research", json={"tier": "tier-2"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_missing_credentials_are_503(unconfigured_client: TestClient) -> None:
    response = unconfigured_client.post("/research", json=_research_payload())

    assert response.status_code == 503
    assert response.json() == {"error": "LLM provider API key not configured"}


def test_summary_failure_is_500(data_dir: Path, make_client) -> None:
    client = _client_for(data_dir, make_client({"product-summary": ProviderCallFailure("rate limited")}))

    response = client.post("/research", json=_research_payload())

    assert response.status_code == 500
    assert response.json()["error"].startswith("Failed to generate research")


def test_strategy_migrates_legacy_channels(client: TestClient) -> None:
    payload = {**_research_payload(), "channels": ["email", "sms"]}

    response = client.post("/strategy", json=payload)

    assert response.status_code == 200
    strategies = response.json()["channelStrategies"]
    assert list(strategies) == ["retention"]
    assert strategies["retention"]["keyMessages"] == ["Replaces three products"]


def test_strategy_requires_channels(client: TestClient) -> None:
    response = client.post("/strategy", json={**_research_payload(), "channels": []})

    assert response.status_code == 400


def test_unknown_launch_is_404(client: TestClient) -> None:
    response = client.get("/launches/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Launch 'nope' not found"}


def test_launch_creative_workflow(client: TestClient) -> None:
    created = client.post("/launches", json=_launch_payload())
    assert created.status_code == 201
    launch = created.json()
    assert launch["selectedChannels"] == ["retention"]
    launch_id = launch["id"]

    renamed = client.put(f"/launches/{launch_id}", json={"name": "Spring Hero Launch"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Spring Hero Launch"
    assert renamed.json()["pmc"]["tagline"] == "The do-everything tinted balm"

    gated = client.post(f"/launches/{launch_id}/concepts")
    assert gated.status_code == 409

    research = client.post(f"/launches/{launch_id}/research", json={"refinementNotes": "Lean into speed."})
    assert research.status_code == 200
    assert research.json()["research"]["refinementNotes"] == "Lean into speed."

    approved = client.post(f"/launches/{launch_id}/research/approve")
    assert approved.status_code == 200
    assert approved.json()["currentPhase"] == "strategy"

    concepts = client.post(f"/launches/{launch_id}/concepts")
    assert concepts.status_code == 200
    assert [concept["id"] for concept in concepts.json()["concepts"]] == ["concept-1", "concept-2"]

    phases = client.get(f"/launches/{launch_id}/creative/phases").json()
    assert [(item["phase"], item["status"]) for item in phases] == [
        ("research", "complete"),
        ("strategy", "complete"),
        ("concepts", "current"),
    ]

    too_late = client.post(f"/launches/{launch_id}/research")
    assert too_late.status_code == 409


def test_launch_strategy_approval_and_deliverables(client: TestClient) -> None:
    launch_id = client.post("/launches", json=_launch_payload()).json()["id"]

    early = client.post(f"/launches/{launch_id}/deliverables", json={"channelDeliverables": {"retention": []}})
    assert early.status_code == 409

    strategies = client.post(f"/launches/{launch_id}/strategies", json={"channels": ["retention", "web"]})
    assert strategies.status_code == 200
    assert set(strategies.json()) == {"retention", "ecom"}

    approved = client.post(f"/launches/{launch_id}/strategies/approve")
    assert approved.status_code == 200
    assert approved.json()["status"] == "generating"

    done = client.post(
        f"/launches/{launch_id}/deliverables",
        json={"channelDeliverables": {"retention": ["Email 1", "Email 2"]}},
    )
    assert done.status_code == 200
    assert done.json()["status"] == "complete"
    assert [item["id"] for item in client.get("/launches").json()] == [launch_id]


def test_products_crud(client: TestClient) -> None:
    saved = client.post("/products", json={"name": "Miracle Balm", "keyBenefits": ["Glow"]})
    assert saved.status_code == 200
    assert saved.json() == {
        "success": True,
        "product": {
            "id": "miracle-balm",
            "name": "Miracle Balm",
            "category": "",
            "price": "",
            "description": "",
            "keyBenefits": ["Glow"],
            "shades": "",
            "bestFor": "",
        },
    }

    assert [item["id"] for item in client.get("/products").json()] == ["miracle-balm"]

    assert client.request("DELETE", "/products", json={"id": "ghost"}).status_code == 404
    assert client.request("DELETE", "/products", json={}).status_code == 400
    assert client.request("DELETE", "/products", json={"id": "miracle-balm"}).json() == {"success": True}
    assert client.get("/products").json() == []


def test_training_documents(client: TestClient) -> None:
    saved = client.post("/training-documents", json={"path": "brand/voice.md", "content": "Warm and direct."})
    assert saved.status_code == 200

    listing = client.get("/training-documents", params={"category": "brand"}).json()
    assert listing == [{"name": "voice.md", "path": "brand/voice.md", "category": "brand"}]

    document = client.get("/training-documents", params={"path": "brand/voice.md"})
    assert document.json() == {"path": "brand/voice.md", "content": "Warm and direct."}

    assert client.get("/training-documents", params={"path": "brand/missing.md"}).status_code == 404
    bad = client.post("/training-documents", json={"path": "secrets/keys.md", "content": "x"})
    assert bad.status_code == 400


def test_research_survives_failing_personas(data_dir: Path, make_client, invoker) -> None:
    completion_client = make_client(
        {
            "persona-insight:ageless-matriarch": ProviderCallFailure("upstream 500"),
            "persona-insight:creative-entrepreneur": ProviderCallFailure("upstream 500"),
        }
    )
    client = _client_for(data_dir, completion_client)
    client.app.dependency_overrides[get_research_generator] = lambda: ResearchGenerator(
        completion_client, TrainingLibrary(data_dir), invoker=invoker
    )

    response = client.post("/research", json=_research_payload())

    assert response.status_code == 200
    insights = response.json()["research"]["personaInsights"]
    assert [item["personaId"] for item in insights] == [
        "dedicated-educator",
        "high-powered-executive",
        "wellness-healthcare-practitioner",
        "busy-suburban-supermom",
    ]
    assert response.json()["research"]["recommendedTotalConcepts"] == 8


def test_corrupt_launch_returns_error_body(data_dir: Path, client: TestClient) -> None:
    launches = data_dir / "launches"
    launches.mkdir()
    (launches / "broken.json").write_text("not json", encoding="utf-8")

    response = client.get("/launches/broken")

    assert response.status_code == 500
    assert response.json() == {"error": "Launch 'broken' could not be read: stored document is not a valid launch"}
