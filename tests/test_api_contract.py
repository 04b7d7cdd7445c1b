from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mission_sim.config import Settings, get_settings
from mission_sim.web.main import create_app
from mission_sim.web.runtime import get_engine
from tests.helpers.factories import DURATION_MS, make_engine

ADMIN = {"Authorization": "Bearer sekrit"}


@pytest.fixture()
def engine():
    return make_engine(daily_cap=3)


@pytest.fixture()
def client(engine):
    app = create_app()
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_settings] = lambda: Settings(admin_token="sekrit")
    return TestClient(app)


def _register(client: TestClient, agent_id: str = "agent-1", unit_id: str = "unit-1") -> None:
    res = client.post("/api/agents", json={"agentId": agent_id, "codename": "Nova"})
    assert res.status_code == 201
    res = client.post(
        f"/api/agents/{agent_id}/proxim8s",
        json={"proxim8Id": unit_id, "name": "Echo", "personality": "analytical"},
    )
    assert res.status_code == 201


def _deploy(client: TestClient, approach: str = "medium", unit_id: str = "unit-1"):
    return client.post(
        "/api/missions/scenario_001/deploy",
        json={"agentId": "agent-1", "proxim8Id": unit_id, "approach": approach},
    )


def test_health_and_catalog(client: TestClient) -> None:
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "missions": 2}

    res = client.get("/api/missions")
    assert res.status_code == 200
    missions = res.json()["missions"]
    assert [m["missionId"] for m in missions] == ["scenario_001", "scenario_002"]
    medium = next(a for a in missions[0]["approaches"] if a["type"] == "medium")
    assert medium["successRate"] == {"min": 0.5, "max": 0.7}
    assert medium["durationMs"] == DURATION_MS
    assert [p["durationPercent"] for p in missions[0]["phases"]] == [25, 50, 25]

    assert client.get("/api/missions/scenario_002").json()["sequence"] == 2
    res = client.get("/api/missions/unknown")
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "mission_not_found"


def test_deploy_and_poll_to_completion(client: TestClient, engine) -> None:
    _register(client)
    res = _deploy(client)
    assert res.status_code == 201
    body = res.json()
    assert body["finalSuccessRate"] == pytest.approx(0.75)
    assert body["status"] == "active"
    deployment_id = body["deploymentId"]

    engine.clock.advance(ms=80_000)
    status = client.get(f"/api/deployments/{deployment_id}/status").json()
    assert status["currentPhase"] == 1
    assert status["stage"] == "active"
    assert status["progressPercent"] == pytest.approx(26.67)
    assert [p["status"] for p in status["phases"]] == ["success", "active", "pending"]
    assert status["result"] is None

    engine.clock.advance(ms=DURATION_MS)
    first = client.get(f"/api/deployments/{deployment_id}/status")
    second = client.get(f"/api/deployments/{deployment_id}/status")
    assert first.content == second.content
    final = first.json()
    assert final["stage"] == "complete"
    assert final["progressPercent"] == 100.0
    assert final["timeRemainingMs"] == 0
    assert set(final["result"]) == {"overallSuccess", "finalNarrative", "timelineShift", "rewards"}

    agent = client.get("/api/agents/agent-1").json()
    assert agent["proxim8s"][0]["isDeployed"] is False
    assert agent["missionsSucceeded"] + agent["missionsFailed"] == 1


@pytest.mark.parametrize(
    ("payload", "status", "code"),
    [
        ({"agentId": "agent-1", "proxim8Id": "unit-1", "approach": "sideways"}, 400, "invalid_approach"),
        ({"agentId": "ghost", "proxim8Id": "unit-1", "approach": "medium"}, 404, "agent_not_found"),
        ({"agentId": "agent-1", "proxim8Id": "nope", "approach": "medium"}, 404, "proxim8_not_found"),
    ],
)
def test_deploy_errors(client: TestClient, payload: dict, status: int, code: str) -> None:
    _register(client)
    res = client.post("/api/missions/scenario_001/deploy", json=payload)
    assert res.status_code == status
    assert res.json()["detail"]["code"] == code


def test_deploy_locked_busy_and_capped(client: TestClient) -> None:
    _register(client)
    for index in range(2, 5):
        client.post(
            "/api/agents/agent-1/proxim8s",
            json={"proxim8Id": f"unit-{index}", "name": f"Echo-{index}", "personality": "ANALYTICAL"},
        )

    res = client.post(
        "/api/missions/scenario_002/deploy",
        json={"agentId": "agent-1", "proxim8Id": "unit-1", "approach": "medium"},
    )
    assert res.status_code == 403

    assert _deploy(client).status_code == 201
    assert _deploy(client).status_code == 409
    assert _deploy(client, unit_id="unit-2").status_code == 201
    assert _deploy(client, unit_id="unit-3").status_code == 201
    res = _deploy(client, unit_id="unit-4")
    assert res.status_code == 429
    assert res.json()["detail"]["code"] == "daily_limit_reached"


def test_missing_body_fields_are_validation_errors(client: TestClient) -> None:
    res = client.post("/api/missions/scenario_001/deploy", json={"agentId": "agent-1"})
    assert res.status_code == 422


def test_unknown_deployment_status(client: TestClient) -> None:
    res = client.get("/api/deployments/missing/status")
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "deployment_not_found"


def test_admin_abandon_requires_token(client: TestClient) -> None:
    _register(client)
    deployment_id = _deploy(client).json()["deploymentId"]

    assert client.post(f"/api/admin/deployments/{deployment_id}/abandon").status_code == 401
    res = client.post(
        f"/api/admin/deployments/{deployment_id}/abandon", headers={"Authorization": "Bearer wrong"}
    )
    assert res.status_code == 401

    res = client.post(f"/api/admin/deployments/{deployment_id}/abandon", headers=ADMIN)
    assert res.status_code == 200
    assert res.json()["status"] == "abandoned"

    res = client.post(f"/api/admin/deployments/{deployment_id}/abandon", headers=ADMIN)
    assert res.status_code == 409
    assert res.json()["detail"]["code"] == "deployment_not_active"


def test_admin_disabled_without_configured_token(engine) -> None:
    app = create_app()
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_settings] = lambda: Settings(admin_token=None)
    client = TestClient(app)
    res = client.post("/api/admin/deployments/any/abandon", headers=ADMIN)
    assert res.status_code == 403


def test_agent_endpoints(client: TestClient) -> None:
    _register(client)
    assert client.post("/api/agents", json={"agentId": "agent-1"}).status_code == 409
    res = client.post(
        "/api/agents/ghost/proxim8s",
        json={"proxim8Id": "unit-9", "name": "Lost", "personality": "ANALYTICAL"},
    )
    assert res.status_code == 404

    agent = client.get("/api/agents/agent-1").json()
    assert agent["rank"] == "recruit"
    assert agent["nextRank"] == {
        "rank": "operative",
        "timelinePoints": 500,
        "missionsSucceeded": 5,
        "influence": 0,
    }
    assert agent["missionsDeployed"] == 0
    assert agent["totalTimelineShift"] == 0
    assert agent["proxim8s"][0]["personality"] == "ANALYTICAL"
    assert client.get("/api/agents/ghost").status_code == 404

    missions = client.get("/api/agents/agent-1/missions").json()
    assert missions["agentId"] == "agent-1"
    assert [(m["missionId"], m["unlocked"]) for m in missions["missions"]] == [
        ("scenario_001", True),
        ("scenario_002", False),
    ]
