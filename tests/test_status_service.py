from __future__ import annotations

from datetime import timedelta

import pytest

from mission_sim.domain.errors import AgentNotFoundError, DeploymentNotActiveError, DeploymentNotFoundError
from mission_sim.domain.types import DeploymentStatus, PhaseStatus
from mission_sim.engine import MissionEngine
from mission_sim.rules.catalog import MissionCatalog
from mission_sim.systems.status import advance_phases
from mission_sim.web.api import mappers
from tests.helpers.factories import DURATION_MS, START, make_catalog, make_engine, scenario_missions, seed_agent
from tests.helpers.invariants import assert_outcomes_prefix, assert_snapshot_shape


def _deploy(engine: MissionEngine, approach: str = "medium") -> str:
    (unit,) = seed_agent(engine)
    return engine.deploy_mission("scenario_001", unit, approach, "agent-1").deployment_id


def test_snapshot_at_deploy_time() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    snapshot = engine.get_deployment_status(deployment_id)

    assert_snapshot_shape(snapshot)
    assert snapshot.progress_percent == 0.0
    assert snapshot.current_phase == 0
    assert snapshot.total_phases == 3
    assert [p.status for p in snapshot.phases] == [PhaseStatus.ACTIVE, PhaseStatus.PENDING, PhaseStatus.PENDING]
    assert snapshot.time_remaining_ms == DURATION_MS
    assert snapshot.stage == "active"
    assert snapshot.result is None


def test_scenario_at_80_seconds() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=80_000)
    snapshot = engine.get_deployment_status(deployment_id)

    assert snapshot.current_phase == 1
    assert snapshot.progress_percent == pytest.approx(26.67)
    assert snapshot.final_success_rate == pytest.approx(0.75)
    assert snapshot.phases[0].status == PhaseStatus.SUCCESS
    assert snapshot.phases[0].completed_at == START + timedelta(milliseconds=80_000)
    assert snapshot.phases[1].status == PhaseStatus.ACTIVE
    assert snapshot.time_remaining_ms == DURATION_MS - 80_000
    assert engine.deployments.get(deployment_id).current_phase == 1


def test_snapshot_at_completion() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=DURATION_MS)
    snapshot = engine.get_deployment_status(deployment_id)

    assert_snapshot_shape(snapshot)
    assert snapshot.progress_percent == 100.0
    assert snapshot.current_phase == 3
    assert all(p.status in (PhaseStatus.SUCCESS, PhaseStatus.FAILURE) for p in snapshot.phases)
    assert snapshot.result is not None
    assert snapshot.stage == "complete"
    assert snapshot.time_remaining_ms == 0


def test_late_first_poll_resolves_everything_at_once() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=DURATION_MS * 10)
    snapshot = engine.get_deployment_status(deployment_id)
    assert snapshot.current_phase == 3
    assert {p.completed_at for p in snapshot.phases} == {engine.clock()}


def test_terminal_snapshots_are_identical() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=DURATION_MS + 1_000)
    first = engine.get_deployment_status(deployment_id)
    second = engine.get_deployment_status(deployment_id)
    assert first == second
    assert mappers.build_status(first).model_dump_json(by_alias=True) == mappers.build_status(
        second
    ).model_dump_json(by_alias=True)
    assert engine.rewards.calls == [deployment_id]


def test_phases_never_rewritten_across_polls() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    previous = engine.deployments.get(deployment_id)
    for step in (10_000, 70_000, 5_000, 150_000, 1, 100_000):
        engine.clock.advance(ms=step)
        engine.get_deployment_status(deployment_id)
        current = engine.deployments.get(deployment_id)
        assert_outcomes_prefix(previous, current)
        previous = current


def test_backwards_clock_keeps_stored_progress() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=80_000)
    engine.get_deployment_status(deployment_id)

    engine.clock.set(START - timedelta(seconds=30))
    snapshot = engine.get_deployment_status(deployment_id)
    assert snapshot.progress_percent == 0.0
    assert snapshot.current_phase == 1
    assert snapshot.time_remaining_ms == DURATION_MS


def test_stale_append_loser_rereads() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    stale = engine.deployments.get(deployment_id)
    engine.clock.advance(ms=80_000)
    engine.get_deployment_status(deployment_id)
    stored = engine.deployments.get(deployment_id)

    engine.clock.advance(ms=1_000)
    template = make_catalog().get("scenario_001")
    result = advance_phases(engine.deployments, stale, template, engine.clock())
    assert result.phase_outcomes == stored.phase_outcomes
    assert engine.deployments.get(deployment_id).phase_outcomes == stored.phase_outcomes


def test_unknown_deployment() -> None:
    engine = make_engine()
    with pytest.raises(DeploymentNotFoundError):
        engine.get_deployment_status("missing")


def test_missing_template_degrades_to_stored_state(caplog: pytest.LogCaptureFixture) -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=80_000)
    engine.get_deployment_status(deployment_id)

    engine.catalog = MissionCatalog.from_data([scenario_missions()[1]])
    engine.clock.advance(ms=DURATION_MS)
    snapshot = engine.get_deployment_status(deployment_id)
    assert snapshot.status == DeploymentStatus.ACTIVE
    assert snapshot.current_phase == 1
    assert snapshot.total_phases == 1
    assert snapshot.result is None
    assert "missing mission" in caplog.text


def test_abandon_freezes_progress_and_releases_unit() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=150_000)
    abandoned = engine.abandon_deployment(deployment_id)
    assert abandoned.status == DeploymentStatus.ABANDONED
    assert abandoned.abandoned_at == engine.clock()
    assert engine.get_agent("agent-1").proxim8s[abandoned.proxim8_id].is_deployed is False

    engine.clock.advance(ms=DURATION_MS)
    snapshot = engine.get_deployment_status(deployment_id)
    assert snapshot.stage == "complete"
    assert snapshot.progress_percent == 50.0
    assert snapshot.result is None
    assert snapshot.current_phase == 0
    assert all(p.status == PhaseStatus.PENDING for p in snapshot.phases)
    assert engine.rewards.calls == []


def test_abandon_terminal_deployment_rejected() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.clock.advance(ms=DURATION_MS)
    engine.get_deployment_status(deployment_id)
    with pytest.raises(DeploymentNotActiveError):
        engine.abandon_deployment(deployment_id)
    with pytest.raises(DeploymentNotFoundError):
        engine.abandon_deployment("missing")


def test_abandon_twice_rejected() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine)
    engine.abandon_deployment(deployment_id)
    with pytest.raises(DeploymentNotActiveError) as excinfo:
        engine.abandon_deployment(deployment_id)
    assert excinfo.value.status == "abandoned"


def test_mission_availability() -> None:
    engine = make_engine()
    deployment_id = _deploy(engine, approach="certain")
    missions = engine.list_missions_for_agent("agent-1")
    assert [(m.mission_id, m.unlocked, m.completed) for m in missions] == [
        ("scenario_001", True, False),
        ("scenario_002", False, False),
    ]
    assert missions[0].active_deployment_id == deployment_id

    engine.clock.advance(ms=DURATION_MS)
    engine.get_deployment_status(deployment_id)
    missions = engine.list_missions_for_agent("agent-1")
    assert [(m.unlocked, m.completed) for m in missions] == [(True, True), (True, False)]
    assert missions[0].active_deployment_id is None

    with pytest.raises(AgentNotFoundError):
        engine.list_missions_for_agent("ghost")
