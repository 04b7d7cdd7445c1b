from __future__ import annotations

import pytest

from mission_sim.domain.types import AgentRank
from mission_sim.store.sql import create_sql_stores
from mission_sim.systems.progression import level_for_experience, next_rank_requirement, rank_for
from tests.helpers.factories import DURATION_MS, make_engine, seed_agent


@pytest.mark.parametrize(
    ("experience", "level"),
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (10_000, 11)],
)
def test_level_curve(experience: int, level: int) -> None:
    assert level_for_experience(experience) == level


@pytest.mark.parametrize(
    ("points", "missions", "influence", "rank"),
    [
        (0, 0, 0, AgentRank.RECRUIT),
        (499, 5, 0, AgentRank.RECRUIT),
        (500, 4, 0, AgentRank.RECRUIT),
        (500, 5, 0, AgentRank.OPERATIVE),
        (2_000, 20, 9, AgentRank.OPERATIVE),
        (2_000, 20, 10, AgentRank.SPECIALIST),
        (5_000, 50, 25, AgentRank.COMMANDER),
        (10_000, 99, 50, AgentRank.COMMANDER),
        (10_000, 100, 50, AgentRank.LEGEND),
        (50_000, 0, 500, AgentRank.RECRUIT),
    ],
)
def test_rank_ladder_gates_every_axis(points: int, missions: int, influence: int, rank: AgentRank) -> None:
    assert rank_for(points, missions, influence) == rank


def test_next_rank_requirement() -> None:
    operative = next_rank_requirement(AgentRank.RECRUIT)
    assert operative is not None
    assert (operative.rank, operative.timeline_points, operative.missions_succeeded) == (
        AgentRank.OPERATIVE,
        500,
        5,
    )
    assert next_rank_requirement(AgentRank.COMMANDER).influence == 50
    assert next_rank_requirement(AgentRank.LEGEND) is None


def test_first_success_granted_once() -> None:
    engine = make_engine(daily_cap=5)
    units = seed_agent(engine, units=2)
    for unit in units:
        created = engine.deploy_mission("scenario_001", unit, "certain", "agent-1")
        engine.clock.advance(ms=DURATION_MS)
        engine.get_deployment_status(created.deployment_id)

    agent = engine.get_agent("agent-1")
    assert agent.missions_succeeded == 2
    assert agent.achievements.count("first_success") == 1
    assert agent.achievements.count("mission_success") == 1
    assert len(agent.lore_fragments) == 2
    assert agent.timeline_points == 200
    assert agent.rank == AgentRank.RECRUIT


def _run_success_and_failure(engine) -> list[int]:
    units = seed_agent(engine, units=2)
    shifts = []
    for unit, approach in zip(units, ["certain", "doomed"]):
        created = engine.deploy_mission("scenario_001", unit, approach, "agent-1")
        engine.clock.advance(ms=DURATION_MS)
        snapshot = engine.get_deployment_status(created.deployment_id)
        shifts.append(snapshot.result.timeline_shift)
    return shifts


def test_rewards_count_every_finished_deployment() -> None:
    engine = make_engine(daily_cap=5)
    _run_success_and_failure(engine)

    agent = engine.get_agent("agent-1")
    assert agent.missions_deployed == 2
    assert (agent.missions_succeeded, agent.missions_failed) == (1, 1)


def test_abandoned_deployment_is_not_counted() -> None:
    engine = make_engine()
    (unit,) = seed_agent(engine)
    created = engine.deploy_mission("scenario_001", unit, "certain", "agent-1")
    engine.abandon_deployment(created.deployment_id)

    agent = engine.get_agent("agent-1")
    assert agent.missions_deployed == 0
    assert agent.total_timeline_shift == 0


def test_timeline_shift_accumulates_across_outcomes() -> None:
    engine = make_engine(daily_cap=5)
    shifts = _run_success_and_failure(engine)

    # success shifts land in [6, 8], failure shifts in [2, 3]
    assert 6 <= shifts[0] <= 8
    assert 2 <= shifts[1] <= 3
    assert engine.get_agent("agent-1").total_timeline_shift == sum(shifts)


def test_sql_store_persists_progress_totals() -> None:
    deployments, agents = create_sql_stores("sqlite://")
    engine = make_engine(daily_cap=5, deployments=deployments, agents=agents)
    shifts = _run_success_and_failure(engine)

    agent = engine.get_agent("agent-1")
    assert agent.missions_deployed == 2
    assert agent.total_timeline_shift == sum(shifts)
    assert agent.rank == AgentRank.RECRUIT
