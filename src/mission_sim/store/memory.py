"""Process-local stores guarded by a lock.

Reads hand out copies so callers can never mutate stored state in place.
"""

from __future__ import annotations

import threading
from datetime import date, datetime

from mission_sim.domain.agents import Agent, Proxim8
from mission_sim.domain.deployment import Deployment, MissionResult, PhaseOutcome
from mission_sim.domain.errors import AgentExistsError, AgentNotFoundError, Proxim8ExistsError
from mission_sim.domain.types import DeploymentStatus
from mission_sim.systems.progression import level_for_experience, rank_for


class MemoryDeploymentStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._deployments: dict[str, Deployment] = {}

    def create(self, deployment: Deployment) -> None:
        with self._lock:
            if deployment.deployment_id in self._deployments:
                raise ValueError(f"Duplicate deployment id: {deployment.deployment_id}")
            self._deployments[deployment.deployment_id] = deployment.copy()

    def get(self, deployment_id: str) -> Deployment | None:
        with self._lock:
            stored = self._deployments.get(deployment_id)
            return stored.copy() if stored is not None else None

    def list_for_agent(self, agent_id: str) -> list[Deployment]:
        with self._lock:
            found = [d.copy() for d in self._deployments.values() if d.agent_id == agent_id]
        return sorted(found, key=lambda d: d.deployed_at)

    def record_roll(self, deployment_id: str, overall_success: bool) -> bool:
        with self._lock:
            stored = self._require(deployment_id)
            if stored.overall_success is None:
                stored.overall_success = overall_success
            return stored.overall_success

    def append_phase_outcomes(
        self, deployment_id: str, expected_phase: int, outcomes: list[PhaseOutcome]
    ) -> bool:
        with self._lock:
            stored = self._require(deployment_id)
            if stored.status != DeploymentStatus.ACTIVE or stored.current_phase != expected_phase:
                return False
            stored.phase_outcomes.extend(outcomes)
            stored.current_phase = len(stored.phase_outcomes)
            return True

    def finalize(self, deployment_id: str, status: DeploymentStatus, result: MissionResult) -> bool:
        with self._lock:
            stored = self._require(deployment_id)
            if stored.result is not None or stored.status != DeploymentStatus.ACTIVE:
                return False
            stored.status = status
            stored.result = result
            stored.overall_success = result.overall_success
            return True

    def abandon(self, deployment_id: str, at: datetime) -> bool:
        with self._lock:
            stored = self._require(deployment_id)
            if stored.status != DeploymentStatus.ACTIVE:
                return False
            stored.status = DeploymentStatus.ABANDONED
            stored.abandoned_at = at
            return True

    def _require(self, deployment_id: str) -> Deployment:
        stored = self._deployments.get(deployment_id)
        if stored is None:
            raise KeyError(deployment_id)
        return stored


class MemoryAgentStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._agents: dict[str, Agent] = {}

    def add_agent(self, agent: Agent) -> None:
        with self._lock:
            if agent.agent_id in self._agents:
                raise AgentExistsError(agent.agent_id)
            self._agents[agent.agent_id] = agent.copy()

    def add_proxim8(self, agent_id: str, proxim8: Proxim8) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise AgentNotFoundError(agent_id)
            if any(proxim8.proxim8_id in a.proxim8s for a in self._agents.values()):
                raise Proxim8ExistsError(proxim8.proxim8_id)
            agent.proxim8s[proxim8.proxim8_id] = Proxim8(
                proxim8_id=proxim8.proxim8_id,
                name=proxim8.name,
                personality=proxim8.personality,
                level=proxim8.level,
                experience=proxim8.experience,
                mission_count=proxim8.mission_count,
            )

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._lock:
            agent = self._agents.get(agent_id)
            return agent.copy() if agent is not None else None

    def check_and_reserve_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool:
        with self._lock:
            unit = self._unit(agent_id, proxim8_id)
            if unit is None or unit.is_deployed:
                return False
            unit.is_deployed = True
            unit.current_deployment_id = deployment_id
            return True

    def release_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool:
        with self._lock:
            unit = self._unit(agent_id, proxim8_id)
            if unit is None or not unit.is_deployed or unit.current_deployment_id != deployment_id:
                return False
            unit.is_deployed = False
            unit.current_deployment_id = None
            return True

    def check_and_increment_daily_count(self, agent_id: str, today: date, cap: int) -> bool:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return False
            if agent.last_deployment_date != today:
                agent.daily_deployments = 0
                agent.last_deployment_date = today
            if agent.daily_deployments >= cap:
                return False
            agent.daily_deployments += 1
            return True

    def apply_rewards(
        self,
        agent_id: str,
        proxim8_id: str,
        *,
        success: bool,
        timeline_points: int,
        timeline_shift: int,
        experience: int,
        lore_fragments: list[str],
        achievements: list[str],
    ) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise AgentNotFoundError(agent_id)
            agent.timeline_points += timeline_points
            if success:
                agent.missions_succeeded += 1
            else:
                agent.missions_failed += 1
            agent.missions_deployed += 1
            agent.total_timeline_shift += timeline_shift
            agent.rank = rank_for(agent.timeline_points, agent.missions_succeeded, agent.total_timeline_shift)
            agent.lore_fragments.extend(lore_fragments)
            for achievement in achievements:
                if achievement not in agent.achievements:
                    agent.achievements.append(achievement)
            unit = agent.proxim8s.get(proxim8_id)
            if unit is not None:
                unit.experience += experience
                unit.mission_count += 1
                unit.level = level_for_experience(unit.experience)

    def _unit(self, agent_id: str, proxim8_id: str) -> Proxim8 | None:
        agent = self._agents.get(agent_id)
        if agent is None:
            return None
        return agent.proxim8s.get(proxim8_id)
