"""Persistence contracts.

Every method that mutates is a single conditional operation: it either
applies completely or reports False, so concurrent callers can race safely.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from mission_sim.domain.agents import Agent, Proxim8
from mission_sim.domain.deployment import Deployment, MissionResult, PhaseOutcome
from mission_sim.domain.types import DeploymentStatus


class DeploymentStore(Protocol):
    def create(self, deployment: Deployment) -> None: ...

    def get(self, deployment_id: str) -> Deployment | None: ...

    def list_for_agent(self, agent_id: str) -> list[Deployment]: ...

    def record_roll(self, deployment_id: str, overall_success: bool) -> bool:
        """Store the overall roll if none is stored yet; return the stored roll."""
        ...

    def append_phase_outcomes(
        self, deployment_id: str, expected_phase: int, outcomes: list[PhaseOutcome]
    ) -> bool:
        """Append only while the stored current_phase equals expected_phase."""
        ...

    def finalize(self, deployment_id: str, status: DeploymentStatus, result: MissionResult) -> bool:
        """Write the terminal result only while result is unset and status is active."""
        ...

    def abandon(self, deployment_id: str, at: datetime) -> bool: ...


class AgentStore(Protocol):
    def add_agent(self, agent: Agent) -> None: ...

    def add_proxim8(self, agent_id: str, proxim8: Proxim8) -> None: ...

    def get_agent(self, agent_id: str) -> Agent | None: ...

    def check_and_reserve_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool: ...

    def release_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool: ...

    def check_and_increment_daily_count(self, agent_id: str, today: date, cap: int) -> bool: ...

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
    ) -> None: ...
