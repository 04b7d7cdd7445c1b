"""Read-side views returned to pollers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mission_sim.domain.deployment import MissionResult
from mission_sim.domain.types import DeploymentStatus, PhaseStatus


@dataclass(frozen=True)
class PhaseView:
    phase_id: int
    name: str
    status: PhaseStatus
    narrative: str | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class DeploymentSnapshot:
    deployment_id: str
    mission_id: str
    agent_id: str
    proxim8_id: str
    approach: str
    status: DeploymentStatus
    stage: str  # "active" | "complete"
    progress_percent: float
    current_phase: int
    total_phases: int
    phases: tuple[PhaseView, ...]
    deployed_at: datetime
    completes_at: datetime
    time_remaining_ms: int
    final_success_rate: float
    result: MissionResult | None = None


@dataclass(frozen=True)
class MissionAvailability:
    mission_id: str
    sequence: int
    title: str
    unlocked: bool
    completed: bool
    active_deployment_id: str | None = None
