"""Deployment records and their serialised forms."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from mission_sim.domain.types import DeploymentStatus, PhaseStatus


@dataclass(frozen=True)
class PhaseOutcome:
    phase_id: int
    name: str
    status: PhaseStatus
    narrative: str
    completed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "name": self.name,
            "status": self.status.value,
            "narrative": self.narrative,
            "completed_at": self.completed_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "PhaseOutcome":
        return PhaseOutcome(
            phase_id=int(data["phase_id"]),
            name=str(data.get("name", "")),
            status=PhaseStatus(data["status"]),
            narrative=str(data.get("narrative", "")),
            completed_at=as_utc(datetime.fromisoformat(data["completed_at"])),
        )


@dataclass(frozen=True)
class MissionRewards:
    timeline_points: int
    experience: int
    lore_fragments: tuple[str, ...] = ()
    achievements: tuple[str, ...] = ()


@dataclass(frozen=True)
class MissionResult:
    overall_success: bool
    final_narrative: str
    timeline_shift: int
    rewards: MissionRewards

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_success": self.overall_success,
            "final_narrative": self.final_narrative,
            "timeline_shift": self.timeline_shift,
            "rewards": {
                "timeline_points": self.rewards.timeline_points,
                "experience": self.rewards.experience,
                "lore_fragments": list(self.rewards.lore_fragments),
                "achievements": list(self.rewards.achievements),
            },
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MissionResult":
        rewards = data.get("rewards", {})
        return MissionResult(
            overall_success=bool(data["overall_success"]),
            final_narrative=str(data.get("final_narrative", "")),
            timeline_shift=int(data.get("timeline_shift", 0)),
            rewards=MissionRewards(
                timeline_points=int(rewards.get("timeline_points", 0)),
                experience=int(rewards.get("experience", 0)),
                lore_fragments=tuple(rewards.get("lore_fragments", [])),
                achievements=tuple(rewards.get("achievements", [])),
            ),
        )


@dataclass(slots=True)
class Deployment:
    deployment_id: str
    mission_id: str
    agent_id: str
    proxim8_id: str
    agent_name: str
    approach: str
    deployed_at: datetime
    completes_at: datetime
    duration_ms: int
    final_success_rate: float
    roll_seed: int
    status: DeploymentStatus = DeploymentStatus.ACTIVE
    current_phase: int = 0
    phase_outcomes: list[PhaseOutcome] = field(default_factory=list)
    overall_success: bool | None = None
    result: MissionResult | None = None
    abandoned_at: datetime | None = None

    def elapsed_ms(self, now: datetime) -> float:
        """Milliseconds since deployment; never negative."""
        if self.abandoned_at is not None and now > self.abandoned_at:
            now = self.abandoned_at
        return max(0.0, (now - self.deployed_at) / timedelta(milliseconds=1))

    def copy(self) -> "Deployment":
        return replace(self, phase_outcomes=list(self.phase_outcomes))


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; everything stored is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
