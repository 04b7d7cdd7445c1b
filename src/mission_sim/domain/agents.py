"""Agent and unit state as seen by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date

from mission_sim.domain.types import AgentRank


@dataclass(slots=True)
class Proxim8:
    proxim8_id: str
    name: str
    personality: str
    level: int = 1
    experience: int = 0
    mission_count: int = 0
    is_deployed: bool = False
    current_deployment_id: str | None = None


@dataclass(slots=True)
class Agent:
    agent_id: str
    codename: str | None = None
    timeline_points: int = 0
    rank: AgentRank = AgentRank.RECRUIT
    daily_deployments: int = 0
    last_deployment_date: date | None = None
    missions_succeeded: int = 0
    missions_failed: int = 0
    missions_deployed: int = 0
    total_timeline_shift: int = 0
    lore_fragments: list[str] = field(default_factory=list)
    achievements: list[str] = field(default_factory=list)
    proxim8s: dict[str, Proxim8] = field(default_factory=dict)

    def copy(self) -> "Agent":
        return replace(
            self,
            lore_fragments=list(self.lore_fragments),
            achievements=list(self.achievements),
            proxim8s={key: replace(unit) for key, unit in self.proxim8s.items()},
        )
