"""Common types and enums."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DeploymentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self != DeploymentStatus.ACTIVE


class PhaseStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUCCESS = "success"
    FAILURE = "failure"


class Personality(str, Enum):
    ANALYTICAL = "ANALYTICAL"
    AGGRESSIVE = "AGGRESSIVE"
    DIPLOMATIC = "DIPLOMATIC"
    ADAPTIVE = "ADAPTIVE"


class AgentRank(str, Enum):
    RECRUIT = "recruit"
    OPERATIVE = "operative"
    SPECIALIST = "specialist"
    COMMANDER = "commander"
    LEGEND = "legend"


@dataclass(frozen=True, slots=True)
class RankRequirement:
    """Minimums an agent must meet on every axis to hold ``rank``."""

    rank: AgentRank
    timeline_points: int
    missions_succeeded: int
    influence: int = 0


# Lowest first. Influence is the agent's accumulated timeline shift.
RANK_LADDER: tuple[RankRequirement, ...] = (
    RankRequirement(AgentRank.RECRUIT, 0, 0),
    RankRequirement(AgentRank.OPERATIVE, 500, 5),
    RankRequirement(AgentRank.SPECIALIST, 2000, 20, 10),
    RankRequirement(AgentRank.COMMANDER, 5000, 50, 25),
    RankRequirement(AgentRank.LEGEND, 10000, 100, 50),
)
