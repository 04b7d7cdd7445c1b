"""Agent progression: reward issuance, unit levels and agent rank."""

from __future__ import annotations

import logging
import math
from typing import Protocol

from mission_sim.domain.deployment import Deployment, MissionResult
from mission_sim.domain.types import RANK_LADDER, AgentRank, RankRequirement
from mission_sim.store.base import AgentStore

logger = logging.getLogger(__name__)

FIRST_SUCCESS = "first_success"


def level_for_experience(experience: int) -> int:
    return int(math.floor(math.sqrt(max(0, experience) / 100.0))) + 1


def rank_for(timeline_points: int, missions_succeeded: int, influence: int = 0) -> AgentRank:
    rank = AgentRank.RECRUIT
    for requirement in RANK_LADDER:
        if (
            timeline_points >= requirement.timeline_points
            and missions_succeeded >= requirement.missions_succeeded
            and influence >= requirement.influence
        ):
            rank = requirement.rank
    return rank


def next_rank_requirement(rank: AgentRank) -> RankRequirement | None:
    ranks = [requirement.rank for requirement in RANK_LADDER]
    index = ranks.index(rank)
    if index + 1 >= len(RANK_LADDER):
        return None
    return RANK_LADDER[index + 1]


class RewardSink(Protocol):
    def issue(self, deployment: Deployment, result: MissionResult) -> None: ...


class RewardIssuer:
    """Applies a finished deployment's rewards to the agent store.

    Callers guarantee this runs once per deployment (it is only invoked by
    the winner of the terminal conditional write).
    """

    def __init__(self, agents: AgentStore) -> None:
        self.agents = agents

    def issue(self, deployment: Deployment, result: MissionResult) -> None:
        achievements = list(result.rewards.achievements)
        if result.overall_success:
            agent = self.agents.get_agent(deployment.agent_id)
            if agent is not None and agent.missions_succeeded == 0 and FIRST_SUCCESS not in agent.achievements:
                achievements.append(FIRST_SUCCESS)
        self.agents.apply_rewards(
            deployment.agent_id,
            deployment.proxim8_id,
            success=result.overall_success,
            timeline_points=result.rewards.timeline_points,
            timeline_shift=result.timeline_shift,
            experience=result.rewards.experience,
            lore_fragments=list(result.rewards.lore_fragments),
            achievements=achievements,
        )
        logger.info(
            "Issued rewards for deployment %s: %s timeline points, %s experience",
            deployment.deployment_id,
            result.rewards.timeline_points,
            result.rewards.experience,
        )
