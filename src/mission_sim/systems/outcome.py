"""Outcome aggregation and the terminal write.

The overall roll is seeded from the deployment's roll_seed, so every reader
that races to draw it computes the same value. The store keeps whichever
value lands first and every caller adopts the stored one.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Protocol

from mission_sim.domain.deployment import Deployment, MissionResult, MissionRewards
from mission_sim.domain.templates import MissionTemplate
from mission_sim.domain.types import DeploymentStatus
from mission_sim.sim.rng import deployment_rng
from mission_sim.store.base import AgentStore, DeploymentStore
from mission_sim.systems.narrative import GENERIC_FINAL, format_narrative, pick_template
from mission_sim.systems.progression import RewardSink

logger = logging.getLogger(__name__)

SUCCESS_MULTIPLIER = 1.0
FAILURE_MULTIPLIER = 0.3
MISSION_SUCCESS = "mission_success"


class LoreSource(Protocol):
    def draw(self, deployment: Deployment, template: MissionTemplate) -> list[str]: ...


class LoreDrawer:
    """Seeded lore drop: a fragment id with probability ``chance``."""

    def __init__(self, chance: float) -> None:
        self.chance = min(1.0, max(0.0, chance))

    def draw(self, deployment: Deployment, template: MissionTemplate) -> list[str]:
        rng = deployment_rng(deployment.roll_seed, deployment.deployment_id, "outcome", "lore")
        if rng.random() >= self.chance:
            return []
        return [f"lore_{template.mission_id}_{deployment.approach}_{deployment.deployment_id[:8]}"]


def draw_overall_success(deployment: Deployment) -> bool:
    rng = deployment_rng(deployment.roll_seed, deployment.deployment_id, "outcome", "overall_success")
    return rng.random() < deployment.final_success_rate


def ensure_overall_roll(store: DeploymentStore, deployment: Deployment) -> bool:
    if deployment.overall_success is not None:
        return deployment.overall_success
    rolled = store.record_roll(deployment.deployment_id, draw_overall_success(deployment))
    deployment.overall_success = rolled
    return rolled


def compute_result(
    deployment: Deployment,
    template: MissionTemplate,
    overall_success: bool,
    lore_fragments: list[str],
) -> MissionResult:
    approach = template.approach(deployment.approach)
    rng = deployment_rng(deployment.roll_seed, deployment.deployment_id, "outcome", "timeline_shift")
    u = rng.random()
    if approach is None:
        # Approach removed from the catalog since deploy.
        shift = 0
        base_points, base_experience = 0, 0
    elif overall_success:
        shift = round(approach.timeline_shift.lerp(0.5 + 0.5 * u))
        base_points, base_experience = approach.rewards.timeline_points, approach.rewards.experience
    else:
        shift = round(approach.timeline_shift.lerp(0.5 * u) * 0.5)
        base_points, base_experience = approach.rewards.timeline_points, approach.rewards.experience

    multiplier = SUCCESS_MULTIPLIER if overall_success else FAILURE_MULTIPLIER
    valence = "success" if overall_success else "failure"
    narrative = format_narrative(
        pick_template(template.final_narratives, valence, GENERIC_FINAL),
        {
            "agentName": deployment.agent_name,
            "missionTitle": template.title,
            "approach": deployment.approach,
        },
    )
    return MissionResult(
        overall_success=overall_success,
        final_narrative=narrative,
        timeline_shift=int(shift),
        rewards=MissionRewards(
            timeline_points=math.floor(base_points * multiplier),
            experience=math.floor(base_experience * multiplier),
            lore_fragments=tuple(lore_fragments) if overall_success else (),
            achievements=(MISSION_SUCCESS,) if overall_success else (),
        ),
    )


def finalize_deployment(
    store: DeploymentStore,
    agents: AgentStore,
    rewards: RewardSink,
    lore: LoreSource,
    deployment: Deployment,
    template: MissionTemplate,
    now: datetime,
) -> Deployment:
    """Write the terminal result once ``now`` has reached completes_at.

    Returns the deployment as persisted. Only the caller whose conditional
    write lands releases the unit and issues rewards.
    """
    if deployment.status.is_terminal or deployment.result is not None:
        return deployment
    if now < deployment.completes_at:
        return deployment

    overall_success = ensure_overall_roll(store, deployment)
    fragments = lore.draw(deployment, template) if overall_success else []
    result = compute_result(deployment, template, overall_success, fragments)
    status = DeploymentStatus.COMPLETED if overall_success else DeploymentStatus.FAILED

    if store.finalize(deployment.deployment_id, status, result):
        agents.release_proxim8(deployment.agent_id, deployment.proxim8_id, deployment.deployment_id)
        rewards.issue(deployment, result)
        logger.info(
            "Deployment %s finalized as %s (shift %+d)",
            deployment.deployment_id,
            status.value,
            result.timeline_shift,
        )
    else:
        logger.info("Deployment %s already finalized by another reader", deployment.deployment_id)

    stored = store.get(deployment.deployment_id)
    return stored if stored is not None else deployment
