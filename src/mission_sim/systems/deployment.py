"""Deployment initiation: validation, rate, reservation and the daily cap."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from random import Random

from mission_sim.domain.agents import Agent
from mission_sim.domain.deployment import Deployment
from mission_sim.domain.errors import (
    AgentNotFoundError,
    DailyLimitReachedError,
    InvalidApproachError,
    MissionLockedError,
    MissionNotFoundError,
    Proxim8BusyError,
    Proxim8NotFoundError,
)
from mission_sim.domain.templates import MissionApproach, MissionTemplate
from mission_sim.domain.types import DeploymentStatus
from mission_sim.rules.catalog import MissionCatalog
from mission_sim.sim.rng import new_roll_seed
from mission_sim.store.base import AgentStore, DeploymentStore

logger = logging.getLogger(__name__)


def compute_success_rate(template: MissionTemplate, approach: MissionApproach, personality: str) -> float:
    """Midpoint of the approach range, adjusted for personality, clamped to [0, 1]."""
    rate = approach.success_rate.midpoint
    if personality.upper() in template.compatibility.preferred:
        rate += template.compatibility.bonus
    else:
        rate -= abs(template.compatibility.penalty)
    return min(1.0, max(0.0, rate))


def is_mission_unlocked(catalog: MissionCatalog, template: MissionTemplate, history: list[Deployment]) -> bool:
    if template.sequence <= 1:
        return True
    previous = catalog.by_sequence(template.sequence - 1)
    if previous is None:
        return True
    return any(
        d.mission_id == previous.mission_id and d.status == DeploymentStatus.COMPLETED for d in history
    )


def deploy_mission(
    *,
    catalog: MissionCatalog,
    deployments: DeploymentStore,
    agents: AgentStore,
    mission_id: str,
    proxim8_id: str,
    approach: str,
    agent_id: str,
    now: datetime,
    rng: Random,
    daily_cap: int,
    enforce_unlocks: bool = True,
) -> Deployment:
    template = catalog.get(mission_id)
    if template is None:
        raise MissionNotFoundError(mission_id)
    chosen = template.approach(approach)
    if chosen is None:
        raise InvalidApproachError(mission_id, approach)
    agent: Agent | None = agents.get_agent(agent_id)
    if agent is None:
        raise AgentNotFoundError(agent_id)
    unit = agent.proxim8s.get(proxim8_id)
    if unit is None:
        raise Proxim8NotFoundError(proxim8_id)
    if enforce_unlocks and not is_mission_unlocked(catalog, template, deployments.list_for_agent(agent_id)):
        logger.info("Agent %s tried locked mission %s", agent_id, mission_id)
        raise MissionLockedError(mission_id)

    rate = compute_success_rate(template, chosen, unit.personality)
    duration_ms = template.duration_for(chosen)
    deployment_id = str(uuid.uuid4())

    if not agents.check_and_reserve_proxim8(agent_id, proxim8_id, deployment_id):
        logger.info("Proxim8 %s busy, deploy rejected", proxim8_id)
        raise Proxim8BusyError(proxim8_id)
    if not agents.check_and_increment_daily_count(agent_id, now.date(), daily_cap):
        agents.release_proxim8(agent_id, proxim8_id, deployment_id)
        logger.info("Agent %s hit daily cap of %s", agent_id, daily_cap)
        raise DailyLimitReachedError(agent_id, daily_cap)

    deployment = Deployment(
        deployment_id=deployment_id,
        mission_id=template.mission_id,
        agent_id=agent_id,
        proxim8_id=proxim8_id,
        agent_name=unit.name,
        approach=chosen.type,
        deployed_at=now,
        completes_at=now + timedelta(milliseconds=duration_ms),
        duration_ms=duration_ms,
        final_success_rate=rate,
        roll_seed=new_roll_seed(rng),
    )
    deployments.create(deployment)
    logger.info(
        "Deployment %s created: mission=%s approach=%s rate=%.3f",
        deployment_id,
        template.mission_id,
        chosen.type,
        rate,
    )
    return deployment
