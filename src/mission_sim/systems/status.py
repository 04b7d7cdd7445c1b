"""Status reads, abandon and per-agent mission availability.

Every state transition after creation happens here, driven by whoever polls.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from mission_sim.domain.deployment import Deployment
from mission_sim.domain.errors import AgentNotFoundError, DeploymentNotActiveError, DeploymentNotFoundError
from mission_sim.domain.snapshot import DeploymentSnapshot, MissionAvailability, PhaseView
from mission_sim.domain.templates import MissionTemplate
from mission_sim.domain.types import DeploymentStatus, PhaseStatus
from mission_sim.rules.catalog import MissionCatalog
from mission_sim.store.base import AgentStore, DeploymentStore
from mission_sim.systems.deployment import is_mission_unlocked
from mission_sim.systems.outcome import LoreSource, ensure_overall_roll, finalize_deployment
from mission_sim.systems.phases import resolve_phases
from mission_sim.systems.progression import RewardSink

logger = logging.getLogger(__name__)


def advance_phases(
    store: DeploymentStore, deployment: Deployment, template: MissionTemplate, now: datetime
) -> Deployment:
    """Persist every phase crossed by ``now`` and return the stored deployment."""
    for _ in range(len(template.phases) + 1):
        if deployment.status != DeploymentStatus.ACTIVE:
            return deployment
        outcomes = resolve_phases(
            deployment,
            template,
            now,
            lambda: ensure_overall_roll(store, deployment),
        )
        if not outcomes:
            return deployment
        expected = len(deployment.phase_outcomes)
        appended = store.append_phase_outcomes(deployment.deployment_id, expected, outcomes)
        stored = store.get(deployment.deployment_id)
        if stored is None:
            raise DeploymentNotFoundError(deployment.deployment_id)
        deployment = stored
        if appended:
            return deployment
    return deployment


def build_snapshot(deployment: Deployment, template: MissionTemplate | None, now: datetime) -> DeploymentSnapshot:
    elapsed = deployment.elapsed_ms(now)
    duration = max(1, deployment.duration_ms)
    progress = round(min(100.0, elapsed / duration * 100.0), 2)
    active = not deployment.status.is_terminal
    if active:
        left = int((deployment.completes_at - now) / timedelta(milliseconds=1))
        remaining = min(deployment.duration_ms, max(0, left))
    else:
        remaining = 0

    views = [
        PhaseView(
            phase_id=o.phase_id,
            name=o.name,
            status=o.status,
            narrative=o.narrative,
            completed_at=o.completed_at,
        )
        for o in deployment.phase_outcomes
    ]
    total = len(template.phases) if template is not None else len(views)
    if template is not None:
        for index in range(len(views), total):
            phase = template.phases[index]
            upcoming = active and index == len(deployment.phase_outcomes)
            status = PhaseStatus.ACTIVE if upcoming else PhaseStatus.PENDING
            views.append(PhaseView(phase_id=phase.id, name=phase.name, status=status))

    return DeploymentSnapshot(
        deployment_id=deployment.deployment_id,
        mission_id=deployment.mission_id,
        agent_id=deployment.agent_id,
        proxim8_id=deployment.proxim8_id,
        approach=deployment.approach,
        status=deployment.status,
        stage="active" if active else "complete",
        progress_percent=progress,
        current_phase=deployment.current_phase,
        total_phases=total,
        phases=tuple(views),
        deployed_at=deployment.deployed_at,
        completes_at=deployment.completes_at,
        time_remaining_ms=remaining,
        final_success_rate=deployment.final_success_rate,
        result=deployment.result,
    )


def get_deployment_status(
    *,
    catalog: MissionCatalog,
    deployments: DeploymentStore,
    agents: AgentStore,
    rewards: RewardSink,
    lore: LoreSource,
    deployment_id: str,
    now: datetime,
) -> DeploymentSnapshot:
    deployment = deployments.get(deployment_id)
    if deployment is None:
        raise DeploymentNotFoundError(deployment_id)
    template = catalog.get(deployment.mission_id)
    if template is None:
        logger.warning(
            "Deployment %s references missing mission %s; reporting stored state",
            deployment_id,
            deployment.mission_id,
        )
        return build_snapshot(deployment, None, now)

    deployment = advance_phases(deployments, deployment, template, now)
    deployment = finalize_deployment(deployments, agents, rewards, lore, deployment, template, now)
    return build_snapshot(deployment, template, now)


def abandon_deployment(
    *,
    deployments: DeploymentStore,
    agents: AgentStore,
    deployment_id: str,
    now: datetime,
) -> Deployment:
    deployment = deployments.get(deployment_id)
    if deployment is None:
        raise DeploymentNotFoundError(deployment_id)
    if deployment.status != DeploymentStatus.ACTIVE or not deployments.abandon(deployment_id, now):
        current = deployments.get(deployment_id) or deployment
        raise DeploymentNotActiveError(deployment_id, current.status.value)
    agents.release_proxim8(deployment.agent_id, deployment.proxim8_id, deployment_id)
    logger.info("Deployment %s abandoned", deployment_id)
    stored = deployments.get(deployment_id)
    return stored if stored is not None else deployment


def list_missions_for_agent(
    *,
    catalog: MissionCatalog,
    deployments: DeploymentStore,
    agents: AgentStore,
    agent_id: str,
    enforce_unlocks: bool = True,
) -> list[MissionAvailability]:
    if agents.get_agent(agent_id) is None:
        raise AgentNotFoundError(agent_id)
    history = deployments.list_for_agent(agent_id)
    available: list[MissionAvailability] = []
    for template in catalog.missions():
        mine = [d for d in history if d.mission_id == template.mission_id]
        active = next((d for d in mine if d.status == DeploymentStatus.ACTIVE), None)
        available.append(
            MissionAvailability(
                mission_id=template.mission_id,
                sequence=template.sequence,
                title=template.title,
                unlocked=not enforce_unlocks or is_mission_unlocked(catalog, template, history),
                completed=any(d.status == DeploymentStatus.COMPLETED for d in mine),
                active_deployment_id=active.deployment_id if active is not None else None,
            )
        )
    return available
