from __future__ import annotations

from typing import Optional

from mission_sim.domain.agents import Agent
from mission_sim.domain.deployment import Deployment, MissionResult
from mission_sim.domain.snapshot import DeploymentSnapshot, MissionAvailability
from mission_sim.domain.templates import MissionTemplate, RateRange
from mission_sim.systems.progression import next_rank_requirement
from mission_sim.web.api import schemas


def build_mission(template: MissionTemplate) -> schemas.MissionOut:
    return schemas.MissionOut(
        mission_id=template.mission_id,
        sequence=template.sequence,
        title=template.title,
        description=template.description,
        duration_ms=template.duration_ms,
        approaches=[
            schemas.ApproachOut(
                type=a.type,
                name=a.name,
                description=a.description,
                success_rate=_range(a.success_rate),
                timeline_shift=_range(a.timeline_shift),
                rewards=schemas.ApproachRewardsOut(
                    timeline_points=a.rewards.timeline_points,
                    experience=a.rewards.experience,
                ),
                duration_ms=template.duration_for(a),
            )
            for a in template.approaches
        ],
        phases=[
            schemas.MissionPhaseOut(
                id=p.id,
                name=p.name,
                duration_percent=p.duration_percent,
                critical_path=p.critical_path,
            )
            for p in template.phases
        ],
        compatibility=schemas.CompatibilityOut(
            preferred=list(template.compatibility.preferred),
            bonus=template.compatibility.bonus,
            penalty=template.compatibility.penalty,
        ),
    )


def _range(value: RateRange) -> schemas.RateRangeOut:
    return schemas.RateRangeOut(min=value.min, max=value.max)


def build_deployment(deployment: Deployment) -> schemas.DeploymentOut:
    return schemas.DeploymentOut(
        deployment_id=deployment.deployment_id,
        mission_id=deployment.mission_id,
        agent_id=deployment.agent_id,
        proxim8_id=deployment.proxim8_id,
        approach=deployment.approach,
        status=deployment.status.value,
        deployed_at=deployment.deployed_at,
        completes_at=deployment.completes_at,
        duration_ms=deployment.duration_ms,
        final_success_rate=deployment.final_success_rate,
        current_phase=deployment.current_phase,
    )


def _result(result: MissionResult | None) -> schemas.ResultOut | None:
    if result is None:
        return None
    return schemas.ResultOut(
        overall_success=result.overall_success,
        final_narrative=result.final_narrative,
        timeline_shift=result.timeline_shift,
        rewards=schemas.RewardsOut(
            timeline_points=result.rewards.timeline_points,
            experience=result.rewards.experience,
            lore_fragments=list(result.rewards.lore_fragments),
            achievements=list(result.rewards.achievements),
        ),
    )


def build_status(snapshot: DeploymentSnapshot) -> schemas.DeploymentStatusResponse:
    return schemas.DeploymentStatusResponse(
        deployment_id=snapshot.deployment_id,
        mission_id=snapshot.mission_id,
        agent_id=snapshot.agent_id,
        proxim8_id=snapshot.proxim8_id,
        approach=snapshot.approach,
        status=snapshot.status.value,
        stage=snapshot.stage,
        progress_percent=snapshot.progress_percent,
        current_phase=snapshot.current_phase,
        total_phases=snapshot.total_phases,
        phases=[
            schemas.PhaseViewOut(
                phase_id=view.phase_id,
                name=view.name,
                status=view.status.value,
                narrative=view.narrative,
                completed_at=view.completed_at,
            )
            for view in snapshot.phases
        ],
        deployed_at=snapshot.deployed_at,
        completes_at=snapshot.completes_at,
        time_remaining_ms=snapshot.time_remaining_ms,
        final_success_rate=snapshot.final_success_rate,
        result=_result(snapshot.result),
    )


def _next_rank(agent: Agent) -> Optional[schemas.NextRankOut]:
    requirement = next_rank_requirement(agent.rank)
    if requirement is None:
        return None
    return schemas.NextRankOut(
        rank=requirement.rank.value,
        timeline_points=requirement.timeline_points,
        missions_succeeded=requirement.missions_succeeded,
        influence=requirement.influence,
    )


def build_agent(agent: Agent) -> schemas.AgentOut:
    return schemas.AgentOut(
        agent_id=agent.agent_id,
        codename=agent.codename,
        timeline_points=agent.timeline_points,
        rank=agent.rank.value,
        next_rank=_next_rank(agent),
        daily_deployments=agent.daily_deployments,
        missions_succeeded=agent.missions_succeeded,
        missions_failed=agent.missions_failed,
        missions_deployed=agent.missions_deployed,
        total_timeline_shift=agent.total_timeline_shift,
        lore_fragments=list(agent.lore_fragments),
        achievements=list(agent.achievements),
        proxim8s=[
            schemas.Proxim8Out(
                proxim8_id=unit.proxim8_id,
                name=unit.name,
                personality=unit.personality,
                level=unit.level,
                experience=unit.experience,
                mission_count=unit.mission_count,
                is_deployed=unit.is_deployed,
                current_deployment_id=unit.current_deployment_id,
            )
            for unit in sorted(agent.proxim8s.values(), key=lambda u: u.proxim8_id)
        ],
    )


def build_availability(agent_id: str, missions: list[MissionAvailability]) -> schemas.AgentMissionsResponse:
    return schemas.AgentMissionsResponse(
        agent_id=agent_id,
        missions=[
            schemas.MissionAvailabilityOut(
                mission_id=m.mission_id,
                sequence=m.sequence,
                title=m.title,
                unlocked=m.unlocked,
                completed=m.completed,
                active_deployment_id=m.active_deployment_id,
            )
            for m in missions
        ],
    )
