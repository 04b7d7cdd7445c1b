from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mission_sim.domain.types import Personality


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_by_name=True)


class HealthResponse(CamelModel):
    status: str
    missions: int


class RateRangeOut(CamelModel):
    min: float
    max: float


class ApproachRewardsOut(CamelModel):
    timeline_points: int = Field(..., alias="timelinePoints")
    experience: int


class ApproachOut(CamelModel):
    type: str
    name: str
    description: str
    success_rate: RateRangeOut = Field(..., alias="successRate")
    timeline_shift: RateRangeOut = Field(..., alias="timelineShift")
    rewards: ApproachRewardsOut
    duration_ms: int = Field(..., alias="durationMs")


class MissionPhaseOut(CamelModel):
    id: int
    name: str
    duration_percent: float = Field(..., alias="durationPercent")
    critical_path: bool = Field(..., alias="criticalPath")


class CompatibilityOut(CamelModel):
    preferred: List[str]
    bonus: float
    penalty: float


class MissionOut(CamelModel):
    mission_id: str = Field(..., alias="missionId")
    sequence: int
    title: str
    description: str
    duration_ms: int = Field(..., alias="durationMs")
    approaches: List[ApproachOut]
    phases: List[MissionPhaseOut]
    compatibility: CompatibilityOut


class MissionListResponse(CamelModel):
    missions: List[MissionOut]


class DeployRequest(CamelModel):
    agent_id: str = Field(..., alias="agentId", min_length=1)
    proxim8_id: str = Field(..., alias="proxim8Id", min_length=1)
    approach: str = Field(..., min_length=1)


class DeploymentOut(CamelModel):
    deployment_id: str = Field(..., alias="deploymentId")
    mission_id: str = Field(..., alias="missionId")
    agent_id: str = Field(..., alias="agentId")
    proxim8_id: str = Field(..., alias="proxim8Id")
    approach: str
    status: str
    deployed_at: datetime = Field(..., alias="deployedAt")
    completes_at: datetime = Field(..., alias="completesAt")
    duration_ms: int = Field(..., alias="durationMs")
    final_success_rate: float = Field(..., alias="finalSuccessRate")
    current_phase: int = Field(..., alias="currentPhase")


class PhaseViewOut(CamelModel):
    phase_id: int = Field(..., alias="phaseId")
    name: str
    status: str
    narrative: Optional[str] = None
    completed_at: Optional[datetime] = Field(None, alias="completedAt")


class RewardsOut(CamelModel):
    timeline_points: int = Field(..., alias="timelinePoints")
    experience: int
    lore_fragments: List[str] = Field(..., alias="loreFragments")
    achievements: List[str]


class ResultOut(CamelModel):
    overall_success: bool = Field(..., alias="overallSuccess")
    final_narrative: str = Field(..., alias="finalNarrative")
    timeline_shift: int = Field(..., alias="timelineShift")
    rewards: RewardsOut


class DeploymentStatusResponse(CamelModel):
    deployment_id: str = Field(..., alias="deploymentId")
    mission_id: str = Field(..., alias="missionId")
    agent_id: str = Field(..., alias="agentId")
    proxim8_id: str = Field(..., alias="proxim8Id")
    approach: str
    status: str
    stage: str
    progress_percent: float = Field(..., alias="progressPercent")
    current_phase: int = Field(..., alias="currentPhase")
    total_phases: int = Field(..., alias="totalPhases")
    phases: List[PhaseViewOut]
    deployed_at: datetime = Field(..., alias="deployedAt")
    completes_at: datetime = Field(..., alias="completesAt")
    time_remaining_ms: int = Field(..., alias="timeRemainingMs")
    final_success_rate: float = Field(..., alias="finalSuccessRate")
    result: Optional[ResultOut] = None


class RegisterAgentRequest(CamelModel):
    agent_id: str = Field(..., alias="agentId", min_length=1, max_length=64)
    codename: Optional[str] = Field(None, max_length=255)


class RegisterProxim8Request(CamelModel):
    proxim8_id: str = Field(..., alias="proxim8Id", min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    personality: Personality

    @field_validator("personality", mode="before")
    @classmethod
    def _upper_personality(cls, value):
        return value.upper() if isinstance(value, str) else value


class Proxim8Out(CamelModel):
    proxim8_id: str = Field(..., alias="proxim8Id")
    name: str
    personality: str
    level: int
    experience: int
    mission_count: int = Field(..., alias="missionCount")
    is_deployed: bool = Field(..., alias="isDeployed")
    current_deployment_id: Optional[str] = Field(None, alias="currentDeploymentId")


class NextRankOut(CamelModel):
    rank: str
    timeline_points: int = Field(..., alias="timelinePoints")
    missions_succeeded: int = Field(..., alias="missionsSucceeded")
    influence: int


class AgentOut(CamelModel):
    agent_id: str = Field(..., alias="agentId")
    codename: Optional[str] = None
    timeline_points: int = Field(..., alias="timelinePoints")
    rank: str
    next_rank: Optional[NextRankOut] = Field(None, alias="nextRank")
    daily_deployments: int = Field(..., alias="dailyDeployments")
    missions_succeeded: int = Field(..., alias="missionsSucceeded")
    missions_failed: int = Field(..., alias="missionsFailed")
    missions_deployed: int = Field(..., alias="missionsDeployed")
    total_timeline_shift: int = Field(..., alias="totalTimelineShift")
    lore_fragments: List[str] = Field(..., alias="loreFragments")
    achievements: List[str]
    proxim8s: List[Proxim8Out]


class MissionAvailabilityOut(CamelModel):
    mission_id: str = Field(..., alias="missionId")
    sequence: int
    title: str
    unlocked: bool
    completed: bool
    active_deployment_id: Optional[str] = Field(None, alias="activeDeploymentId")


class AgentMissionsResponse(CamelModel):
    agent_id: str = Field(..., alias="agentId")
    missions: List[MissionAvailabilityOut]
