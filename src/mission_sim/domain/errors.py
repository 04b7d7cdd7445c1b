"""Application errors raised by the engine.

Each carries the HTTP status the web layer reports it with; nothing here is
fatal to the surrounding request.
"""

from __future__ import annotations


class DeploymentError(Exception):
    status_code = 400
    code = "deployment_error"


class MissionNotFoundError(DeploymentError):
    status_code = 404
    code = "mission_not_found"

    def __init__(self, mission_id: str) -> None:
        super().__init__(f"Mission template not found: {mission_id}")
        self.mission_id = mission_id


class InvalidApproachError(DeploymentError):
    status_code = 400
    code = "invalid_approach"

    def __init__(self, mission_id: str, approach: str) -> None:
        super().__init__(f"Invalid approach for mission {mission_id}: {approach}")
        self.mission_id = mission_id
        self.approach = approach


class AgentNotFoundError(DeploymentError):
    status_code = 404
    code = "agent_not_found"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class Proxim8NotFoundError(DeploymentError):
    status_code = 404
    code = "proxim8_not_found"

    def __init__(self, proxim8_id: str) -> None:
        super().__init__(f"Proxim8 not found or not owned by agent: {proxim8_id}")
        self.proxim8_id = proxim8_id


class MissionLockedError(DeploymentError):
    status_code = 403
    code = "mission_locked"

    def __init__(self, mission_id: str) -> None:
        super().__init__(f"Mission not unlocked, complete previous missions first: {mission_id}")
        self.mission_id = mission_id


class Proxim8BusyError(DeploymentError):
    status_code = 409
    code = "proxim8_busy"

    def __init__(self, proxim8_id: str) -> None:
        super().__init__(f"Proxim8 is already deployed on a mission: {proxim8_id}")
        self.proxim8_id = proxim8_id


class DailyLimitReachedError(DeploymentError):
    status_code = 429
    code = "daily_limit_reached"

    def __init__(self, agent_id: str, cap: int) -> None:
        super().__init__(f"Daily deployment limit of {cap} reached for agent {agent_id}")
        self.agent_id = agent_id
        self.cap = cap


class DeploymentNotFoundError(DeploymentError):
    status_code = 404
    code = "deployment_not_found"

    def __init__(self, deployment_id: str) -> None:
        super().__init__(f"Deployment not found: {deployment_id}")
        self.deployment_id = deployment_id


class DeploymentNotActiveError(DeploymentError):
    status_code = 409
    code = "deployment_not_active"

    def __init__(self, deployment_id: str, status: str) -> None:
        super().__init__(f"Deployment {deployment_id} is not active (status: {status})")
        self.deployment_id = deployment_id
        self.status = status


class AgentExistsError(DeploymentError):
    status_code = 409
    code = "agent_exists"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent already exists: {agent_id}")
        self.agent_id = agent_id


class Proxim8ExistsError(DeploymentError):
    status_code = 409
    code = "proxim8_exists"

    def __init__(self, proxim8_id: str) -> None:
        super().__init__(f"Proxim8 already registered: {proxim8_id}")
        self.proxim8_id = proxim8_id
