from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mission_sim.config import Settings, get_settings
from mission_sim.domain.errors import DeploymentError, MissionNotFoundError
from mission_sim.engine import MissionEngine
from mission_sim.web.api import mappers, schemas
from mission_sim.web.runtime import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_bearer = HTTPBearer(auto_error=False)


def _http_error(exc: DeploymentError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": str(exc)})


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> None:
    if settings.admin_token is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access is not configured")
    if credentials is None or not secrets.compare_digest(
        credentials.credentials, settings.admin_token.get_secret_value()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.get("/health", response_model=schemas.HealthResponse)
def health(engine: MissionEngine = Depends(get_engine)):
    return schemas.HealthResponse(status="ok", missions=len(engine.catalog.templates))


@router.get("/missions", response_model=schemas.MissionListResponse)
def list_missions(engine: MissionEngine = Depends(get_engine)):
    return schemas.MissionListResponse(missions=[mappers.build_mission(t) for t in engine.catalog.missions()])


@router.get("/missions/{mission_id}", response_model=schemas.MissionOut)
def get_mission(mission_id: str, engine: MissionEngine = Depends(get_engine)):
    template = engine.catalog.get(mission_id)
    if template is None:
        raise _http_error(MissionNotFoundError(mission_id))
    return mappers.build_mission(template)


@router.post(
    "/missions/{mission_id}/deploy",
    response_model=schemas.DeploymentOut,
    status_code=status.HTTP_201_CREATED,
)
def deploy(mission_id: str, payload: schemas.DeployRequest, engine: MissionEngine = Depends(get_engine)):
    try:
        deployment = engine.deploy_mission(mission_id, payload.proxim8_id, payload.approach, payload.agent_id)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_deployment(deployment)


@router.get("/deployments/{deployment_id}/status", response_model=schemas.DeploymentStatusResponse)
def deployment_status(deployment_id: str, engine: MissionEngine = Depends(get_engine)):
    try:
        snapshot = engine.get_deployment_status(deployment_id)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_status(snapshot)


@router.post(
    "/admin/deployments/{deployment_id}/abandon",
    response_model=schemas.DeploymentOut,
    dependencies=[Depends(require_admin)],
)
def abandon(deployment_id: str, engine: MissionEngine = Depends(get_engine)):
    try:
        deployment = engine.abandon_deployment(deployment_id)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_deployment(deployment)


@router.post("/agents", response_model=schemas.AgentOut, status_code=status.HTTP_201_CREATED)
def register_agent(payload: schemas.RegisterAgentRequest, engine: MissionEngine = Depends(get_engine)):
    try:
        agent = engine.register_agent(payload.agent_id, payload.codename)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_agent(agent)


@router.post("/agents/{agent_id}/proxim8s", response_model=schemas.AgentOut, status_code=status.HTTP_201_CREATED)
def register_proxim8(
    agent_id: str, payload: schemas.RegisterProxim8Request, engine: MissionEngine = Depends(get_engine)
):
    try:
        agent = engine.add_proxim8(agent_id, payload.proxim8_id, payload.name, payload.personality.value)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_agent(agent)


@router.get("/agents/{agent_id}", response_model=schemas.AgentOut)
def get_agent(agent_id: str, engine: MissionEngine = Depends(get_engine)):
    try:
        agent = engine.get_agent(agent_id)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_agent(agent)


@router.get("/agents/{agent_id}/missions", response_model=schemas.AgentMissionsResponse)
def agent_missions(agent_id: str, engine: MissionEngine = Depends(get_engine)):
    try:
        missions = engine.list_missions_for_agent(agent_id)
    except DeploymentError as exc:
        raise _http_error(exc) from exc
    return mappers.build_availability(agent_id, missions)
