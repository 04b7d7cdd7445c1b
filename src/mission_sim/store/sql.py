"""SQLAlchemy-backed stores.

Each conditional operation is one ``UPDATE ... WHERE`` whose rowcount tells
the caller whether it won. SQLite for local runs and tests, any SQLAlchemy
URL in production.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    create_engine,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from mission_sim.domain.agents import Agent, Proxim8
from mission_sim.domain.deployment import Deployment, MissionResult, PhaseOutcome, as_utc
from mission_sim.domain.errors import AgentExistsError, AgentNotFoundError, Proxim8ExistsError
from mission_sim.domain.types import AgentRank, DeploymentStatus
from mission_sim.systems.progression import level_for_experience, rank_for

logger = logging.getLogger(__name__)

Base = declarative_base()


class AgentRow(Base):
    __tablename__ = "agents"

    agent_id = Column(String(64), primary_key=True)
    codename = Column(String(255))
    timeline_points = Column(Integer, nullable=False, default=0)
    rank = Column(String(32), nullable=False, default=AgentRank.RECRUIT.value)
    daily_deployments = Column(Integer, nullable=False, default=0)
    last_deployment_date = Column(Date)
    missions_succeeded = Column(Integer, nullable=False, default=0)
    missions_failed = Column(Integer, nullable=False, default=0)
    missions_deployed = Column(Integer, nullable=False, default=0)
    total_timeline_shift = Column(Integer, nullable=False, default=0)
    lore_fragments = Column(JSON, nullable=False, default=list)
    achievements = Column(JSON, nullable=False, default=list)


class Proxim8Row(Base):
    __tablename__ = "proxim8s"

    proxim8_id = Column(String(64), primary_key=True)
    agent_id = Column(String(64), ForeignKey("agents.agent_id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    personality = Column(String(32), nullable=False)
    level = Column(Integer, nullable=False, default=1)
    experience = Column(Integer, nullable=False, default=0)
    mission_count = Column(Integer, nullable=False, default=0)
    is_deployed = Column(Boolean, nullable=False, default=False)
    current_deployment_id = Column(String(64))


class DeploymentRow(Base):
    __tablename__ = "deployments"

    deployment_id = Column(String(64), primary_key=True)
    mission_id = Column(String(64), nullable=False, index=True)
    agent_id = Column(String(64), nullable=False, index=True)
    proxim8_id = Column(String(64), nullable=False)
    agent_name = Column(String(255), nullable=False)
    approach = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, index=True)
    deployed_at = Column(DateTime(timezone=True), nullable=False)
    completes_at = Column(DateTime(timezone=True), nullable=False)
    duration_ms = Column(Integer, nullable=False)
    final_success_rate = Column(Float, nullable=False)
    roll_seed = Column(BigInteger, nullable=False)
    current_phase = Column(Integer, nullable=False, default=0)
    phase_outcomes = Column(JSON, nullable=False, default=list)
    overall_success = Column(Boolean)
    result = Column(JSON(none_as_null=True))
    abandoned_at = Column(DateTime(timezone=True))


def create_sql_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def init_db(engine: Engine) -> sessionmaker:
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def _to_deployment(row: DeploymentRow) -> Deployment:
    return Deployment(
        deployment_id=row.deployment_id,
        mission_id=row.mission_id,
        agent_id=row.agent_id,
        proxim8_id=row.proxim8_id,
        agent_name=row.agent_name,
        approach=row.approach,
        deployed_at=as_utc(row.deployed_at),
        completes_at=as_utc(row.completes_at),
        duration_ms=row.duration_ms,
        final_success_rate=row.final_success_rate,
        roll_seed=row.roll_seed,
        status=DeploymentStatus(row.status),
        current_phase=row.current_phase,
        phase_outcomes=[PhaseOutcome.from_dict(o) for o in row.phase_outcomes or []],
        overall_success=row.overall_success,
        result=MissionResult.from_dict(row.result) if row.result else None,
        abandoned_at=as_utc(row.abandoned_at) if row.abandoned_at is not None else None,
    )


class SqlDeploymentStore:
    def __init__(self, sessions: sessionmaker) -> None:
        self._sessions = sessions

    def create(self, deployment: Deployment) -> None:
        with self._sessions.begin() as session:
            session.add(
                DeploymentRow(
                    deployment_id=deployment.deployment_id,
                    mission_id=deployment.mission_id,
                    agent_id=deployment.agent_id,
                    proxim8_id=deployment.proxim8_id,
                    agent_name=deployment.agent_name,
                    approach=deployment.approach,
                    status=deployment.status.value,
                    deployed_at=deployment.deployed_at,
                    completes_at=deployment.completes_at,
                    duration_ms=deployment.duration_ms,
                    final_success_rate=deployment.final_success_rate,
                    roll_seed=deployment.roll_seed,
                    current_phase=deployment.current_phase,
                    phase_outcomes=[o.to_dict() for o in deployment.phase_outcomes],
                    overall_success=deployment.overall_success,
                    result=deployment.result.to_dict() if deployment.result else None,
                    abandoned_at=deployment.abandoned_at,
                )
            )

    def get(self, deployment_id: str) -> Deployment | None:
        with self._sessions() as session:
            row = session.get(DeploymentRow, deployment_id)
            return _to_deployment(row) if row is not None else None

    def list_for_agent(self, agent_id: str) -> list[Deployment]:
        with self._sessions() as session:
            rows = session.scalars(
                select(DeploymentRow)
                .where(DeploymentRow.agent_id == agent_id)
                .order_by(DeploymentRow.deployed_at)
            ).all()
            return [_to_deployment(row) for row in rows]

    def record_roll(self, deployment_id: str, overall_success: bool) -> bool:
        with self._sessions.begin() as session:
            session.execute(
                update(DeploymentRow)
                .where(DeploymentRow.deployment_id == deployment_id)
                .where(DeploymentRow.overall_success.is_(None))
                .values(overall_success=overall_success)
            )
            stored = session.scalar(
                select(DeploymentRow.overall_success).where(DeploymentRow.deployment_id == deployment_id)
            )
        if stored is None:
            raise KeyError(deployment_id)
        return bool(stored)

    def append_phase_outcomes(
        self, deployment_id: str, expected_phase: int, outcomes: list[PhaseOutcome]
    ) -> bool:
        with self._sessions.begin() as session:
            existing = session.scalar(
                select(DeploymentRow.phase_outcomes).where(DeploymentRow.deployment_id == deployment_id)
            )
            if existing is None:
                raise KeyError(deployment_id)
            merged = list(existing)[:expected_phase] + [o.to_dict() for o in outcomes]
            # current_phase only moves with phase_outcomes, so the guard covers both.
            result = session.execute(
                update(DeploymentRow)
                .where(DeploymentRow.deployment_id == deployment_id)
                .where(DeploymentRow.current_phase == expected_phase)
                .where(DeploymentRow.status == DeploymentStatus.ACTIVE.value)
                .values(phase_outcomes=merged, current_phase=len(merged))
            )
            return result.rowcount == 1

    def finalize(self, deployment_id: str, status: DeploymentStatus, result: MissionResult) -> bool:
        with self._sessions.begin() as session:
            outcome = session.execute(
                update(DeploymentRow)
                .where(DeploymentRow.deployment_id == deployment_id)
                .where(DeploymentRow.result.is_(None))
                .where(DeploymentRow.status == DeploymentStatus.ACTIVE.value)
                .values(
                    status=status.value,
                    result=result.to_dict(),
                    overall_success=result.overall_success,
                )
            )
            return outcome.rowcount == 1

    def abandon(self, deployment_id: str, at: datetime) -> bool:
        with self._sessions.begin() as session:
            outcome = session.execute(
                update(DeploymentRow)
                .where(DeploymentRow.deployment_id == deployment_id)
                .where(DeploymentRow.status == DeploymentStatus.ACTIVE.value)
                .values(status=DeploymentStatus.ABANDONED.value, abandoned_at=at)
            )
            return outcome.rowcount == 1


class SqlAgentStore:
    def __init__(self, sessions: sessionmaker) -> None:
        self._sessions = sessions

    def add_agent(self, agent: Agent) -> None:
        with self._sessions.begin() as session:
            if session.get(AgentRow, agent.agent_id) is not None:
                raise AgentExistsError(agent.agent_id)
            session.add(
                AgentRow(
                    agent_id=agent.agent_id,
                    codename=agent.codename,
                    timeline_points=agent.timeline_points,
                    rank=agent.rank.value,
                    daily_deployments=agent.daily_deployments,
                    last_deployment_date=agent.last_deployment_date,
                    missions_succeeded=agent.missions_succeeded,
                    missions_failed=agent.missions_failed,
                    missions_deployed=agent.missions_deployed,
                    total_timeline_shift=agent.total_timeline_shift,
                    lore_fragments=list(agent.lore_fragments),
                    achievements=list(agent.achievements),
                )
            )
            for unit in agent.proxim8s.values():
                session.add(self._unit_row(agent.agent_id, unit))

    def add_proxim8(self, agent_id: str, proxim8: Proxim8) -> None:
        with self._sessions.begin() as session:
            if session.get(AgentRow, agent_id) is None:
                raise AgentNotFoundError(agent_id)
            if session.get(Proxim8Row, proxim8.proxim8_id) is not None:
                raise Proxim8ExistsError(proxim8.proxim8_id)
            session.add(self._unit_row(agent_id, _fresh_unit(proxim8)))

    def get_agent(self, agent_id: str) -> Agent | None:
        with self._sessions() as session:
            row = session.get(AgentRow, agent_id)
            if row is None:
                return None
            units = session.scalars(select(Proxim8Row).where(Proxim8Row.agent_id == agent_id)).all()
            return Agent(
                agent_id=row.agent_id,
                codename=row.codename,
                timeline_points=row.timeline_points,
                rank=AgentRank(row.rank),
                daily_deployments=row.daily_deployments,
                last_deployment_date=row.last_deployment_date,
                missions_succeeded=row.missions_succeeded,
                missions_failed=row.missions_failed,
                missions_deployed=row.missions_deployed,
                total_timeline_shift=row.total_timeline_shift,
                lore_fragments=list(row.lore_fragments or []),
                achievements=list(row.achievements or []),
                proxim8s={
                    u.proxim8_id: Proxim8(
                        proxim8_id=u.proxim8_id,
                        name=u.name,
                        personality=u.personality,
                        level=u.level,
                        experience=u.experience,
                        mission_count=u.mission_count,
                        is_deployed=u.is_deployed,
                        current_deployment_id=u.current_deployment_id,
                    )
                    for u in units
                },
            )

    def check_and_reserve_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                update(Proxim8Row)
                .where(Proxim8Row.proxim8_id == proxim8_id)
                .where(Proxim8Row.agent_id == agent_id)
                .where(Proxim8Row.is_deployed.is_(False))
                .values(is_deployed=True, current_deployment_id=deployment_id)
            )
            return result.rowcount == 1

    def release_proxim8(self, agent_id: str, proxim8_id: str, deployment_id: str) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                update(Proxim8Row)
                .where(Proxim8Row.proxim8_id == proxim8_id)
                .where(Proxim8Row.agent_id == agent_id)
                .where(Proxim8Row.current_deployment_id == deployment_id)
                .values(is_deployed=False, current_deployment_id=None)
            )
            return result.rowcount == 1

    def check_and_increment_daily_count(self, agent_id: str, today: date, cap: int) -> bool:
        if cap < 1:
            return False
        with self._sessions.begin() as session:
            reset = session.execute(
                update(AgentRow)
                .where(AgentRow.agent_id == agent_id)
                .where(or_(AgentRow.last_deployment_date.is_(None), AgentRow.last_deployment_date != today))
                .values(daily_deployments=1, last_deployment_date=today)
            )
            if reset.rowcount == 1:
                return True
            bumped = session.execute(
                update(AgentRow)
                .where(AgentRow.agent_id == agent_id)
                .where(AgentRow.last_deployment_date == today)
                .where(AgentRow.daily_deployments < cap)
                .values(daily_deployments=AgentRow.daily_deployments + 1)
            )
            return bumped.rowcount == 1

    def apply_rewards(
        self,
        agent_id: str,
        proxim8_id: str,
        *,
        success: bool,
        timeline_points: int,
        timeline_shift: int,
        experience: int,
        lore_fragments: list[str],
        achievements: list[str],
    ) -> None:
        with self._sessions.begin() as session:
            row = session.scalar(select(AgentRow).where(AgentRow.agent_id == agent_id).with_for_update())
            if row is None:
                raise AgentNotFoundError(agent_id)
            row.timeline_points += timeline_points
            if success:
                row.missions_succeeded += 1
            else:
                row.missions_failed += 1
            row.missions_deployed += 1
            row.total_timeline_shift += timeline_shift
            row.rank = rank_for(row.timeline_points, row.missions_succeeded, row.total_timeline_shift).value
            row.lore_fragments = list(row.lore_fragments or []) + list(lore_fragments)
            known = list(row.achievements or [])
            row.achievements = known + [a for a in achievements if a not in known]
            unit = session.get(Proxim8Row, proxim8_id, with_for_update=True)
            if unit is not None:
                unit.experience += experience
                unit.mission_count += 1
                unit.level = level_for_experience(unit.experience)

    @staticmethod
    def _unit_row(agent_id: str, unit: Proxim8) -> Proxim8Row:
        return Proxim8Row(
            proxim8_id=unit.proxim8_id,
            agent_id=agent_id,
            name=unit.name,
            personality=unit.personality,
            level=unit.level,
            experience=unit.experience,
            mission_count=unit.mission_count,
            is_deployed=unit.is_deployed,
            current_deployment_id=unit.current_deployment_id,
        )


def _fresh_unit(unit: Proxim8) -> Proxim8:
    """A freshly registered unit is never deployed."""
    return Proxim8(
        proxim8_id=unit.proxim8_id,
        name=unit.name,
        personality=unit.personality,
        level=unit.level,
        experience=unit.experience,
        mission_count=unit.mission_count,
    )


def create_sql_stores(url: str) -> tuple[SqlDeploymentStore, SqlAgentStore]:
    engine = create_sql_engine(url)
    sessions = init_db(engine)
    logger.info("Using SQL stores at %s", engine.url.render_as_string(hide_password=True))
    return SqlDeploymentStore(sessions), SqlAgentStore(sessions)

