"""Engine facade that wires the catalog, stores and systems together."""

from __future__ import annotations

import logging
from random import Random

from mission_sim.config import Settings
from mission_sim.domain.agents import Agent, Proxim8
from mission_sim.domain.deployment import Deployment
from mission_sim.domain.errors import AgentNotFoundError
from mission_sim.domain.snapshot import DeploymentSnapshot, MissionAvailability
from mission_sim.rules.catalog import MissionCatalog
from mission_sim.sim.clock import Clock, utc_now
from mission_sim.store.base import AgentStore, DeploymentStore
from mission_sim.store.memory import MemoryAgentStore, MemoryDeploymentStore
from mission_sim.systems import deployment as deployment_system
from mission_sim.systems import status as status_system
from mission_sim.systems.outcome import LoreDrawer, LoreSource
from mission_sim.systems.progression import RewardIssuer, RewardSink

logger = logging.getLogger(__name__)


class MissionEngine:
    def __init__(
        self,
        *,
        catalog: MissionCatalog,
        deployments: DeploymentStore,
        agents: AgentStore,
        clock: Clock = utc_now,
        rng: Random | None = None,
        lore: LoreSource | None = None,
        rewards: RewardSink | None = None,
        daily_cap: int = 10,
        enforce_unlocks: bool = True,
    ) -> None:
        self.catalog = catalog
        self.deployments = deployments
        self.agents = agents
        self.clock = clock
        self.rng = rng or Random()
        self.lore = lore or LoreDrawer(0.6)
        self.rewards = rewards or RewardIssuer(agents)
        self.daily_cap = daily_cap
        self.enforce_unlocks = enforce_unlocks

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Clock = utc_now) -> "MissionEngine":
        catalog = MissionCatalog.load(settings.catalog_path)
        if settings.database_url:
            from mission_sim.store.sql import create_sql_stores

            deployments, agents = create_sql_stores(settings.database_url)
        else:
            deployments, agents = MemoryDeploymentStore(), MemoryAgentStore()
        logger.info("Loaded %s missions", len(catalog.templates))
        return cls(
            catalog=catalog,
            deployments=deployments,
            agents=agents,
            clock=clock,
            lore=LoreDrawer(settings.lore_drop_chance),
            daily_cap=settings.daily_deployment_cap,
            enforce_unlocks=settings.enforce_mission_unlocks,
        )

    def deploy_mission(self, mission_id: str, proxim8_id: str, approach: str, agent_id: str) -> Deployment:
        return deployment_system.deploy_mission(
            catalog=self.catalog,
            deployments=self.deployments,
            agents=self.agents,
            mission_id=mission_id,
            proxim8_id=proxim8_id,
            approach=approach,
            agent_id=agent_id,
            now=self.clock(),
            rng=self.rng,
            daily_cap=self.daily_cap,
            enforce_unlocks=self.enforce_unlocks,
        )

    def get_deployment_status(self, deployment_id: str) -> DeploymentSnapshot:
        return status_system.get_deployment_status(
            catalog=self.catalog,
            deployments=self.deployments,
            agents=self.agents,
            rewards=self.rewards,
            lore=self.lore,
            deployment_id=deployment_id,
            now=self.clock(),
        )

    def abandon_deployment(self, deployment_id: str) -> Deployment:
        return status_system.abandon_deployment(
            deployments=self.deployments,
            agents=self.agents,
            deployment_id=deployment_id,
            now=self.clock(),
        )

    def list_missions_for_agent(self, agent_id: str) -> list[MissionAvailability]:
        return status_system.list_missions_for_agent(
            catalog=self.catalog,
            deployments=self.deployments,
            agents=self.agents,
            agent_id=agent_id,
            enforce_unlocks=self.enforce_unlocks,
        )

    def register_agent(self, agent_id: str, codename: str | None = None) -> Agent:
        self.agents.add_agent(Agent(agent_id=agent_id, codename=codename))
        logger.info("Registered agent %s", agent_id)
        return self.get_agent(agent_id)

    def add_proxim8(self, agent_id: str, proxim8_id: str, name: str, personality: str) -> Agent:
        self.agents.add_proxim8(
            agent_id, Proxim8(proxim8_id=proxim8_id, name=name, personality=personality.upper())
        )
        return self.get_agent(agent_id)

    def get_agent(self, agent_id: str) -> Agent:
        agent = self.agents.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent
