from __future__ import annotations

import pytest
from pydantic import ValidationError

from mission_sim.config import Settings, get_settings
from mission_sim.engine import MissionEngine
from mission_sim.store.memory import MemoryDeploymentStore
from mission_sim.store.sql import SqlDeploymentStore


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    settings = Settings()
    assert settings.database_url is None
    assert settings.daily_deployment_cap == 10
    assert settings.lore_drop_chance == 0.6
    assert settings.enforce_mission_unlocks is True
    assert settings.admin_token is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MISSION_SIM_DAILY_DEPLOYMENT_CAP", "3")
    monkeypatch.setenv("MISSION_SIM_ADMIN_TOKEN", "letmein")
    monkeypatch.setenv("MISSION_SIM_LOG_LEVEL", "debug")
    settings = Settings()
    assert settings.daily_deployment_cap == 3
    assert settings.admin_token.get_secret_value() == "letmein"
    assert settings.log_level == "DEBUG"


def test_dotenv_file(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("MISSION_SIM_ENFORCE_MISSION_UNLOCKS=false\n", encoding="utf-8")
    assert Settings().enforce_mission_unlocks is False


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(lore_drop_chance=1.5)
    with pytest.raises(ValidationError):
        Settings(daily_deployment_cap=-1)


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_engine_from_settings_selects_store() -> None:
    memory = MissionEngine.from_settings(Settings(database_url=None))
    assert isinstance(memory.deployments, MemoryDeploymentStore)
    assert len(memory.catalog.templates) == 3

    sql = MissionEngine.from_settings(Settings(database_url="sqlite://", daily_deployment_cap=2))
    assert isinstance(sql.deployments, SqlDeploymentStore)
    assert sql.daily_cap == 2
