from __future__ import annotations

from mission_sim.config import get_settings
from mission_sim.engine import MissionEngine

_engine: MissionEngine | None = None


def get_engine() -> MissionEngine:
    """Process-wide engine, built from settings on first use."""
    global _engine
    if _engine is None:
        _engine = MissionEngine.from_settings(get_settings())
    return _engine


def set_engine(engine: MissionEngine | None) -> None:
    global _engine
    _engine = engine
