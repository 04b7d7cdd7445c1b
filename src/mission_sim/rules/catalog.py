"""Data-driven mission catalog."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mission_sim.domain.templates import (
    ApproachRewards,
    Compatibility,
    MissionApproach,
    MissionPhase,
    MissionTemplate,
    RateRange,
)

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "training_missions.json"


class CatalogError(ValueError):
    """Error loading or validating the mission catalog."""


@dataclass(frozen=True)
class MissionCatalog:
    """Static mission templates keyed by mission id."""

    templates: dict[str, MissionTemplate]

    @staticmethod
    def load(path: Path | None = None) -> "MissionCatalog":
        path = path or DEFAULT_CATALOG_PATH
        data = _load_json(path)
        if "missions" not in data:
            raise CatalogError(f"{path}: missing 'missions' key")
        return MissionCatalog.from_data(data["missions"], source=str(path))

    @staticmethod
    def from_data(missions: list[Any], *, source: str = "<memory>") -> "MissionCatalog":
        if not isinstance(missions, list):
            raise CatalogError(f"{source}: 'missions' must be array")
        templates: dict[str, MissionTemplate] = {}
        for item in missions:
            template = _parse_mission(item, source)
            if template.mission_id in templates:
                raise CatalogError(f"{source}: duplicate missionId {template.mission_id}")
            templates[template.mission_id] = template
        return MissionCatalog(templates=templates)

    def get(self, mission_id: str) -> MissionTemplate | None:
        return self.templates.get(mission_id)

    def by_sequence(self, sequence: int) -> MissionTemplate | None:
        for template in self.templates.values():
            if template.sequence == sequence:
                return template
        return None

    def missions(self) -> list[MissionTemplate]:
        return sorted(self.templates.values(), key=lambda t: (t.sequence, t.mission_id))


def _load_json(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Invalid JSON in {path}: {exc}") from exc


def _parse_mission(item: Any, source: str) -> MissionTemplate:
    if not isinstance(item, dict):
        raise CatalogError(f"{source}: mission entry must be object")
    mission_id = item.get("missionId")
    if not isinstance(mission_id, str) or not mission_id:
        raise CatalogError(f"{source}: mission.missionId must be string")
    where = f"{source}: {mission_id}"

    duration_ms = _positive_int(item.get("duration"), f"{where}: duration")

    raw_approaches = item.get("approaches")
    if not isinstance(raw_approaches, list) or not raw_approaches:
        raise CatalogError(f"{where}: approaches must be non-empty array")
    approaches = tuple(_parse_approach(entry, where) for entry in raw_approaches)

    raw_phases = item.get("phases", [])
    if not isinstance(raw_phases, list) or not raw_phases:
        raise CatalogError(f"{where}: phases must be non-empty array")
    phases = _parse_phases(raw_phases, where)

    compat = item.get("compatibility", {})
    if not isinstance(compat, dict):
        raise CatalogError(f"{where}: compatibility must be object")
    preferred = compat.get("preferred", [])
    if not isinstance(preferred, list):
        raise CatalogError(f"{where}: compatibility.preferred must be array")

    return MissionTemplate(
        mission_id=mission_id,
        sequence=_int(item.get("sequence", 1), f"{where}: sequence"),
        title=str(item.get("title", mission_id)),
        description=str(item.get("description", "")),
        duration_ms=duration_ms,
        approaches=approaches,
        phases=phases,
        compatibility=Compatibility(
            preferred=tuple(str(p).upper() for p in preferred),
            bonus=_float(compat.get("bonus", 0.0), f"{where}: compatibility.bonus"),
            penalty=_float(compat.get("penalty", 0.0), f"{where}: compatibility.penalty"),
        ),
        final_narratives=_string_map(item.get("finalNarratives")),
    )


def _parse_approach(entry: Any, where: str) -> MissionApproach:
    if not isinstance(entry, dict):
        raise CatalogError(f"{where}: approach entry must be object")
    approach_type = entry.get("type")
    if not isinstance(approach_type, str) or not approach_type:
        raise CatalogError(f"{where}: approach.type must be string")
    success_rate = _parse_range(entry.get("successRate"), f"{where}: {approach_type}.successRate")
    if success_rate.min < 0.0 or success_rate.max > 1.0:
        raise CatalogError(f"{where}: {approach_type}.successRate must lie within [0, 1]")
    reward_where = f"{where}: {approach_type}.rewards"
    rewards = entry.get("rewards") or {}
    if not isinstance(rewards, dict):
        raise CatalogError(f"{reward_where} must be object")
    duration = entry.get("duration")
    return MissionApproach(
        type=approach_type.lower(),
        name=str(entry.get("name", approach_type)),
        description=str(entry.get("description", "")),
        success_rate=success_rate,
        timeline_shift=_parse_range(entry.get("timelineShift"), f"{where}: {approach_type}.timelineShift"),
        rewards=ApproachRewards(
            timeline_points=_int(rewards.get("timelinePoints", 100), f"{reward_where}.timelinePoints"),
            experience=_int(rewards.get("experience", 50), f"{reward_where}.experience"),
        ),
        duration_ms=None if duration is None else _positive_int(duration, f"{where}: {approach_type}.duration"),
    )


def _parse_phases(raw_phases: list[Any], where: str) -> tuple[MissionPhase, ...]:
    phases: list[MissionPhase] = []
    for index, entry in enumerate(raw_phases):
        if not isinstance(entry, dict):
            raise CatalogError(f"{where}: phase entry must be object")
        try:
            percent = float(entry.get("durationPercent", 0.0))
        except (TypeError, ValueError):
            percent = 0.0
        templates = _string_map(entry.get("narrativeTemplates"))
        if entry.get("narrativeTemplates") is not None and not templates:
            logger.warning("%s: phase %s has unusable narrative templates", where, index + 1)
        phases.append(
            MissionPhase(
                id=_int(entry.get("id", index + 1), f"{where}: phase {index + 1} id"),
                name=str(entry.get("name", f"Phase {index + 1}")),
                duration_percent=max(0.0, percent),
                narrative_templates=templates,
                critical_path=bool(entry.get("criticalPath", False)),
            )
        )
    if not any(phase.critical_path for phase in phases):
        # The closing phase always reports the mission's real outcome.
        last = phases[-1]
        phases[-1] = MissionPhase(
            id=last.id,
            name=last.name,
            duration_percent=last.duration_percent,
            narrative_templates=last.narrative_templates,
            critical_path=True,
        )
    return tuple(phases)


def _parse_range(value: Any, where: str) -> RateRange:
    if not isinstance(value, dict) or "min" not in value or "max" not in value:
        raise CatalogError(f"{where} must be {{min, max}}")
    try:
        low = float(value["min"])
        high = float(value["max"])
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where} must be numeric") from exc
    if low > high:
        raise CatalogError(f"{where}: min greater than max")
    return RateRange(min=low, max=high)


def _int(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise CatalogError(f"{where} must be integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where} must be integer") from exc


def _float(value: Any, where: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where} must be numeric") from exc


def _positive_int(value: Any, where: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where} must be integer milliseconds") from exc
    if number <= 0:
        raise CatalogError(f"{where} must be positive")
    return number


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}
