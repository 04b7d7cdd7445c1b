"""Mission template definitions (read-only catalog data)."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RateRange:
    min: float
    max: float

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2.0

    def lerp(self, t: float) -> float:
        return self.min + (self.max - self.min) * t


@dataclass(frozen=True)
class ApproachRewards:
    timeline_points: int
    experience: int


@dataclass(frozen=True)
class MissionApproach:
    type: str
    name: str
    description: str
    success_rate: RateRange
    timeline_shift: RateRange
    rewards: ApproachRewards
    duration_ms: int | None = None


@dataclass(frozen=True)
class MissionPhase:
    id: int
    name: str
    duration_percent: float
    narrative_templates: dict[str, str] = field(default_factory=dict)
    critical_path: bool = False


@dataclass(frozen=True)
class Compatibility:
    preferred: tuple[str, ...]
    bonus: float
    penalty: float


@dataclass(frozen=True)
class MissionTemplate:
    mission_id: str
    sequence: int
    title: str
    description: str
    duration_ms: int
    approaches: tuple[MissionApproach, ...]
    phases: tuple[MissionPhase, ...]
    compatibility: Compatibility
    final_narratives: dict[str, str] = field(default_factory=dict)

    def approach(self, approach_type: str) -> MissionApproach | None:
        wanted = approach_type.lower()
        for approach in self.approaches:
            if approach.type.lower() == wanted:
                return approach
        return None

    def duration_for(self, approach: MissionApproach) -> int:
        if approach.duration_ms is not None:
            return approach.duration_ms
        return self.duration_ms
