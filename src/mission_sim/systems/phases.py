"""Phase resolution.

A deployment is never ticked. Each read computes which phase boundaries the
clock has crossed since the last persisted outcome and narrates only those.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from mission_sim.domain.deployment import Deployment, PhaseOutcome
from mission_sim.domain.templates import MissionTemplate
from mission_sim.domain.types import PhaseStatus
from mission_sim.systems.narrative import GENERIC_PHASE, format_narrative, pick_template

logger = logging.getLogger(__name__)


def phase_boundaries(template: MissionTemplate, duration_ms: int) -> list[float]:
    """End offset in ms for every phase; the last one is always duration_ms."""
    count = len(template.phases)
    total = sum(phase.duration_percent for phase in template.phases)
    boundaries: list[float] = []
    cumulative = 0.0
    for index, phase in enumerate(template.phases):
        if total > 0:
            cumulative += phase.duration_percent
            share = cumulative / total
        else:
            share = (index + 1) / count
        boundaries.append(share * duration_ms)
    if boundaries:
        boundaries[-1] = float(duration_ms)
    return boundaries


def resolve_phases(
    deployment: Deployment,
    template: MissionTemplate,
    now: datetime,
    overall_success: Callable[[], bool],
) -> list[PhaseOutcome]:
    """Return outcomes for phases newly crossed at ``now``.

    ``overall_success`` is only called when a critical-path phase resolves.
    Nothing here writes; the caller persists with a conditional append.
    """
    start = len(deployment.phase_outcomes)
    if start >= len(template.phases):
        return []
    elapsed = deployment.elapsed_ms(now)
    boundaries = phase_boundaries(template, deployment.duration_ms)

    values = {
        "agentName": deployment.agent_name,
        "missionTitle": template.title,
        "approach": deployment.approach,
    }
    outcomes: list[PhaseOutcome] = []
    for index in range(start, len(template.phases)):
        if elapsed < boundaries[index]:
            break
        phase = template.phases[index]
        success = overall_success() if phase.critical_path else True
        valence = "success" if success else "failure"
        text = pick_template(phase.narrative_templates, valence, GENERIC_PHASE)
        outcomes.append(
            PhaseOutcome(
                phase_id=phase.id,
                name=phase.name,
                status=PhaseStatus.SUCCESS if success else PhaseStatus.FAILURE,
                narrative=format_narrative(text, {**values, "phaseName": phase.name}),
                completed_at=now,
            )
        )
    if outcomes:
        logger.debug(
            "Deployment %s resolved phases %s-%s",
            deployment.deployment_id,
            start + 1,
            start + len(outcomes),
        )
    return outcomes
