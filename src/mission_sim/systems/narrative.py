from __future__ import annotations

import re
from typing import Mapping

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

GENERIC_PHASE = {
    "success": "{agentName} completed {phaseName}.",
    "failure": "{agentName} ran into trouble during {phaseName}.",
}
GENERIC_FINAL = {
    "success": "{agentName} completed {missionTitle}. The timeline shifts toward freedom.",
    "failure": "{agentName} could not complete {missionTitle}. Oneirocom tightens its grip.",
}


def format_narrative(template: str, values: Mapping[str, str]) -> str:
    """Substitute {key} placeholders; unknown keys are left as written."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


def pick_template(templates: Mapping[str, str], valence: str, fallback: Mapping[str, str]) -> str:
    text = templates.get(valence)
    if not isinstance(text, str) or not text.strip():
        return fallback[valence]
    return text
