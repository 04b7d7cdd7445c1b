from __future__ import annotations

from hypothesis import strategies as st

from mission_sim.domain.types import Personality
from tests.helpers.factories import DURATION_MS


def poll_offsets_strategy(max_polls: int = 8) -> st.SearchStrategy[list[int]]:
    """Poll times in ms relative to deployed_at, including some before it."""
    return st.lists(
        st.integers(min_value=-30_000, max_value=DURATION_MS + 60_000),
        min_size=1,
        max_size=max_polls,
    )


def approach_strategy() -> st.SearchStrategy[str]:
    return st.sampled_from(["low", "medium", "high", "certain", "doomed"])


def personality_strategy() -> st.SearchStrategy[str]:
    return st.sampled_from([p.value for p in Personality])


def percents_strategy() -> st.SearchStrategy[list[float]]:
    return st.lists(st.integers(min_value=0, max_value=100).map(float), min_size=1, max_size=6)
