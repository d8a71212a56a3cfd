"""Agent identity canonicalization for activity series attribution."""
from __future__ import annotations

from typing import Any, Literal

CanonicalAgent = Literal["sisyphus", "prometheus", "atlas", "other"]

# Evaluated in order. "sisyphus-junior" also matches the plain "sisyphus"
# prefix; both land on the same category.
_AGENT_PREFIXES: tuple[tuple[str, CanonicalAgent], ...] = (
    ("sisyphus-junior", "sisyphus"),
    ("sisyphus", "sisyphus"),
    ("prometheus", "prometheus"),
    ("atlas", "atlas"),
)

NAMED_AGENTS: tuple[CanonicalAgent, ...] = ("sisyphus", "prometheus", "atlas")

# (id, label, tone) in payload order.
SERIES_ORDER: tuple[tuple[str, str, str], ...] = (
    ("overall-main", "Overall", "muted"),
    ("agent:sisyphus", "Sisyphus", "teal"),
    ("agent:prometheus", "Prometheus", "red"),
    ("agent:atlas", "Atlas", "green"),
    ("background-total", "Background tasks (total)", "muted"),
)


def canonicalize_agent(agent: Any) -> CanonicalAgent:
    """Map a free-form agent label onto a canonical agent category.

    Example:
      "Sisyphus v2" -> "sisyphus"
      "PROMETHEUS"  -> "prometheus"
      None          -> "other"
    """
    if not isinstance(agent, str):
        return "other"
    lowered = agent.strip().lower()
    if not lowered:
        return "other"
    for prefix, canonical in _AGENT_PREFIXES:
        if lowered.startswith(prefix):
            return canonical
    return "other"


def agent_series_id(agent: CanonicalAgent) -> str:
    return f"agent:{agent}"
