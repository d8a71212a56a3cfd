"""Containment checks for paths derived from record ids."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger("agent_pulse.storage")


class PathGuardError(ValueError):
    """Raised when a resolved path falls outside every allowed root."""

    def __init__(self, candidate: Path, roots: list[Path]):
        self.candidate = candidate
        self.roots = roots
        super().__init__(f"Path escapes allowed roots: {candidate}")


def _is_within(candidate: Path, root: Path) -> bool:
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


def assert_allowed_path(candidate_path: Path | str, allowed_roots: Iterable[Path | str]) -> Path:
    """Resolve ``candidate_path`` and require it to sit inside one of ``allowed_roots``.

    Returns the resolved path. An empty root list disables the check.
    """
    candidate = Path(candidate_path).expanduser().resolve(strict=False)
    roots = [Path(root).expanduser().resolve(strict=False) for root in allowed_roots if str(root).strip()]
    if not roots:
        return candidate
    if any(_is_within(candidate, root) for root in roots):
        return candidate
    logger.warning("Rejected path outside allowed roots: %s", candidate)
    raise PathGuardError(candidate, roots)
