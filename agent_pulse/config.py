"""Agent Pulse configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_paths(name: str) -> list[str]:
    value = os.getenv(name) or ""
    return [token.strip() for token in value.split(os.pathsep) if token.strip()]


# Record store written by the agent runtime (session/, message/, part/)
STORAGE_ROOT = Path(
    os.getenv("AGENT_PULSE_STORAGE_ROOT", str(Path.home() / ".local" / "share" / "opencode" / "storage"))
).expanduser()

# Path guard roots; empty disables the guard
ALLOWED_ROOTS = _env_paths("AGENT_PULSE_ALLOWED_ROOTS")

# Aggregation defaults
WINDOW_MS = _env_int("AGENT_PULSE_WINDOW_MS", 300_000)
BUCKET_MS = _env_int("AGENT_PULSE_BUCKET_MS", 2_000)
MAX_MESSAGES = _env_int("AGENT_PULSE_MAX_MESSAGES", 200)
MAX_TOOL_CALLS = _env_int("AGENT_PULSE_MAX_TOOL_CALLS", 300)
MAX_CHILD_SESSIONS = _env_int("AGENT_PULSE_MAX_CHILD_SESSIONS", 25)

# Observability
OTEL_ENABLED = _env_bool("AGENT_PULSE_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("AGENT_PULSE_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("AGENT_PULSE_OTEL_SERVICE_NAME", "agent-pulse")
PROM_PORT = _env_int("AGENT_PULSE_PROM_PORT", 0)

# CORS
FRONTEND_ORIGIN = os.getenv("AGENT_PULSE_FRONTEND_ORIGIN", "http://localhost:5173")
