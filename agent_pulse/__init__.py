"""Agent Pulse: live tool-call activity views over an agent session store."""

__version__ = "0.1.0"
