"""Agent Pulse test suite."""
