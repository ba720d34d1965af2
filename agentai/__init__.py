"""Container startup supervisor for the OpenCode AgentAI image."""

__version__ = "1.0.0"
