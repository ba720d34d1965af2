"""Startup steps run by the supervisor, one module per step."""
