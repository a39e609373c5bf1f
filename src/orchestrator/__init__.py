"""Orchestrator - webhook service and headless runner for deployment locks."""

from .config import Settings, configure_logging

__all__ = [
    "Settings",
    "configure_logging",
]
