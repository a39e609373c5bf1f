"""Coordination layer - cross-process claim serialization."""

from .scope_guard import ScopeGuard

__all__ = [
    "ScopeGuard",
]
