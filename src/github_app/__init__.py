"""GitHub integration - API client, lock store and status reporting."""

from .client import GitHubClient
from .status import StatusReporter
from .store import GitHubLockStore

__all__ = [
    "GitHubClient",
    "GitHubLockStore",
    "StatusReporter",
]
