"""Deployment lock coordination - claim, release and check scoped locks."""

from .check import CheckResult, CheckService
from .environment import EnvironmentResolver, parse_command
from .exceptions import LockConflictError, LockDecodeError, LockError, UnlockError
from .lock import LockCoordinator
from .models import LockConfig, LockRecord, LockResult, LockStatus, RequestContext, Scope
from .outputs import RunOutputs
from .unlock import UnlockCoordinator, UnlockOutcome

__all__ = [
    "CheckResult",
    "CheckService",
    "EnvironmentResolver",
    "LockConfig",
    "LockConflictError",
    "LockCoordinator",
    "LockDecodeError",
    "LockError",
    "LockRecord",
    "LockResult",
    "LockStatus",
    "RequestContext",
    "RunOutputs",
    "Scope",
    "UnlockCoordinator",
    "UnlockError",
    "UnlockOutcome",
    "parse_command",
]
