"""Lock coordination exceptions."""


class LockError(Exception):
    """Base exception for lock coordination errors."""


class LockDecodeError(LockError):
    """Raised when lock file bytes are not a valid lock record."""


class LockConflictError(LockError):
    """Raised when a concurrent claim leaves the lock in an unreadable state."""


class UnlockError(LockError):
    """Raised when the store refuses to delete a lock branch."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
