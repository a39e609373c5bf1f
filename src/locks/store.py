"""Lock store interface - refs and files in a shared versioned store."""

from typing import Protocol


class StoreError(Exception):
    """Base exception for expected store conditions."""


class RefNotFoundError(StoreError):
    """Raised when deleting a ref that does not exist."""


class RefExistsError(StoreError):
    """Raised when creating a ref that another writer already created."""


class ContentConflictError(StoreError):
    """Raised when creating a file that another writer already created."""


class LockStore(Protocol):
    """Operations the lock coordinators need from the store."""

    async def branch_exists(self, name: str) -> bool:
        ...

    async def create_branch(self, name: str, from_sha: str) -> None:
        """Create ``name`` at ``from_sha``; raise RefExistsError if it exists."""
        ...

    async def default_branch_head(self) -> str:
        ...

    async def read_file(self, path: str, ref: str) -> bytes | None:
        """File contents at ``ref``, or None if the file does not exist."""
        ...

    async def write_file(
        self,
        path: str,
        ref: str,
        content: bytes,
        message: str,
        overwrite: bool = False,
    ) -> None:
        """Commit ``content`` to ``path`` on ``ref``.

        Without ``overwrite`` the write only creates the file and raises
        ContentConflictError if it already exists.
        """
        ...

    async def delete_ref(self, name: str) -> int:
        """Delete branch ``name``, returning the response status.

        Raises RefNotFoundError if the branch does not exist.
        """
        ...
