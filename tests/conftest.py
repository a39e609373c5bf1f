"""Shared fixtures - an in-memory lock store with GitHub's create semantics."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.locks.models import LOCK_FILE, LockConfig, LockRecord, RequestContext, Scope
from src.locks.outputs import RunOutputs
from src.locks.store import ContentConflictError, RefExistsError, RefNotFoundError

REPO = "corp/test-repo"
DEFAULT_SHA = "deadbeef"


class FakeLockStore:
    """LockStore keeping branches and files in memory.

    Creating an existing branch or file fails the way the GitHub API does.
    """

    def __init__(self):
        self.branches: set[str] = {"main"}
        self.files: dict[tuple[str, str], bytes] = {}
        self.delete_status = 204
        self.created_branches: list[tuple[str, str]] = []
        self.writes: list[tuple[str, str, str, bool]] = []

    async def branch_exists(self, name: str) -> bool:
        return name in self.branches

    async def create_branch(self, name: str, from_sha: str) -> None:
        if name in self.branches:
            raise RefExistsError(name)
        self.branches.add(name)
        self.created_branches.append((name, from_sha))

    async def default_branch_head(self) -> str:
        return DEFAULT_SHA

    async def read_file(self, path: str, ref: str) -> bytes | None:
        return self.files.get((ref, path))

    async def write_file(
        self,
        path: str,
        ref: str,
        content: bytes,
        message: str,
        overwrite: bool = False,
    ) -> None:
        if ref not in self.branches:
            raise RuntimeError(f"no such branch: {ref}")
        if not overwrite and (ref, path) in self.files:
            raise ContentConflictError(path)
        self.files[(ref, path)] = content
        self.writes.append((ref, path, message, overwrite))

    async def delete_ref(self, name: str) -> int:
        if name not in self.branches:
            raise RefNotFoundError(name)
        self.branches.discard(name)
        self.files = {k: v for k, v in self.files.items() if k[0] != name}
        return self.delete_status

    def put_record(self, record: LockRecord) -> None:
        branch = record.scope.branch
        self.branches.add(branch)
        self.files[(branch, LOCK_FILE)] = record.encode()

    def put_raw(self, scope: Scope, data: bytes) -> None:
        self.branches.add(scope.branch)
        self.files[(scope.branch, LOCK_FILE)] = data

    def record(self, scope: Scope) -> LockRecord | None:
        data = self.files.get((scope.branch, LOCK_FILE))
        return LockRecord.decode(data) if data is not None else None


def make_record(
    created_by: str,
    environment: str | None = "production",
    sticky: bool = True,
    reason: str | None = None,
) -> LockRecord:
    is_global = environment is None
    return LockRecord(
        reason=reason,
        branch="octocats-everywhere",
        created_at=datetime(2022, 6, 14, 21, 12, 14, 41000, tzinfo=timezone.utc),
        created_by=created_by,
        sticky=sticky,
        environment=environment,
        is_global=is_global,
        unlock_command=".unlock --global" if is_global else f".unlock {environment}",
        link=f"https://github.com/{REPO}/pull/2#issuecomment-456",
    )


@pytest.fixture
def store():
    return FakeLockStore()


@pytest.fixture
def config():
    return LockConfig()


@pytest.fixture
def reporter():
    mock = AsyncMock()
    mock.report = AsyncMock()
    return mock


@pytest.fixture
def outputs():
    return RunOutputs()


def context(actor: str = "octocat") -> RequestContext:
    return RequestContext(
        repo=REPO,
        actor=actor,
        issue_number=2,
        comment_id=456,
        body=".lock",
        run_id="12345",
    )
