"""Lock data model - records, scopes, results and configuration."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import LockDecodeError

if TYPE_CHECKING:
    from src.orchestrator.config import Settings

LOCK_BRANCH_SUFFIX = "branch-deploy-lock"
GLOBAL_LOCK_BRANCH = f"global-{LOCK_BRANCH_SUFFIX}"
LOCK_FILE = "lock.json"
LOCK_COMMIT_MSG = "lock [skip ci]"
LOCK_INFO_FLAGS = ("--info", "--i", "-i", "-d", "--details", "--d")
REASON_FLAG = "--reason"
HEADLESS_BRANCH = "headless mode"


@dataclass(frozen=True)
class Scope:
    """Lock target - a named environment, or Global when ``name`` is None."""
    name: str | None = None

    @classmethod
    def global_scope(cls) -> "Scope":
        return cls(None)

    @classmethod
    def environment(cls, name: str) -> "Scope":
        """Environment scope; the name ``global`` is the Global scope."""
        if name == "global":
            return cls.global_scope()
        return cls(name)

    @property
    def is_global(self) -> bool:
        return self.name is None

    @property
    def branch(self) -> str:
        """Name of the branch holding this scope's lock file."""
        if self.is_global:
            return GLOBAL_LOCK_BRANCH
        return f"{self.name}-{LOCK_BRANCH_SUFFIX}"

    def __str__(self) -> str:
        return "global" if self.is_global else self.name


class LockRecord(BaseModel):
    """Lock file contents - who holds the lock, since when, and why.

    Serialized as JSON with the field names ``reason``, ``branch``,
    ``created_at``, ``created_by``, ``sticky``, ``environment``, ``global``,
    ``unlock_command`` and ``link``.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reason: str | None = None
    branch: str | None = None
    created_at: datetime
    created_by: str
    sticky: bool = False
    environment: str | None = None
    is_global: bool = Field(default=False, alias="global")
    unlock_command: str = ""
    link: str | None = None

    @property
    def scope(self) -> Scope:
        if self.is_global or self.environment is None:
            return Scope.global_scope()
        return Scope.environment(self.environment)

    def encode(self) -> bytes:
        """Serialize to the lock file's JSON bytes."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> "LockRecord":
        """Parse lock file bytes, raising LockDecodeError if they are not a record."""
        try:
            return cls.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            raise LockDecodeError(f"lock file cannot be decoded: {e}") from e


class LockStatus(str, Enum):
    """Outcome of a lock request."""
    CLAIMED = "claimed"
    DENIED = "denied"
    OWNER = "owner"
    OWNER_HEADLESS = "owner-headless"
    NO_LOCK = "no-lock"
    DETAILS_ONLY = "details-only"


@dataclass
class LockResult:
    """Result of a lock request, with the record that decided it."""
    status: LockStatus
    scope: Scope
    record: LockRecord | None = None


@dataclass(frozen=True)
class LockConfig:
    """Command tokens and targets shared by every lock component."""
    environment: str = "production"
    environment_targets: tuple[str, ...] = ("production", "development", "staging")
    global_flag: str = "--global"
    lock_trigger: str = ".lock"
    unlock_trigger: str = ".unlock"
    info_alias: str = ".wcid"
    info_flags: tuple[str, ...] = LOCK_INFO_FLAGS
    reason_flag: str = REASON_FLAG
    server_url: str = "https://github.com"
    # When True, owning the Global lock skips environment lock checks
    global_lock_preempts: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "LockConfig":
        return cls(
            environment=settings.environment.strip(),
            environment_targets=tuple(settings.environment_target_list),
            global_flag=settings.global_lock_flag.strip(),
            lock_trigger=settings.lock_trigger.strip(),
            unlock_trigger=settings.unlock_trigger.strip(),
            info_alias=settings.lock_info_alias.strip(),
            server_url=settings.github_server_url.rstrip("/"),
            global_lock_preempts=settings.global_lock_preempts,
        )

    def unlock_command(self, scope: Scope) -> str:
        """Command that releases the lock for ``scope``."""
        if scope.is_global:
            return f"{self.unlock_trigger} {self.global_flag}"
        return f"{self.unlock_trigger} {scope.name}"

    def lock_link(self, repo: str, scope: Scope) -> str:
        return f"{self.server_url}/{repo}/blob/{scope.branch}/{LOCK_FILE}"


@dataclass
class RequestContext:
    """Who is asking, and from where."""
    repo: str
    actor: str
    issue_number: int | None = None
    comment_id: int | None = None
    body: str = ""
    run_id: str | None = None

    def comment_link(self, server_url: str) -> str:
        return f"{server_url}/{self.repo}/pull/{self.issue_number}#issuecomment-{self.comment_id}"

    def run_link(self, server_url: str) -> str:
        return f"{server_url}/{self.repo}/actions/runs/{self.run_id}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def lock_age(created_at: datetime, now: datetime | None = None) -> str:
    """Human readable time since ``created_at``, e.g. ``1d:2h:3m:4s``."""
    if now is None:
        now = utcnow()
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    total = max(int((now - created_at).total_seconds()), 0)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{days}d:{hours}h:{minutes}m:{seconds}s"
