"""Check service - read-only lock existence query for headless runs."""

from dataclasses import dataclass

import structlog

from .exceptions import LockDecodeError
from .models import LOCK_FILE, LockRecord, Scope
from .outputs import RunOutputs
from .store import LockStore

logger = structlog.get_logger()


@dataclass
class CheckResult:
    locked: bool
    scope: Scope
    record: LockRecord | None = None


class CheckService:
    """Answers whether a scope is locked, Global locks included."""

    def __init__(self, store: LockStore, outputs: RunOutputs | None = None):
        self.store = store
        self.outputs = outputs if outputs is not None else RunOutputs()

    async def check(self, scope: Scope) -> CheckResult:
        global_scope = Scope.global_scope()
        global_record = await self._read(global_scope)

        if global_record is not None:
            logger.info("Global lock found", created_by=global_record.created_by)
            return self._finish(CheckResult(True, global_scope, global_record))

        if scope.is_global:
            return self._finish(CheckResult(False, scope))

        if not await self.store.branch_exists(scope.branch):
            return self._finish(CheckResult(False, scope))

        record = await self._read(scope)
        return self._finish(CheckResult(record is not None, scope, record))

    async def _read(self, scope: Scope) -> LockRecord | None:
        data = await self.store.read_file(LOCK_FILE, scope.branch)
        if data is None:
            return None

        try:
            return LockRecord.decode(data)
        except LockDecodeError as e:
            logger.warning(
                "Lock file exists but cannot be decoded - setting locked to false",
                branch=scope.branch,
                error=str(e),
            )
            return None

    def _finish(self, result: CheckResult) -> CheckResult:
        self.outputs.set_output("locked", result.locked)
        self.outputs.save_state("locked", result.locked)
        self.outputs.set_output("lock_environment", str(result.scope))

        record = result.record
        if record is not None:
            self.outputs.set_output("branch", record.branch)
            self.outputs.set_output("created_by", record.created_by)
            self.outputs.set_output("created_at", record.model_dump(mode="json")["created_at"])
            self.outputs.set_output("reason", record.reason)
            self.outputs.set_output("link", record.link)

        return result
