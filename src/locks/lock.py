"""Lock coordinator - claim a deployment lock or report who holds it."""

from typing import Any

import structlog

from src.coordination.scope_guard import ScopeGuard

from .exceptions import LockConflictError, LockDecodeError
from .messages import claimed_message, denial_message, owner_message
from .models import (
    HEADLESS_BRANCH,
    LOCK_COMMIT_MSG,
    LOCK_FILE,
    LockConfig,
    LockRecord,
    LockResult,
    LockStatus,
    RequestContext,
    Scope,
    utcnow,
)
from .outputs import RunOutputs
from .store import ContentConflictError, LockStore, RefExistsError

logger = structlog.get_logger()


class LockCoordinator:
    """Claims locks per scope, with the Global lock taking precedence.

    A claim first consults the Global lock: if someone else holds it the
    request is denied whatever scope was asked for. Otherwise the scope's own
    lock branch is checked, and created along with its lock file when absent.

    Both creations are conditional in the store, so of two racing claimants
    exactly one writes the lock file; the other re-reads it and is denied.
    """

    def __init__(
        self,
        store: LockStore,
        config: LockConfig,
        reporter: Any | None = None,
        outputs: RunOutputs | None = None,
        guard: ScopeGuard | None = None,
    ):
        self.store = store
        self.config = config
        self.reporter = reporter
        self.outputs = outputs if outputs is not None else RunOutputs()
        self.guard = guard

    async def lock(
        self,
        ctx: RequestContext,
        scope: Scope,
        ref: str | None = None,
        sticky: bool = True,
        details_only: bool = False,
        headless: bool = False,
        reason: str | None = None,
        reaction_id: int | None = None,
    ) -> LockResult:
        """Claim the lock for ``scope`` on behalf of ``ctx.actor``.

        Args:
            ctx: Request origin and claimant
            scope: Environment or Global scope to lock
            ref: Branch requesting the lock (ignored in headless mode)
            sticky: Whether the lock persists until explicitly released
            details_only: Only report the current lock, never claim it
            headless: No interactive origin; report through outputs only
            reason: Reason stored with a new lock
            reaction_id: Initial reaction on the triggering comment

        Returns:
            LockResult with the outcome and the record that decided it
        """
        if headless:
            sticky = True
        self.outputs.set_output("headless", headless)

        logger.debug(
            "Lock request",
            scope=str(scope),
            branch=scope.branch,
            actor=ctx.actor,
            details_only=details_only,
        )

        # Global lock first - it overrides every environment lock
        global_record, _ = await self._read_lock_file(Scope.global_scope().branch)

        if global_record is not None:
            if details_only:
                return self._result(LockStatus.DETAILS_ONLY, scope, global_record)

            if global_record.created_by != ctx.actor:
                return await self._deny(ctx, scope, global_record, sticky, headless, reaction_id)

            await self._owner_notice(ctx, global_record, sticky, headless, reaction_id)
            if scope.is_global or self.config.global_lock_preempts:
                return self._result(self._owner_status(headless), scope, global_record)
            logger.info("Requestor owns the global lock - continuing checks", actor=ctx.actor)

        elif details_only and scope.is_global:
            return self._result(LockStatus.NO_LOCK, scope)

        if self.guard is not None and not details_only:
            async with self.guard.hold(ctx.repo, scope.branch):
                return await self._check_scope(
                    ctx, scope, ref, sticky, details_only, headless, reason, reaction_id
                )

        return await self._check_scope(
            ctx, scope, ref, sticky, details_only, headless, reason, reaction_id
        )

    async def _check_scope(
        self,
        ctx: RequestContext,
        scope: Scope,
        ref: str | None,
        sticky: bool,
        details_only: bool,
        headless: bool,
        reason: str | None,
        reaction_id: int | None,
    ) -> LockResult:
        branch = scope.branch

        if not await self.store.branch_exists(branch):
            if details_only:
                return self._result(LockStatus.NO_LOCK, scope)

            try:
                sha = await self.store.default_branch_head()
                await self.store.create_branch(branch, sha)
                logger.info("Created lock branch", branch=branch)
            except RefExistsError:
                logger.warning("Lock branch created by a concurrent claim", branch=branch)

            return await self._create_lock(
                ctx, scope, ref, sticky, headless, reason, reaction_id
            )

        record, undecodable = await self._read_lock_file(branch)

        if record is None:
            if details_only:
                return self._result(LockStatus.NO_LOCK, scope)
            return await self._create_lock(
                ctx, scope, ref, sticky, headless, reason, reaction_id, overwrite=undecodable
            )

        if details_only:
            return self._result(LockStatus.DETAILS_ONLY, scope, record)

        return await self._check_owner(ctx, scope, record, sticky, headless, reaction_id)

    async def _create_lock(
        self,
        ctx: RequestContext,
        scope: Scope,
        ref: str | None,
        sticky: bool,
        headless: bool,
        reason: str | None,
        reaction_id: int | None,
        overwrite: bool = False,
    ) -> LockResult:
        """Write a new lock file on the scope's branch."""
        if headless:
            link = ctx.run_link(self.config.server_url)
            branch = HEADLESS_BRANCH
        else:
            link = ctx.comment_link(self.config.server_url)
            branch = ref

        record = LockRecord(
            reason=reason,
            branch=branch,
            created_at=utcnow(),
            created_by=ctx.actor,
            sticky=sticky,
            environment=scope.name,
            is_global=scope.is_global,
            unlock_command=self.config.unlock_command(scope),
            link=link,
        )

        try:
            await self.store.write_file(
                LOCK_FILE,
                scope.branch,
                record.encode(),
                LOCK_COMMIT_MSG,
                overwrite=overwrite,
            )
        except ContentConflictError:
            logger.warning("Lock file written by a concurrent claim", branch=scope.branch)
            existing, _ = await self._read_lock_file(scope.branch)
            if existing is None:
                raise LockConflictError(
                    f"lock file on {scope.branch} changed during claim and cannot be read"
                )
            return await self._check_owner(ctx, scope, existing, sticky, headless, reaction_id)

        logger.info("Deployment lock obtained", scope=str(scope), actor=ctx.actor)

        if sticky:
            message = claimed_message(record)
            if headless:
                logger.info("Deployment lock is sticky", message=message)
            elif self.reporter is not None:
                await self.reporter.report(
                    ctx, reaction_id, message, success=True, alt_success_reaction=True
                )

        return self._result(LockStatus.CLAIMED, scope, record)

    async def _check_owner(
        self,
        ctx: RequestContext,
        scope: Scope,
        record: LockRecord,
        sticky: bool,
        headless: bool,
        reaction_id: int | None,
    ) -> LockResult:
        if record.created_by == ctx.actor:
            await self._owner_notice(ctx, record, sticky, headless, reaction_id)
            return self._result(self._owner_status(headless), scope, record)
        return await self._deny(ctx, scope, record, sticky, headless, reaction_id)

    async def _owner_notice(
        self,
        ctx: RequestContext,
        record: LockRecord,
        sticky: bool,
        headless: bool,
        reaction_id: int | None,
    ) -> None:
        logger.info("Requestor is the owner of the lock", actor=ctx.actor, scope=str(record.scope))
        if not sticky:
            return

        message = owner_message(record, ctx.actor)
        if headless or self.reporter is None:
            logger.info("Lock already owned", message=message)
            return
        await self.reporter.report(ctx, reaction_id, message, success=True, alt_success_reaction=True)

    async def _deny(
        self,
        ctx: RequestContext,
        scope: Scope,
        record: LockRecord,
        sticky: bool,
        headless: bool,
        reaction_id: int | None,
    ) -> LockResult:
        """Report that someone else holds the lock and fail the run."""
        message = denial_message(record, ctx.actor, sticky, ctx.repo, self.config)

        if not headless and self.reporter is not None:
            await self.reporter.report(ctx, reaction_id, message)

        # post-run cleanup must not touch a lock we don't own
        self.outputs.save_state("bypass", True)
        self.outputs.set_failed(message)

        logger.warning(
            "Deployment lock held by another user",
            scope=str(record.scope),
            holder=record.created_by,
            actor=ctx.actor,
        )
        return self._result(LockStatus.DENIED, scope, record)

    async def _read_lock_file(self, branch: str) -> tuple[LockRecord | None, bool]:
        """Read a branch's lock record.

        Returns the record (None when missing or undecodable) and whether
        file bytes were present but undecodable.
        """
        data = await self.store.read_file(LOCK_FILE, branch)
        if data is None:
            return None, False

        try:
            return LockRecord.decode(data), False
        except LockDecodeError as e:
            logger.warning("Lock file exists but cannot be decoded", branch=branch, error=str(e))
            return None, True

    @staticmethod
    def _owner_status(headless: bool) -> LockStatus:
        return LockStatus.OWNER_HEADLESS if headless else LockStatus.OWNER

    @staticmethod
    def _result(
        status: LockStatus,
        scope: Scope,
        record: LockRecord | None = None,
    ) -> LockResult:
        return LockResult(status=status, scope=scope, record=record)
