"""Unlock coordinator - release a deployment lock."""

from enum import Enum
from typing import Any

import structlog

from .exceptions import UnlockError
from .messages import no_lock_set_message, unlocked_message
from .models import RequestContext, Scope
from .outputs import RunOutputs
from .store import LockStore, RefNotFoundError

logger = structlog.get_logger()


class UnlockOutcome(str, Enum):
    """Successful unlock outcomes. Headless runs get their own markers."""
    RELEASED = "removed lock"
    RELEASED_HEADLESS = "removed lock - headless"
    NOT_SET = "no deployment lock currently set"
    NOT_SET_HEADLESS = "no deployment lock currently set - headless"


class UnlockCoordinator:
    """Releases a scope's lock by deleting its lock branch."""

    def __init__(
        self,
        store: LockStore,
        reporter: Any | None = None,
        outputs: RunOutputs | None = None,
    ):
        self.store = store
        self.reporter = reporter
        self.outputs = outputs if outputs is not None else RunOutputs()

    async def unlock(
        self,
        ctx: RequestContext,
        scope: Scope,
        reaction_id: int | None = None,
        headless: bool = False,
    ) -> UnlockOutcome:
        """Delete the lock branch for ``scope``.

        Releasing a lock that doesn't exist succeeds. Any status other than
        204 raises UnlockError.
        """
        branch = scope.branch
        interactive = not headless and self.reporter is not None

        try:
            status = await self.store.delete_ref(branch)
        except RefNotFoundError:
            logger.info("No deployment lock currently set", branch=branch, headless=headless)
            if headless:
                return UnlockOutcome.NOT_SET_HEADLESS
            if interactive:
                await self.reporter.report(
                    ctx,
                    reaction_id,
                    no_lock_set_message(str(scope)),
                    success=True,
                    alt_success_reaction=True,
                )
            return UnlockOutcome.NOT_SET
        except Exception as e:
            logger.error("Failed to release lock", branch=branch, error=str(e))
            if interactive:
                await self.reporter.report(ctx, reaction_id, str(e))
            raise

        if status != 204:
            message = f"failed to delete lock branch: {branch} - HTTP: {status}"
            logger.error("Unexpected unlock response", branch=branch, status=status)
            if interactive:
                await self.reporter.report(ctx, reaction_id, message)
            raise UnlockError(message, status=status)

        logger.info("Successfully removed lock", branch=branch)
        if scope.is_global:
            self.outputs.set_output("global_lock_released", True)

        if headless:
            return UnlockOutcome.RELEASED_HEADLESS

        if interactive:
            await self.reporter.report(
                ctx,
                reaction_id,
                unlocked_message(str(scope)),
                success=True,
                alt_success_reaction=True,
            )
        return UnlockOutcome.RELEASED
