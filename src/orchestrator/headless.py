"""Headless runner - lock, unlock or check from a workflow step."""

import asyncio
import sys

import structlog

from src.coordination.scope_guard import ScopeGuard
from src.github_app.client import GitHubClient
from src.github_app.store import GitHubLockStore
from src.locks.check import CheckService
from src.locks.lock import LockCoordinator
from src.locks.models import LockConfig, LockStatus, RequestContext, Scope
from src.locks.outputs import RunOutputs
from src.locks.unlock import UnlockCoordinator

from .config import Settings, configure_logging

logger = structlog.get_logger()

MODES = ("lock", "unlock", "check")


async def run_headless(
    settings: Settings,
    client: GitHubClient | None = None,
    outputs: RunOutputs | None = None,
) -> RunOutputs:
    """Run the operation named by ``settings.mode`` and collect its outputs."""
    if settings.mode not in MODES:
        raise ValueError(f"Unknown mode: {settings.mode!r} (expected one of {', '.join(MODES)})")
    if not settings.github_repository:
        raise ValueError("GITHUB_REPOSITORY is required in headless mode")
    if not settings.github_actor:
        raise ValueError("GITHUB_ACTOR is required in headless mode")

    if outputs is None:
        outputs = RunOutputs()
    if client is None:
        client = GitHubClient(settings)

    config = LockConfig.from_settings(settings)
    ctx = RequestContext(
        repo=settings.github_repository,
        actor=settings.github_actor,
        run_id=settings.github_run_id,
    )
    scope = Scope.environment(config.environment)
    store = GitHubLockStore(client, ctx.repo)

    logger.info("Headless run", mode=settings.mode, scope=str(scope), repo=ctx.repo)

    match settings.mode:
        case "lock":
            guard = ScopeGuard(settings) if settings.redis_url else None
            result = await LockCoordinator(store, config, outputs=outputs, guard=guard).lock(
                ctx,
                scope,
                headless=True,
                reason=settings.reason or None,
            )
            if result.status == LockStatus.DENIED:
                logger.warning("Lock denied", holder=result.record.created_by)
        case "unlock":
            outcome = await UnlockCoordinator(store, outputs=outputs).unlock(
                ctx, scope, headless=True
            )
            logger.info("Unlock finished", outcome=outcome.value)
        case "check":
            await CheckService(store, outputs).check(scope)

    return outputs


def headless():
    """CLI entry point for headless lock operations."""
    settings = Settings()
    configure_logging(settings.log_level)

    outputs = asyncio.run(run_headless(settings))

    if settings.github_output:
        outputs.write_github_output(settings.github_output)

    if outputs.failed:
        sys.exit(1)


if __name__ == "__main__":
    headless()
