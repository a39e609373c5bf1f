"""Scope guard - serializes lock claims per scope across processes."""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as redis
import structlog

from src.locks.exceptions import LockConflictError
from src.orchestrator.config import Settings

logger = structlog.get_logger()


class ScopeGuard:
    """Short-lived Redis mutex around the check-then-create of a lock claim."""

    # Delete the key only while it still holds our token
    RELEASE_SCRIPT = """
    if redis.call('GET', KEYS[1]) == ARGV[1] then
        return redis.call('DEL', KEYS[1])
    end
    return 0
    """

    def __init__(self, settings: Settings, client: redis.Redis | None = None):
        self.settings = settings
        self.redis = client

    async def _get_redis(self) -> redis.Redis:
        """Lazy Redis connection."""
        if self.redis is None:
            self.redis = redis.from_url(self.settings.redis_url)
        return self.redis

    def _guard_key(self, repo: str, branch: str) -> str:
        """Generate Redis key for a scope's claim guard."""
        return f"deploy-lock:{repo}:{branch}"

    @asynccontextmanager
    async def hold(self, repo: str, branch: str) -> AsyncIterator[None]:
        """Hold the guard for ``branch`` while the body runs.

        Raises LockConflictError if another claimant holds it.
        """
        r = await self._get_redis()
        key = self._guard_key(repo, branch)
        token = uuid.uuid4().hex

        acquired = await r.set(key, token, nx=True, px=self.settings.claim_guard_ttl_ms)
        if not acquired:
            logger.warning("Claim guard busy", repo=repo, branch=branch)
            raise LockConflictError(f"another lock claim for {branch} is in progress")

        logger.debug("Acquired claim guard", repo=repo, branch=branch)
        try:
            yield
        finally:
            released = await r.eval(self.RELEASE_SCRIPT, 1, key, token)
            if released != 1:
                logger.warning("Claim guard expired before release", repo=repo, branch=branch)
