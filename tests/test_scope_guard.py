"""Tests for the Redis claim guard."""

import pytest

from src.coordination.scope_guard import ScopeGuard
from src.locks.exceptions import LockConflictError
from src.locks.lock import LockCoordinator
from src.locks.models import LockStatus, Scope
from src.orchestrator.config import Settings

from conftest import context


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the guard."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.set_calls: list[dict] = []

    async def set(self, key, value, nx=False, px=None):
        self.set_calls.append({"key": key, "nx": nx, "px": px})
        if nx and key in self.data:
            return None
        self.data[key] = value.encode()
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)

    async def eval(self, script, numkeys, key, token):
        # compare-and-delete, as the release script does
        if self.data.get(key) == token.encode():
            del self.data[key]
            return 1
        return 0


@pytest.fixture
def settings():
    return Settings(redis_url="redis://localhost:6379", claim_guard_ttl_ms=5000)


class TestScopeGuard:
    """Test claim serialization."""

    @pytest.mark.asyncio
    async def test_hold_and_release(self, settings):
        r = FakeRedis()
        guard = ScopeGuard(settings, client=r)

        async with guard.hold("corp/app", "production-branch-deploy-lock"):
            assert "deploy-lock:corp/app:production-branch-deploy-lock" in r.data

        assert r.data == {}
        assert r.set_calls[0]["nx"] is True
        assert r.set_calls[0]["px"] == 5000

    @pytest.mark.asyncio
    async def test_busy_guard_raises(self, settings):
        r = FakeRedis()
        r.data["deploy-lock:corp/app:production-branch-deploy-lock"] = b"someone-else"
        guard = ScopeGuard(settings, client=r)

        with pytest.raises(LockConflictError):
            async with guard.hold("corp/app", "production-branch-deploy-lock"):
                pass

        # not ours to release
        assert r.data["deploy-lock:corp/app:production-branch-deploy-lock"] == b"someone-else"

    @pytest.mark.asyncio
    async def test_released_on_error(self, settings):
        r = FakeRedis()
        guard = ScopeGuard(settings, client=r)

        with pytest.raises(ValueError):
            async with guard.hold("corp/app", "global-branch-deploy-lock"):
                raise ValueError("boom")

        assert r.data == {}

    @pytest.mark.asyncio
    async def test_expired_guard_not_released(self, settings):
        r = FakeRedis()
        guard = ScopeGuard(settings, client=r)
        key = "deploy-lock:corp/app:production-branch-deploy-lock"

        async with guard.hold("corp/app", "production-branch-deploy-lock"):
            # TTL ran out and another claimant took the guard
            r.data[key] = b"other-claimant"

        assert r.data[key] == b"other-claimant"

    @pytest.mark.asyncio
    async def test_coordinator_claims_under_guard(self, settings, store, config, reporter, outputs):
        r = FakeRedis()
        coordinator = LockCoordinator(store, config, reporter, outputs, ScopeGuard(settings, client=r))

        result = await coordinator.lock(context(), Scope.environment("staging"), ref="x")

        assert result.status == LockStatus.CLAIMED
        assert r.set_calls[0]["key"] == "deploy-lock:corp/test-repo:staging-branch-deploy-lock"
        assert r.data == {}

    @pytest.mark.asyncio
    async def test_details_skip_guard(self, settings, store, config, reporter, outputs):
        r = FakeRedis()
        coordinator = LockCoordinator(store, config, reporter, outputs, ScopeGuard(settings, client=r))

        await coordinator.lock(context(), Scope.environment("staging"), details_only=True)

        assert r.set_calls == []
