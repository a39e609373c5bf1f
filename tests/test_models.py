"""Tests for lock records, scopes and configuration."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from src.locks.exceptions import LockDecodeError
from src.locks.models import (
    GLOBAL_LOCK_BRANCH,
    LockConfig,
    LockRecord,
    Scope,
    lock_age,
)
from src.orchestrator.config import Settings

from conftest import make_record


class TestScope:
    """Test scope naming."""

    def test_environment_branch(self):
        """Environment locks live on <env>-branch-deploy-lock."""
        assert Scope.environment("production").branch == "production-branch-deploy-lock"

    def test_global_branch(self):
        scope = Scope.global_scope()
        assert scope.is_global
        assert scope.branch == GLOBAL_LOCK_BRANCH == "global-branch-deploy-lock"
        assert str(scope) == "global"

    def test_environment_named_global_is_global(self):
        """An environment called 'global' shares the Global lock."""
        assert Scope.environment("global") == Scope.global_scope()


class TestLockRecord:
    """Test lock file encoding."""

    def test_wire_field_names(self):
        """Records serialize with the lock file's snake_case field names."""
        record = make_record("octocat", environment=None, reason="maintenance")
        data = json.loads(record.encode())

        assert set(data) == {
            "reason",
            "branch",
            "created_at",
            "created_by",
            "sticky",
            "environment",
            "global",
            "unlock_command",
            "link",
        }
        assert data["global"] is True
        assert data["environment"] is None
        assert data["created_at"].startswith("2022-06-14T21:12:14.041")

    def test_decode_roundtrip(self):
        record = make_record("octocat", reason="feature X")
        assert LockRecord.decode(record.encode()) == record

    def test_decode_existing_lock_file(self):
        """Lock files written by earlier versions still decode."""
        content = base64.b64decode(
            "ewogICAgInJlYXNvbiI6IG51bGwsCiAgICAiYnJhbmNoIjogImNvb2wtbmV3LWZlYXR1cmUiLAogICAgImNyZWF0ZWRfYXQiOiAi"
            "MjAyMi0wNi0xNVQyMToxMjoxNC4wNDFaIiwKICAgICJjcmVhdGVkX2J5IjogIm1vbmFsaXNhIiwKICAgICJzdGlja3kiOiBmYWxz"
            "ZSwKICAgICJlbnZpcm9ubWVudCI6ICJwcm9kdWN0aW9uIiwKICAgICJ1bmxvY2tfY29tbWFuZCI6ICIudW5sb2NrIHByb2R1Y3Rp"
            "b24iLAogICAgImdsb2JhbCI6IGZhbHNlLAogICAgImxpbmsiOiAiaHR0cHM6Ly9naXRodWIuY29tL3Rlc3Qtb3JnL3Rlc3QtcmVw"
            "by9wdWxsLzMjaXNzdWVjb21tZW50LTEyMyIKfQo="
        )
        record = LockRecord.decode(content)

        assert record.created_by == "monalisa"
        assert record.branch == "cool-new-feature"
        assert record.environment == "production"
        assert record.is_global is False
        assert record.sticky is False
        assert record.reason is None
        assert record.unlock_command == ".unlock production"
        assert record.created_at == datetime(2022, 6, 15, 21, 12, 14, 41000, tzinfo=timezone.utc)

    @pytest.mark.parametrize("data", [b"not json", b"null", b"[]", b'{"reason": "x"}', b"\xff\xfe"])
    def test_decode_invalid(self, data):
        """Bytes that aren't a lock record raise LockDecodeError."""
        with pytest.raises(LockDecodeError):
            LockRecord.decode(data)

    def test_record_scope(self):
        assert make_record("octocat", environment=None).scope.is_global
        assert make_record("octocat", environment="staging").scope == Scope.environment("staging")


class TestLockConfig:
    """Test lock configuration."""

    def test_unlock_command(self):
        config = LockConfig()
        assert config.unlock_command(Scope.environment("staging")) == ".unlock staging"
        assert config.unlock_command(Scope.global_scope()) == ".unlock --global"

    def test_lock_link(self):
        config = LockConfig(server_url="https://github.example.com")
        assert (
            config.lock_link("corp/app", Scope.environment("production"))
            == "https://github.example.com/corp/app/blob/production-branch-deploy-lock/lock.json"
        )

    def test_from_settings(self):
        settings = Settings(
            environment=" staging ",
            environment_targets="production, staging ,development,",
            lock_trigger=".claim",
            github_server_url="https://github.example.com/",
            global_lock_preempts=True,
        )
        config = LockConfig.from_settings(settings)

        assert config.environment == "staging"
        assert config.environment_targets == ("production", "staging", "development")
        assert config.lock_trigger == ".claim"
        assert config.server_url == "https://github.example.com"
        assert config.global_lock_preempts is True


class TestLockAge:
    def test_lock_age(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        now = created + timedelta(days=1, hours=2, minutes=3, seconds=4)
        assert lock_age(created, now) == "1d:2h:3m:4s"

    def test_lock_age_never_negative(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert lock_age(created, created - timedelta(minutes=5)) == "0d:0h:0m:0s"
