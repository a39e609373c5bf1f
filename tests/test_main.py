"""Tests for the webhook service."""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from src.locks.outputs import RunOutputs
from src.orchestrator.main import app, settings, verify_webhook_signature


def sign(body: bytes, secret: str) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class TestWebhookSignature:
    """Test webhook signature verification."""

    def test_valid_signature(self):
        body = b'{"action": "created"}'
        assert verify_webhook_signature(body, sign(body, "s3cret"), "s3cret")

    def test_wrong_secret(self):
        body = b'{"action": "created"}'
        assert not verify_webhook_signature(body, sign(body, "other"), "s3cret")

    def test_missing_prefix(self):
        body = b'{"action": "created"}'
        digest = sign(body, "s3cret").removeprefix("sha256=")
        assert not verify_webhook_signature(body, digest, "s3cret")


SECRET = "webhook-s3cret"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "github_webhook_secret", SECRET)
    with TestClient(app) as test_client:
        yield test_client


class TestEndpoints:
    """Test the HTTP endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "deploy-lock"}

    def test_bad_signature(self, client):
        response = client.post(
            "/webhook",
            content=b"{}",
            headers={"X-GitHub-Event": "issue_comment", "X-Hub-Signature-256": "sha256=nope"},
        )
        assert response.status_code == 401

    def test_comment_event(self, client):
        outputs = RunOutputs()
        outputs.set_output("type", "lock")
        body = json.dumps({"action": "created", "repository": {"full_name": "corp/app"}}).encode()

        with patch.object(
            client.app.state.command_router,
            "handle_comment_event",
            AsyncMock(return_value=outputs),
        ):
            response = client.post(
                "/webhook",
                content=body,
                headers={
                    "X-GitHub-Event": "issue_comment",
                    "X-Hub-Signature-256": sign(body, SECRET),
                },
            )

        assert response.status_code == 200
        assert response.json() == {"status": "processed", "outputs": {"type": "lock"}}

    def test_other_event_ignored(self, client):
        body = b'{"action": "opened"}'
        response = client.post(
            "/webhook",
            content=body,
            headers={
                "X-GitHub-Event": "pull_request",
                "X-Hub-Signature-256": sign(body, SECRET),
            },
        )
        assert response.json() == {"status": "ignored"}

    def test_missing_secret_refused(self, client, monkeypatch):
        monkeypatch.setattr(settings, "github_webhook_secret", "")
        body = b'{"action": "created"}'

        response = client.post(
            "/webhook",
            content=body,
            headers={"X-GitHub-Event": "issue_comment", "X-Hub-Signature-256": sign(body, "")},
        )

        assert response.status_code == 500
        assert response.json() == {"detail": "Webhook secret not configured"}
