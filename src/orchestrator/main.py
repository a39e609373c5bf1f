"""Main lock service - webhook handler and API."""

import hashlib
import hmac
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Header, HTTPException, Request

from .command_router import CommandRouter
from .config import Settings, configure_logging

logger = structlog.get_logger()
settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging(settings.log_level)
    logger.info("Starting deploy lock service")

    app.state.command_router = CommandRouter(settings)

    yield

    logger.info("Shutting down deploy lock service")


app = FastAPI(
    title="Deploy Lock",
    description="Environment and global deployment locks for GitHub repositories",
    version="0.1.0",
    lifespan=lifespan,
)


def verify_webhook_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Verify GitHub webhook signature."""
    if not signature.startswith("sha256="):
        return False

    expected = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()

    return hmac.compare_digest(f"sha256={expected}", signature)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "deploy-lock"}


@app.post("/webhook")
async def github_webhook(
    request: Request,
    x_github_event: str = Header(...),
    x_hub_signature_256: str = Header(...),
):
    """Handle GitHub webhook events."""

    # An empty secret would accept payloads signed with an empty key
    if not settings.github_webhook_secret:
        logger.error("Webhook secret not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    # Verify signature
    body = await request.body()
    if not verify_webhook_signature(body, x_hub_signature_256, settings.github_webhook_secret):
        raise HTTPException(status_code=401, detail="Invalid signature")

    payload = await request.json()

    logger.info(
        "Received webhook",
        event=x_github_event,
        action=payload.get("action"),
        repo=payload.get("repository", {}).get("full_name"),
    )

    router: CommandRouter = request.app.state.command_router

    match x_github_event:
        case "issue_comment":
            outputs = await router.handle_comment_event(payload)
            if outputs is not None:
                return {
                    "status": "failed" if outputs.failed else "processed",
                    "outputs": outputs.outputs,
                }
            return {"status": "ignored"}
        case _:
            logger.debug("Ignoring event", event=x_github_event)

    return {"status": "ignored"}


def cli():
    """CLI entry point."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    cli()
