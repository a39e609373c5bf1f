"""Configuration management."""

import logging

import structlog
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment."""

    # GitHub auth - either a token (Actions / PAT) or App credentials
    github_token: str | None = None
    github_app_id: str | None = None
    github_app_private_key: str | None = None
    github_webhook_secret: str = ""  # required by the webhook service, unused headless

    # GitHub run context
    github_repository: str | None = None
    github_actor: str | None = None
    github_run_id: str | None = None
    github_server_url: str = "https://github.com"
    github_api_url: str = "https://api.github.com"
    github_output: str | None = None
    http_timeout_seconds: float = 30.0

    # Redis (optional claim guard)
    redis_url: str | None = None
    claim_guard_ttl_ms: int = 30_000

    # Logging
    log_level: str = "INFO"

    # Lock commands
    environment: str = "production"
    environment_targets: str = "production,development,staging"
    global_lock_flag: str = "--global"
    lock_trigger: str = ".lock"
    unlock_trigger: str = ".unlock"
    lock_info_alias: str = ".wcid"
    global_lock_preempts: bool = False

    # Headless mode
    mode: str | None = None  # lock, unlock, check
    reason: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def environment_target_list(self) -> list[str]:
        """Environment targets split on commas, whitespace removed."""
        return [t.strip() for t in self.environment_targets.split(",") if t.strip()]


def configure_logging(level: str) -> None:
    """Configure structlog to drop events below ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
