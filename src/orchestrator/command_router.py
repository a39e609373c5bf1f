"""Command router - handles lock commands posted as issue/PR comments."""

from typing import Any

import structlog

from src.coordination.scope_guard import ScopeGuard
from src.github_app.client import GitHubClient
from src.github_app.status import StatusReporter
from src.github_app.store import GitHubLockStore
from src.locks.environment import EnvironmentResolver, find_reason, parse_command
from src.locks.lock import LockCoordinator
from src.locks.messages import details_message, no_lock_message
from src.locks.models import LockConfig, RequestContext
from src.locks.outputs import RunOutputs
from src.locks.unlock import UnlockCoordinator

from .config import Settings

logger = structlog.get_logger()

# Permission levels allowed to run lock commands
ALLOWED_PERMISSIONS = {"admin", "maintain", "write"}


class CommandRouter:
    """Routes lock, unlock and lock info comments to the lock coordinators."""

    def __init__(self, settings: Settings, client: GitHubClient | None = None):
        self.settings = settings
        self.config = LockConfig.from_settings(settings)
        self.github = client if client is not None else GitHubClient(settings)
        self.guard = ScopeGuard(settings) if settings.redis_url else None

    def command_type(self, body: str) -> str | None:
        """Which trigger, if any, the comment starts with."""
        tokens = body.strip().split()
        if not tokens:
            return None

        match tokens[0]:
            case self.config.lock_trigger:
                return "lock"
            case self.config.unlock_trigger:
                return "unlock"
            case self.config.info_alias:
                return "lock-info-alias"
            case _:
                return None

    async def handle_comment_event(self, payload: dict[str, Any]) -> RunOutputs | None:
        """Handle issue/PR comments for lock commands."""
        if payload.get("action") != "created":
            return None

        comment = payload.get("comment", {})
        body = comment.get("body", "").strip()
        command_type = self.command_type(body)
        if command_type is None:
            return None

        issue = payload.get("issue", {})
        ctx = RequestContext(
            repo=payload.get("repository", {}).get("full_name"),
            actor=comment.get("user", {}).get("login"),
            issue_number=issue.get("number"),
            comment_id=comment.get("id"),
            body=body,
        )

        outputs = RunOutputs()
        outputs.set_output("type", command_type)
        outputs.set_output("triggered", True)
        outputs.set_output("comment_id", ctx.comment_id)
        outputs.save_state("comment_id", ctx.comment_id)

        logger.info(
            "Processing command",
            command=command_type,
            author=ctx.actor,
            issue=ctx.issue_number,
        )

        try:
            await self._dispatch(ctx, command_type, "pull_request" in issue, outputs)
        except Exception as e:
            outputs.save_state("bypass", True)
            logger.exception("Lock command failed", command=command_type, issue=ctx.issue_number)
            outputs.set_failed(str(e))

        return outputs

    async def _dispatch(
        self,
        ctx: RequestContext,
        command_type: str,
        is_pr: bool,
        outputs: RunOutputs,
    ) -> None:
        reporter = StatusReporter(self.github)

        reaction = await self.github.add_comment_reaction(ctx.repo, ctx.comment_id, "eyes")
        reaction_id = reaction.get("id")
        outputs.save_state("reaction_id", reaction_id)

        permission = await self.github.get_collaborator_permission(ctx.repo, ctx.actor)
        if permission not in ALLOWED_PERMISSIONS:
            message = (
                f"👋 __{ctx.actor}__, seems as if you have not admin/maintain/write "
                f"permissions in this repo, permissions: {permission}"
            )
            await reporter.report(ctx, reaction_id, message)
            outputs.set_failed(message)
            return

        resolver = EnvironmentResolver(self.config, reporter)
        scope = await resolver.resolve(ctx.body, ctx, reaction_id)
        if scope is None:
            outputs.set_failed("No matching environment target found")
            return

        store = GitHubLockStore(self.github, ctx.repo)
        command = parse_command(ctx.body, self.config)

        if command.info or command_type == "lock-info-alias":
            coordinator = LockCoordinator(store, self.config, reporter, outputs)
            result = await coordinator.lock(ctx, scope, details_only=True, reaction_id=reaction_id)

            if result.record is not None:
                message = details_message(result.record, ctx.repo, self.config)
                logger.info("Deployment lock is claimed", created_by=result.record.created_by)
            else:
                message = no_lock_message(str(scope), ctx.repo, self.config)
                logger.info("No active deployment locks found", scope=str(scope))

            await reporter.report(ctx, reaction_id, message, success=True, alt_success_reaction=True)
            return

        if command_type == "lock":
            ref = None
            if is_pr:
                pr = await self.github.get_pull_request(ctx.repo, ctx.issue_number)
                ref = pr["head"]["ref"]

            coordinator = LockCoordinator(store, self.config, reporter, outputs, self.guard)
            await coordinator.lock(
                ctx,
                scope,
                ref=ref,
                sticky=True,
                reason=find_reason(command, sticky=True),
                reaction_id=reaction_id,
            )
            return

        if command_type == "unlock":
            await UnlockCoordinator(store, reporter, outputs).unlock(ctx, scope, reaction_id)
