"""Status reporting - outcome comments and reactions on the triggering comment."""

import structlog

from src.locks.models import RequestContext

from .client import GitHubClient

logger = structlog.get_logger()

THUMBS_UP = "+1"
THUMBS_DOWN = "-1"
ROCKET = "rocket"


class StatusReporter:
    """Reports an outcome back to the issue or PR a command came from."""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def report(
        self,
        ctx: RequestContext,
        reaction_id: int | None,
        message: str,
        success: bool = False,
        alt_success_reaction: bool = False,
    ) -> None:
        """Post ``message`` and swap the initial reaction for the outcome.

        ``alt_success_reaction`` uses a thumbs up instead of a rocket, for
        successful commands that did not deploy anything.
        """
        if ctx.issue_number is None:
            logger.info("No origin to report to", message=message)
            return

        await self.client.create_issue_comment(ctx.repo, ctx.issue_number, message)

        if ctx.comment_id is None:
            return

        if success:
            reaction = THUMBS_UP if alt_success_reaction else ROCKET
        else:
            reaction = THUMBS_DOWN

        await self.client.add_comment_reaction(ctx.repo, ctx.comment_id, reaction)
        if reaction_id is not None:
            await self.client.delete_comment_reaction(ctx.repo, ctx.comment_id, reaction_id)
