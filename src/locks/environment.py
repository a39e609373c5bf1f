"""Environment targets - work out which scope a lock command is aimed at."""

import re
from dataclasses import dataclass
from typing import Any

import structlog

from .messages import no_target_message
from .models import LockConfig, RequestContext, Scope

logger = structlog.get_logger()


@dataclass
class Command:
    """A tokenized lock command.

    Grammar: ``trigger [target] [flags...] [--reason <rest of text>]``, where
    flags are the info/detail flags and the global flag, in any position.
    """
    tokens: list[str]
    info: bool = False
    is_global: bool = False
    reason: str | None = None

    @property
    def text(self) -> str:
        """Command text without flags or reason."""
        return " ".join(self.tokens)

    def without_trigger(self, trigger: str) -> str | None:
        """Text following ``trigger``, or None if the command doesn't start with it."""
        if not self.tokens or self.tokens[0] != trigger:
            return None
        return " ".join(self.tokens[1:])


def parse_command(body: str, config: LockConfig) -> Command:
    """Split a comment body into trigger/target tokens, flags and reason."""
    parts = re.split(rf"(?:^|\s){re.escape(config.reason_flag)}(?=\s|$)", body.strip(), maxsplit=1)
    head = parts[0]
    reason = parts[1].strip() if len(parts) > 1 else None

    tokens = []
    info = False
    is_global = False
    for token in head.split():
        if token in config.info_flags:
            info = True
        elif token == config.global_flag:
            is_global = True
        else:
            tokens.append(token)

    return Command(tokens=tokens, info=info, is_global=is_global, reason=reason or None)


def find_reason(command: Command, sticky: bool) -> str | None:
    """Reason recorded with a lock; non-sticky locks are always deployments."""
    if not sticky:
        return "deployment"
    return command.reason


class EnvironmentResolver:
    """Resolves the scope of a lock, unlock or lock info command."""

    def __init__(self, config: LockConfig, reporter: Any | None = None):
        self.config = config
        self.reporter = reporter

    def match(self, body: str) -> Scope | None:
        """Scope named by ``body``, or None when no target matches."""
        command = parse_command(body, self.config)

        # the global flag makes environment names irrelevant
        if command.is_global:
            logger.debug("Global lock flag found in environment target check")
            return Scope.global_scope()

        triggers = (
            self.config.lock_trigger,
            self.config.unlock_trigger,
            self.config.info_alias,
        )

        if command.text in triggers:
            logger.debug("Using default environment", environment=self.config.environment)
            return Scope.environment(self.config.environment)

        for target in self.config.environment_targets:
            for trigger in triggers:
                if command.without_trigger(trigger) == target:
                    logger.debug("Found environment target", target=target, trigger=trigger)
                    return Scope.environment(target)

        return None

    async def resolve(
        self,
        body: str,
        ctx: RequestContext | None = None,
        reaction_id: int | None = None,
    ) -> Scope | None:
        """Scope for ``body``; reports the valid targets when nothing matches."""
        scope = self.match(body)
        if scope is not None:
            return scope

        message = no_target_message(self.config.environment_targets)
        logger.warning("No matching environment target", body=body)

        if self.reporter is not None and ctx is not None:
            await self.reporter.report(
                ctx,
                reaction_id,
                f"### ⚠️ Cannot proceed with lock/unlock request\n\n{message}",
            )

        return None
