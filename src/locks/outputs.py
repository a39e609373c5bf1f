"""Structured run outputs - what a lock run reports back to its caller."""

from pathlib import Path

import structlog

logger = structlog.get_logger()


class RunOutputs:
    """Collects outputs, saved state, and failure for a single run."""

    def __init__(self):
        self.outputs: dict[str, str] = {}
        self.state: dict[str, str] = {}
        self.failure: str | None = None

    def set_output(self, name: str, value: object) -> None:
        self.outputs[name] = _stringify(value)

    def save_state(self, name: str, value: object) -> None:
        self.state[name] = _stringify(value)

    def set_failed(self, message: str) -> None:
        self.failure = message
        logger.error("Run failed", message=message)

    @property
    def failed(self) -> bool:
        return self.failure is not None

    def write_github_output(self, path: str | Path) -> None:
        """Append outputs in the ``name=value`` format of ``$GITHUB_OUTPUT``."""
        lines = []
        for name, value in self.outputs.items():
            if "\n" in value:
                lines.append(f"{name}<<__DEPLOY_LOCK_EOF__\n{value}\n__DEPLOY_LOCK_EOF__")
            else:
                lines.append(f"{name}={value}")
        with open(path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
