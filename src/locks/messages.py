"""Comment bodies for lock outcomes."""

from .models import LockConfig, LockRecord, lock_age


def denial_message(
    record: LockRecord,
    actor: str,
    sticky: bool,
    repo: str,
    config: LockConfig,
) -> str:
    """Explain who holds the lock that blocked ``actor``."""
    header = "claim deployment lock" if sticky else "proceed with deployment"

    if record.is_global:
        lock_text = (
            f"the `global` deployment lock is currently claimed by __{record.created_by}__\n\n"
            "A `global` deployment lock prevents all other users from deploying to any "
            "environment except for the owner of the lock"
        )
    else:
        lock_text = (
            f"the `{record.environment}` environment deployment lock is currently "
            f"claimed by __{record.created_by}__"
        )

    details = []
    if record.reason:
        details.append(f"- __Reason__: `{record.reason}`")
    if not record.is_global:
        details.append(f"- __Environment__: `{record.environment}`")
    details += [
        f"- __Branch__: `{record.branch}`",
        f"- __Created At__: `{record.created_at.isoformat()}`",
        f"- __Created By__: `{record.created_by}`",
        f"- __Sticky__: `{str(record.sticky).lower()}`",
        f"- __Global__: `{str(record.is_global).lower()}`",
        f"- __Comment Link__: [click here]({record.link})",
        f"- __Lock Link__: [click here]({config.lock_link(repo, record.scope)})",
    ]
    details_text = "\n".join(details)

    return f"""### ⚠️ Cannot {header}

Sorry __{actor}__, {lock_text}

#### Lock Details 🔒

{details_text}

The current lock has been active for `{lock_age(record.created_at)}`

> If you need to release the lock, please comment `{record.unlock_command}`
"""


def owner_message(record: LockRecord, actor: str) -> str:
    """Tell ``actor`` they already hold the lock."""
    if record.is_global:
        lock_msg = "global"
    else:
        lock_msg = f"`{record.environment}` environment"

    return f"""### 🔒 Deployment Lock Information

__{actor}__, you are already the owner of the current {lock_msg} deployment lock

The current lock has been active for `{lock_age(record.created_at)}`

> If you need to release the lock, please comment `{record.unlock_command}`
"""


def claimed_message(record: LockRecord) -> str:
    if record.is_global:
        target = "any environment"
    else:
        target = f"the `{record.environment}` environment"

    return f"""### 🔒 Deployment Lock Claimed

You are now the only user that can trigger deployments to {target} until the deployment lock is removed

> This lock is _sticky_ and will persist until someone runs `{record.unlock_command}`
"""


def details_message(record: LockRecord, repo: str, config: LockConfig) -> str:
    """Lock details for an info request."""
    reason = f"- __Reason__: `{record.reason}`\n" if record.reason else ""
    if record.is_global:
        scope_text = "The `global` deployment lock"
    else:
        scope_text = f"The `{record.environment}` environment deployment lock"

    return f"""### Lock Details 🔒

{scope_text} is currently claimed by __{record.created_by}__

{reason}- __Branch__: `{record.branch}`
- __Created At__: `{record.created_at.isoformat()}`
- __Created By__: `{record.created_by}`
- __Sticky__: `{str(record.sticky).lower()}`
- __Global__: `{str(record.is_global).lower()}`
- __Lock Set Link__: [click here]({record.link})
- __Lock Link__: [click here]({config.lock_link(repo, record.scope)})

The current lock has been active for `{lock_age(record.created_at)}`

> If you need to release the lock, please comment `{record.unlock_command}`
"""


def no_lock_message(scope_name: str, repo: str, config: LockConfig) -> str:
    if scope_name == "global":
        lock_command = f"{config.lock_trigger} {config.global_flag}"
        target = "global deployment locks"
    else:
        lock_command = f"{config.lock_trigger} {scope_name}"
        target = f"deployment locks for the `{scope_name}` environment"

    return f"""### Lock Details 🔒

No active {target} found for the `{repo}` repository

> If you need to create a lock, please comment `{lock_command}`
"""


def unlocked_message(scope_name: str) -> str:
    if scope_name == "global":
        return "### 🔓 Deployment Lock Removed\n\nThe `global` deployment lock has been successfully removed\n"
    return (
        "### 🔓 Deployment Lock Removed\n\n"
        f"The `{scope_name}` environment deployment lock has been successfully removed\n"
    )


def no_lock_set_message(scope_name: str) -> str:
    if scope_name == "global":
        return "🔓 There is currently no `global` deployment lock set"
    return f"🔓 There is currently no `{scope_name}` deployment lock set"


def no_target_message(targets: tuple[str, ...]) -> str:
    joined = ",".join(targets)
    return (
        "No matching environment target found. Please check your command and try again.\n\n"
        f"> The following environment targets are available: `{joined}`"
    )
