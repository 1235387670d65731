from __future__ import annotations

ELLIPSIS = "..."
DEFAULT_PREFIX = "retro-agent: "
DEFAULT_LIMIT = 72


def commit_message(prompt: str, prefix: str = DEFAULT_PREFIX, limit: int = DEFAULT_LIMIT) -> str:
    if len(prompt) <= limit:
        subject = prompt
    else:
        subject = prompt[: limit - len(ELLIPSIS)] + ELLIPSIS
    return f"{prefix}{subject}"
