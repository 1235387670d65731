from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from github_agent.engine.commit_message import commit_message
from github_agent.models import AgentConfig
from github_agent.runtime.git_tools import GitRunner

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    committed: bool
    pushed: bool
    message: Optional[str] = None


async def detect_changes(git: GitRunner) -> str:
    return await git.status_porcelain()


async def commit_and_push(git: GitRunner, prompt: str, config: AgentConfig) -> CommitResult:
    message = commit_message(prompt, prefix=config.commit_prefix, limit=config.commit_subject_limit)
    await git.add_all()
    await git.commit(message)
    await git.push()
    log.info("Committed and pushed: %s", message)
    return CommitResult(committed=True, pushed=True, message=message)


async def push_pending(git: GitRunner) -> CommitResult:
    """
    Nothing new to commit. If an earlier job committed but failed to push,
    push those commits now.
    """
    pending = await git.unpushed_commit_count()
    if not pending:
        log.info("No changes to commit.")
        return CommitResult(committed=False, pushed=False)

    log.info("No new changes; pushing %d pending commit(s) from an earlier job.", pending)
    await git.push()
    return CommitResult(committed=False, pushed=True)
