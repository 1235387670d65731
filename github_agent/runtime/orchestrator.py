from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

from github_agent.engine.applier import apply_operations
from github_agent.engine.file_ops import parse_file_operations
from github_agent.engine.state_machine import TERMINAL_STATES, JobState, advance
from github_agent.llm.generator import AnthropicGenerator, ChangeGenerator, generate_changes
from github_agent.models import AgentConfig
from github_agent.runtime.committer import commit_and_push, detect_changes, push_pending
from github_agent.runtime.context import JobContext, collect_snapshots
from github_agent.runtime.events import JobEvent
from github_agent.runtime.git_tools import GitRunner, redact
from github_agent.runtime.locks import RepoLocks
from github_agent.runtime.run_logger import RunLogger
from github_agent.runtime.workspace import materialize, repo_dir_for, repo_name_from

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class JobOutcome:
    repo_name: str
    committed: bool
    backend_output: str
    operation_count: int
    pushed: bool = False


def new_job_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    suffix = secrets.token_hex(2)
    return f"{ts}_{suffix}"


async def _in_thread(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run blocking working-copy I/O in a worker thread. A cancelled job still
    waits for the thread to finish, so the repository lock is never released
    while files are being written.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        raise


class _JobRun:
    """Tracks the state machine for one job and writes its stage events."""

    def __init__(self, ctx: JobContext, logger: RunLogger, secret_values: list[str]):
        self.ctx = ctx
        self.state = JobState.PENDING
        self._logger = logger
        self._secrets = secret_values

    def enter(self, target: JobState) -> None:
        self.state = advance(self.state, target)

    def record(self, message: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self._emit(self.state, "ok", message, meta)

    def fail(self, exc: BaseException) -> None:
        failed_stage = self.state
        if self.state not in TERMINAL_STATES:
            self.state = advance(self.state, JobState.FAILED)
        message = redact(f"{type(exc).__name__}: {exc}", self._secrets)
        self._emit(failed_stage, "error", message, None)

    def _emit(self, stage: JobState, status: str, message: str, meta: Optional[Dict[str, Any]]) -> None:
        self._logger.append(
            JobEvent(
                job_id=self.ctx.job_id,
                repo=self.ctx.repo_name,
                stage=stage.value,
                timestamp=self._logger.now_iso(),
                status=status,
                message=message,
                meta=meta,
            )
        )


async def run_job(
    *,
    repo: str,
    prompt: str,
    config: AgentConfig,
    generator: Optional[ChangeGenerator] = None,
    locks: Optional[RepoLocks] = None,
    run_logger: Optional[RunLogger] = None,
) -> JobOutcome:
    """
    One webhook job:
      materialize -> collect context -> generate -> parse -> apply
      -> detect changes -> commit + push (or skip)

    Holds the repository's lock for the whole run. Any failure is recorded in
    the event log and re-raised unchanged; nothing is retried or rolled back.
    """
    config.require_credentials()
    repo_name = repo_name_from(repo)

    if generator is None:
        generator = AnthropicGenerator(config)
    if locks is None:
        locks = RepoLocks()
    if run_logger is None:
        run_logger = RunLogger(config.event_log)

    ctx = JobContext(
        job_id=new_job_id(),
        repo_name=repo_name,
        prompt=prompt,
        repo_root=repo_dir_for(config, repo_name),
    )
    git = GitRunner(ctx.repo_root, timeout=config.git_timeout_seconds, secrets=config.secrets())
    run = _JobRun(ctx, run_logger, config.secrets())

    log.info("Job %s target: %s/%s", ctx.job_id, config.github_username, repo_name)
    log.info("Prompt: %s", prompt)

    async with locks.hold(repo_name):
        try:
            await _run_stages(run, git, config, generator)
        except BaseException as e:
            run.fail(e)
            raise

    return JobOutcome(
        repo_name=ctx.repo_name,
        committed=ctx.committed,
        backend_output=ctx.backend_output,
        operation_count=ctx.operation_count,
        pushed=ctx.pushed,
    )


async def _run_stages(run: _JobRun, git: GitRunner, config: AgentConfig, generator: ChangeGenerator) -> None:
    ctx = run.ctx

    run.enter(JobState.MATERIALIZING)
    await materialize(config, git)
    run.record("Working copy ready")

    run.enter(JobState.COLLECTING_CONTEXT)
    ctx.snapshots = await _in_thread(
        collect_snapshots,
        ctx.repo_root,
        ignore_names=config.ignore_names,
        max_file_bytes=config.max_file_bytes,
    )
    run.record("Context collected", {"files": len(ctx.snapshots)})

    run.enter(JobState.GENERATING)
    ctx.backend_output = await generate_changes(generator, ctx.repo_name, ctx.snapshots, ctx.prompt)
    ctx.snapshots = ()
    run.record("Backend responded", {"chars": len(ctx.backend_output)})

    run.enter(JobState.PARSING)
    operations = parse_file_operations(ctx.backend_output)
    run.record("Response parsed", {"operations": len(operations)})

    if not operations:
        log.info("No file operations found in response.")
        run.enter(JobState.SKIPPED)
        result = await push_pending(git)
        ctx.pushed = result.pushed
        run.record("No file operations", {"pushed_pending": result.pushed})
        run.enter(JobState.DONE)
        run.record("Done", {"committed": False})
        return

    run.enter(JobState.APPLYING)
    applied = await _in_thread(apply_operations, ctx.repo_root, operations)
    ctx.operation_count = applied.count
    log.info("Applied %d file operation(s).", applied.count)
    run.record("Operations applied", {"written": list(applied.written), "deleted": list(applied.deleted)})

    run.enter(JobState.DETECTING_CHANGES)
    status = await detect_changes(git)
    run.record("Status checked", {"changed": bool(status.strip())})

    if status.strip():
        run.enter(JobState.COMMITTING_AND_PUSHING)
        result = await commit_and_push(git, ctx.prompt, config)
        run.record("Committed and pushed", {"message": result.message})
    else:
        run.enter(JobState.SKIPPED)
        result = await push_pending(git)
        run.record("No changes to commit", {"pushed_pending": result.pushed})

    ctx.committed = result.committed
    ctx.pushed = result.pushed

    run.enter(JobState.DONE)
    run.record("Done", {"committed": ctx.committed})
