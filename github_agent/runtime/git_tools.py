from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from github_agent.errors import JobTimeoutError, VersionControlError

log = logging.getLogger(__name__)

MAX_CAPTURE_BYTES = 256 * 1024
REDACTED = "***"


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def _clip(data: bytes, max_bytes: int = MAX_CAPTURE_BYTES) -> str:
    if len(data) > max_bytes:
        data = data[:max_bytes]
    return data.decode("utf-8", errors="replace")


async def run_command(
    args: list[str],
    *,
    cwd: Optional[Path] = None,
    timeout: float,
    env: Optional[dict[str, str]] = None,
) -> CommandResult:
    """
    Spawn a subprocess, drain both output streams and wait for it.

    The process is killed and reaped when the deadline passes (JobTimeoutError)
    or when the awaiting task is cancelled.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        cwd=str(cwd) if cwd is not None else None,
        env={**os.environ, **(env or {})},
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise JobTimeoutError(f"Command '{args[0]}' timed out after {timeout:g}s.") from None
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    return CommandResult(returncode=proc.returncode, stdout=_clip(stdout), stderr=_clip(stderr))


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        proc.kill()
    await proc.wait()


class GitRunner:
    """
    Runs git for one working copy. Credentials embedded in remote URLs are
    scrubbed from every error message and log line.
    """

    def __init__(self, repo_root: Path, *, timeout: float, secrets: Iterable[str] = ()):
        self.repo_root = Path(repo_root).expanduser().resolve()
        self.timeout = timeout
        self._secrets = [s for s in secrets if s]

    def redact(self, text: str) -> str:
        return redact(text, self._secrets)

    async def run(self, *args: str, cwd: Optional[Path] = None, check: bool = True) -> CommandResult:
        workdir = self.repo_root if cwd is None else cwd
        shown = self.redact(" ".join(args))
        log.debug("git %s", shown)

        result = await run_command(
            ["git", *args],
            cwd=workdir,
            timeout=self.timeout,
            env={
                "GIT_TERMINAL_PROMPT": "0",
                # never discover a repository above the workspace entry
                "GIT_CEILING_DIRECTORIES": str(self.repo_root.parent),
            },
        )
        if check and not result.ok:
            detail = self.redact((result.stderr or result.stdout).strip())
            raise VersionControlError(
                f"git {shown} failed (rc={result.returncode}): {detail}",
                returncode=result.returncode,
            )
        return result

    async def clone(self, remote_url: str) -> None:
        self.repo_root.parent.mkdir(parents=True, exist_ok=True)
        await self.run("clone", remote_url, str(self.repo_root), cwd=self.repo_root.parent)

    async def set_remote_url(self, remote_url: str) -> None:
        await self.run("remote", "set-url", "origin", remote_url)

    async def toplevel(self) -> Optional[Path]:
        result = await self.run("rev-parse", "--show-toplevel", check=False)
        if not result.ok or not result.stdout.strip():
            return None
        return Path(result.stdout.strip()).resolve()

    async def has_commits(self) -> bool:
        result = await self.run("rev-parse", "--verify", "--quiet", "HEAD", check=False)
        return result.ok

    async def pull_rebase(self) -> None:
        await self.run("pull", "--rebase")

    async def set_identity(self, name: str, email: str) -> None:
        await self.run("config", "user.email", email)
        await self.run("config", "user.name", name)

    async def status_porcelain(self) -> str:
        return (await self.run("status", "--porcelain")).stdout

    async def add_all(self) -> None:
        await self.run("add", "-A")

    async def commit(self, message: str) -> None:
        await self.run("commit", "-m", message)

    async def push(self) -> None:
        await self.run("push", "-u", "origin", "HEAD")

    async def unpushed_commit_count(self) -> int:
        """Commits on HEAD not yet on its upstream; 0 when there is no upstream."""
        result = await self.run("rev-list", "--count", "@{upstream}..HEAD", check=False)
        if not result.ok:
            return 0
        try:
            return int(result.stdout.strip() or "0")
        except ValueError:
            return 0
