from __future__ import annotations

import logging
import re
from pathlib import Path

from github_agent.errors import InvalidRepositoryName, VersionControlError
from github_agent.models import AgentConfig
from github_agent.runtime.git_tools import GitRunner

log = logging.getLogger(__name__)

_URL_PREFIX_RE = re.compile(r"^https?://[^/]+/[^/]+/")
_GIT_SUFFIX_RE = re.compile(r"\.git$")
_SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def repo_name_from(repo: str) -> str:
    """
    Accepts a bare name ("my-repo") or a GitHub URL
    ("https://github.com/owner/my-repo.git") and returns "my-repo".
    """
    name = _GIT_SUFFIX_RE.sub("", _URL_PREFIX_RE.sub("", repo.strip()))
    if not _SAFE_NAME_RE.fullmatch(name) or name in (".", ".."):
        raise InvalidRepositoryName(f"Invalid repository name: '{repo}'.")
    return name


def repo_dir_for(config: AgentConfig, repo_name: str) -> Path:
    return config.workspace_dir / repo_name


async def materialize(config: AgentConfig, git: GitRunner) -> None:
    """Clone the working copy if absent, otherwise pull it up to date."""
    repo_dir = git.repo_root
    repo_name = repo_dir.name
    remote_url = config.remote_url(repo_name)

    if not repo_dir.exists():
        log.info("Cloning %s/%s...", config.github_username, repo_name)
        await git.clone(remote_url)
    else:
        await _check_working_copy(git)
        log.info("Pulling latest for %s...", repo_name)
        await git.set_remote_url(remote_url)
        if await git.has_commits():
            await git.pull_rebase()
        else:
            log.info("%s has no commits yet; nothing to pull.", repo_name)

    await git.set_identity(config.git_author_name, config.git_author_email)


async def _check_working_copy(git: GitRunner) -> None:
    # git searches parent directories; an existing directory must be its own repository root
    repo_dir = git.repo_root
    if not (repo_dir / ".git").exists():
        raise VersionControlError(f"{repo_dir} exists but is not a git working copy; remove it to re-clone.")
    toplevel = await git.toplevel()
    if toplevel is None or toplevel != repo_dir:
        raise VersionControlError(f"{repo_dir} is not the root of its git working copy.")
