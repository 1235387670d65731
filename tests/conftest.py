import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from github_agent.models import AgentConfig

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

SEED_IDENTITY = ["-c", "user.name=Seed", "-c", "user.email=seed@example.com"]


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *SEED_IDENTITY, *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
    )
    if proc.returncode != 0:
        raise RuntimeError(f"git {' '.join(args)} failed:\n{proc.stderr}")
    return proc.stdout


class StubGenerator:
    """Stands in for the Anthropic backend: returns canned responses in order."""

    def __init__(self, *responses: str):
        self._responses = list(responses)
        self.calls: List[Dict[str, str]] = []

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


@pytest.fixture
def remotes_dir(tmp_path: Path) -> Path:
    d = tmp_path / "remotes"
    d.mkdir()
    return d


@pytest.fixture
def make_remote(remotes_dir: Path, tmp_path: Path):
    """Create a bare repository standing in for github.com/<owner>/<name>.git."""

    def _make(name: str, files: Optional[Dict[str, str]] = None) -> Path:
        bare = remotes_dir / f"{name}.git"
        git(remotes_dir, "init", "--bare", str(bare))
        if not files:
            return bare

        seed = tmp_path / f"seed-{name}"
        git(tmp_path, "clone", str(bare), str(seed))
        for rel, content in files.items():
            p = seed / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(content, encoding="utf-8")
        git(seed, "add", "-A")
        git(seed, "commit", "-m", "seed")
        git(seed, "push", "origin", "HEAD")
        branch = git(seed, "rev-parse", "--abbrev-ref", "HEAD").strip()
        git(bare, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
        return bare

    return _make


@pytest.fixture
def agent_config(tmp_path: Path, remotes_dir: Path) -> AgentConfig:
    return AgentConfig(
        github_username="octo",
        github_token="ghp-test-token",
        anthropic_api_key="sk-test",
        workspace_dir=tmp_path / "workspace",
        event_log=tmp_path / "logs" / "events.jsonl",
        remote_url_template=str(remotes_dir / "{repo}.git"),
        git_timeout_seconds=60,
    )


def remote_log(bare: Path) -> List[str]:
    out = subprocess.run(
        ["git", "log", "--format=%s", "--all"],
        cwd=str(bare),
        capture_output=True,
        text=True,
    )
    return [line for line in out.stdout.splitlines() if line]
