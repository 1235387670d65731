from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from github_agent.errors import ConfigurationError


class AgentConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    agent_name: str = "retro-github-agent"
    version: str = "2.0"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    github_username: str = ""
    github_token: Optional[str] = None
    github_host: str = "github.com"
    remote_url_template: str = "https://{token}@{host}/{owner}/{repo}.git"

    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-opus-4-6"
    anthropic_max_tokens: int = Field(default=8096, gt=0)

    workspace_dir: Path = Path("workspace")
    event_log: Optional[Path] = Path("logs/job_events.jsonl")

    git_author_name: str = "Retro GitHub Agent"
    git_author_email: str = "retro-agent@github-agent.local"
    commit_prefix: str = "retro-agent: "
    commit_subject_limit: int = Field(default=72, ge=4)

    git_timeout_seconds: float = Field(default=120.0, gt=0)
    backend_timeout_seconds: float = Field(default=300.0, gt=0)
    job_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    ignore_names: List[str] = [".git", "node_modules", ".env"]
    max_file_bytes: int = Field(default=1_000_000, gt=0)

    log_level: str = "INFO"

    def require_credentials(self) -> None:
        missing = []
        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")
        if not self.github_token:
            missing.append("GITHUB_TOKEN")
        if not self.github_username:
            missing.append("GITHUB_USERNAME")
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} is not set.")

    def remote_url(self, repo_name: str) -> str:
        return self.remote_url_template.format(
            token=self.github_token or "",
            host=self.github_host,
            owner=self.github_username,
            repo=repo_name,
        )

    def secrets(self) -> List[str]:
        return [s for s in (self.github_token, self.anthropic_api_key) if s]


class WebhookRequest(BaseModel):
    repo: Optional[str] = None
    prompt: Optional[str] = None


class WebhookResponse(BaseModel):
    status: str = "success"
    repo: str
    committed: bool
    pushed: bool
    operations: int
    claude_output: str = Field(serialization_alias="claudeOutput")


class ErrorResponse(BaseModel):
    status: str = "error"
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    agent: str
    version: str
    uptime: float
