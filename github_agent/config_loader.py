from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from github_agent.errors import ConfigurationError
from github_agent.models import AgentConfig

DEFAULT_CONFIG_PATH = Path("agent.yaml")

# environment variable -> AgentConfig field
ENV_FIELDS: Dict[str, str] = {
    "AGENT_NAME": "agent_name",
    "HOST": "host",
    "PORT": "port",
    "GITHUB_USERNAME": "github_username",
    "GITHUB_TOKEN": "github_token",
    "GITHUB_HOST": "github_host",
    "REMOTE_URL_TEMPLATE": "remote_url_template",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
    "ANTHROPIC_MODEL": "anthropic_model",
    "ANTHROPIC_MAX_TOKENS": "anthropic_max_tokens",
    "WORKSPACE_DIR": "workspace_dir",
    "EVENT_LOG": "event_log",
    "GIT_AUTHOR_NAME": "git_author_name",
    "GIT_AUTHOR_EMAIL": "git_author_email",
    "COMMIT_PREFIX": "commit_prefix",
    "COMMIT_SUBJECT_LIMIT": "commit_subject_limit",
    "GIT_TIMEOUT_SECONDS": "git_timeout_seconds",
    "BACKEND_TIMEOUT_SECONDS": "backend_timeout_seconds",
    "JOB_TIMEOUT_SECONDS": "job_timeout_seconds",
    "MAX_FILE_BYTES": "max_file_bytes",
    "LOG_LEVEL": "log_level",
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level.")
    return raw


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> AgentConfig:
    """
    Build the agent configuration.

    Precedence (lowest to highest):
      - AgentConfig defaults
      - YAML file (explicit path, $AGENT_CONFIG, or ./agent.yaml when present)
      - environment variables (a .env file is loaded first when use_dotenv is set)
    """
    if use_dotenv:
        load_dotenv()
    env = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    if config_path is None and env.get("AGENT_CONFIG"):
        config_path = env["AGENT_CONFIG"]

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        raw = _read_yaml(path)
    elif DEFAULT_CONFIG_PATH.exists():
        raw = _read_yaml(DEFAULT_CONFIG_PATH)

    for env_name, field_name in ENV_FIELDS.items():
        value = env.get(env_name)
        if value is None or value == "":
            continue
        raw[field_name] = value

    try:
        return AgentConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
