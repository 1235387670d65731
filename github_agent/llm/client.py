from __future__ import annotations

from dataclasses import dataclass

from anthropic import AsyncAnthropic

from github_agent.errors import ConfigurationError
from github_agent.models import AgentConfig


@dataclass(frozen=True)
class LLMConfig:
    model: str
    max_tokens: int
    timeout: float


def get_client(config: AgentConfig) -> AsyncAnthropic:
    if not config.anthropic_api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY is not set.  Put it in .env or export it in your shell.")
    # No SDK retries: a failed call fails the job.
    return AsyncAnthropic(
        api_key=config.anthropic_api_key,
        timeout=config.backend_timeout_seconds,
        max_retries=0,
    )


def get_config(config: AgentConfig) -> LLMConfig:
    return LLMConfig(
        model=config.anthropic_model,
        max_tokens=config.anthropic_max_tokens,
        timeout=config.backend_timeout_seconds,
    )
