from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Optional, Protocol

import anthropic

from github_agent.errors import BackendError, JobTimeoutError
from github_agent.llm.client import LLMConfig, get_client, get_config
from github_agent.llm.prompt import EMPTY_REPOSITORY, SYSTEM_PROMPT_V1, USER_PROMPT_V1
from github_agent.models import AgentConfig
from github_agent.runtime.context import FileSnapshot

log = logging.getLogger(__name__)


class ChangeGenerator(Protocol):
    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        ...


def build_file_context(snapshots: Iterable[FileSnapshot]) -> str:
    blocks = [f'<existing_file path="{s.path}">\n{s.content}\n</existing_file>' for s in snapshots]
    return "\n".join(blocks) if blocks else EMPTY_REPOSITORY


def build_user_prompt(repo_name: str, snapshots: Iterable[FileSnapshot], task: str) -> str:
    return USER_PROMPT_V1.format(
        repo_name=repo_name,
        file_context=build_file_context(snapshots),
        task=task,
    )


def _extract_text(resp: Any) -> str:
    parts = []
    for block in getattr(resp, "content", None) or []:
        text = getattr(block, "text", None)
        if text:
            parts.append(text)
    return "\n".join(parts)


class AnthropicGenerator:
    def __init__(self, config: AgentConfig, client: Optional[anthropic.AsyncAnthropic] = None):
        self._client = client if client is not None else get_client(config)
        self._cfg: LLMConfig = get_config(config)

    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        log.info("Calling Anthropic API (%s)...", self._cfg.model)
        try:
            resp = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._cfg.model,
                    max_tokens=self._cfg.max_tokens,
                    system=system_prompt,
                    messages=[
                        {
                            "role": "user",
                            "content": user_prompt,
                        }
                    ],
                ),
                timeout=self._cfg.timeout,
            )
        except (asyncio.TimeoutError, anthropic.APITimeoutError) as e:
            raise JobTimeoutError(f"Anthropic API call timed out after {self._cfg.timeout:g}s.") from e
        except anthropic.APIError as e:
            raise BackendError(f"Anthropic API error: {e}") from e

        log.info("Anthropic API responded.")
        return _extract_text(resp)


async def generate_changes(
    generator: ChangeGenerator,
    repo_name: str,
    snapshots: Iterable[FileSnapshot],
    task: str,
) -> str:
    return await generator.generate(SYSTEM_PROMPT_V1, build_user_prompt(repo_name, snapshots, task))
