import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from github_agent.errors import BackendError, JobTimeoutError
from github_agent.llm.generator import AnthropicGenerator, generate_changes
from github_agent.llm.prompt import SYSTEM_PROMPT_V1
from github_agent.models import AgentConfig
from github_agent.runtime.context import FileSnapshot

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class FakeMessages:
    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def _generator(messages: FakeMessages, **overrides) -> AnthropicGenerator:
    cfg = AgentConfig(anthropic_api_key="sk-test", anthropic_model="test-model", anthropic_max_tokens=123, **overrides)
    return AnthropicGenerator(cfg, client=SimpleNamespace(messages=messages))


def test_generate_sends_system_and_user_prompt():
    response = SimpleNamespace(content=[SimpleNamespace(type="text", text='<file path="a">b</file>')])
    messages = FakeMessages(response=response)

    out = asyncio.run(generate_changes(_generator(messages), "demo", [FileSnapshot("x.py", "x = 1")], "Do it"))

    assert out == '<file path="a">b</file>'
    assert messages.kwargs["model"] == "test-model"
    assert messages.kwargs["max_tokens"] == 123
    assert messages.kwargs["system"] == SYSTEM_PROMPT_V1
    user = messages.kwargs["messages"][0]
    assert user["role"] == "user"
    assert '<existing_file path="x.py">\nx = 1\n</existing_file>' in user["content"]
    assert user["content"].endswith("Task: Do it")


def test_non_text_blocks_are_ignored_and_text_joined():
    response = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="first"),
            SimpleNamespace(type="thinking"),
            SimpleNamespace(type="text", text="second"),
        ]
    )
    out = asyncio.run(_generator(FakeMessages(response=response)).generate("s", "u"))
    assert out == "first\nsecond"


def test_empty_content_is_empty_text():
    out = asyncio.run(_generator(FakeMessages(response=SimpleNamespace(content=[]))).generate("s", "u"))
    assert out == ""


def test_api_error_becomes_backend_error():
    err = anthropic.APIConnectionError(request=_REQUEST)
    with pytest.raises(BackendError):
        asyncio.run(_generator(FakeMessages(error=err)).generate("s", "u"))


def test_sdk_timeout_becomes_job_timeout():
    err = anthropic.APITimeoutError(request=_REQUEST)
    with pytest.raises(JobTimeoutError):
        asyncio.run(_generator(FakeMessages(error=err)).generate("s", "u"))


def test_deadline_enforced_around_call():
    messages = FakeMessages(response=SimpleNamespace(content=[]), delay=5)
    with pytest.raises(JobTimeoutError):
        asyncio.run(_generator(messages, backend_timeout_seconds=0.1).generate("s", "u"))
