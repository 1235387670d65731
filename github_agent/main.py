from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from github_agent.config_loader import load_config
from github_agent.errors import InvalidRepositoryName
from github_agent.llm.generator import ChangeGenerator
from github_agent.logging_config import configure_logging
from github_agent.models import AgentConfig, ErrorResponse, HealthResponse, WebhookRequest, WebhookResponse
from github_agent.runtime.git_tools import redact
from github_agent.runtime.locks import RepoLocks
from github_agent.runtime.orchestrator import JobOutcome, run_job
from github_agent.runtime.run_logger import RunLogger

log = logging.getLogger(__name__)

BANNER = r"""
+----------------------------------------------------------------+
|   ____  _____ _____ ____   ___                                 |
|  |  _ \| ____|_   _|  _ \ / _ \                                |
|  | |_) |  _|   | | | |_) | | | |                               |
|  |  _ <| |___  | | |  _ <| |_| |                               |
|  |_| \_\_____| |_| |_| \_\\___/                                |
|                                                                |
|      >> GITHUB AGENT // POWERED BY THE ANTHROPIC API <<        |
+----------------------------------------------------------------+"""

JobRunner = Callable[..., Awaitable[JobOutcome]]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def create_app(
    config: Optional[AgentConfig] = None,
    *,
    job_runner: JobRunner = run_job,
    generator: Optional[ChangeGenerator] = None,
) -> FastAPI:
    cfg = config if config is not None else load_config()
    locks = RepoLocks()
    run_logger = RunLogger(cfg.event_log)
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if not cfg.workspace_dir.exists():
            cfg.workspace_dir.mkdir(parents=True, exist_ok=True)
            log.info("Created workspace at %s", cfg.workspace_dir.resolve())
        yield

    app = FastAPI(title=cfg.agent_name, version=cfg.version, lifespan=lifespan)
    app.state.config = cfg

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_request, _exc: RequestValidationError) -> JSONResponse:
        return _error(400, 'Request body must be a JSON object with string fields "repo" and "prompt".')

    @app.post("/webhook")
    async def webhook(payload: Optional[WebhookRequest] = None) -> JSONResponse:
        repo = ((payload.repo if payload else None) or "").strip()
        prompt = ((payload.prompt if payload else None) or "").strip()

        if not repo:
            return _error(400, '"repo" is required.')
        if not prompt:
            return _error(400, '"prompt" is required.')

        log.info('Webhook repo="%s" prompt="%s"', repo, prompt[:80])

        job = job_runner(
            repo=repo,
            prompt=prompt,
            config=cfg,
            generator=generator,
            locks=locks,
            run_logger=run_logger,
        )
        try:
            if cfg.job_timeout_seconds is not None:
                outcome = await asyncio.wait_for(job, timeout=cfg.job_timeout_seconds)
            else:
                outcome = await job
        except InvalidRepositoryName as e:
            return _error(400, str(e))
        except (TimeoutError, asyncio.TimeoutError) as e:
            message = str(e) or f"Job timed out after {cfg.job_timeout_seconds:g}s."
            log.error(message)
            return _error(500, message)
        except Exception as e:
            message = redact(str(e) or type(e).__name__, cfg.secrets())
            log.error("Job failed: %s", message)
            return _error(500, message)

        body = WebhookResponse(
            repo=outcome.repo_name,
            committed=outcome.committed,
            pushed=outcome.pushed,
            operations=outcome.operation_count,
            claude_output=outcome.backend_output,
        )
        return JSONResponse(content=body.model_dump(by_alias=True))

    @app.get("/health")
    async def health() -> JSONResponse:
        body = HealthResponse(
            agent=cfg.agent_name,
            version=cfg.version,
            uptime=round(time.monotonic() - started, 3),
        )
        return JSONResponse(content=body.model_dump())

    return app


def main() -> int:
    cfg = load_config()
    configure_logging(cfg.log_level)

    print(BANNER)
    print()
    log.info("Listening on %s:%d", cfg.host, cfg.port)
    log.info("Workspace : %s", cfg.workspace_dir.resolve())
    log.info("GitHub user: %s", cfg.github_username or "(not set)")
    log.info("Anthropic API: %s", "configured" if cfg.anthropic_api_key else "MISSING")
    print()

    uvicorn.run(create_app(cfg), host=cfg.host, port=cfg.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
