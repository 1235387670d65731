from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class RepoLocks:
    """One asyncio.Lock per repository name, created on first use."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, repo_name: str) -> asyncio.Lock:
        lock = self._locks.get(repo_name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[repo_name] = lock
        return lock

    @asynccontextmanager
    async def hold(self, repo_name: str) -> AsyncIterator[None]:
        async with self.get(repo_name):
            yield
