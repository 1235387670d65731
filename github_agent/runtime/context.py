from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class FileSnapshot:
    path: str  # forward-slash path relative to the repo root
    content: str


@dataclass
class JobContext:
    """
    Everything one webhook job works with. Built per request; nothing here is
    shared with other jobs except the working copy on disk.
    """
    job_id: str
    repo_name: str
    prompt: str
    repo_root: Path

    snapshots: tuple[FileSnapshot, ...] = ()
    backend_output: str = ""
    operation_count: int = 0
    committed: bool = False
    pushed: bool = False


def _read_text(path: Path, max_bytes: int) -> Optional[str]:
    try:
        if path.stat().st_size > max_bytes:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if b"\x00" in data:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def collect_snapshots(
    repo_root: Path,
    *,
    ignore_names: Iterable[str] = (".git", "node_modules", ".env"),
    max_file_bytes: int = 1_000_000,
) -> tuple[FileSnapshot, ...]:
    """
    Walk the working copy in sorted order and return every readable text file.
    Binary, oversized, unreadable and symlinked files are skipped.
    """
    ignore = set(ignore_names)
    out: List[FileSnapshot] = []

    for dirpath, dirnames, filenames in os.walk(repo_root):
        dirnames[:] = sorted(d for d in dirnames if d not in ignore)
        for name in sorted(filenames):
            if name in ignore:
                continue
            full = Path(dirpath) / name
            if full.is_symlink():
                continue
            content = _read_text(full, max_file_bytes)
            if content is None:
                continue
            out.append(FileSnapshot(path=full.relative_to(repo_root).as_posix(), content=content))

    return tuple(out)
