from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from github_agent.engine.file_ops import DeleteFile, FileOperation, WriteFile
from github_agent.errors import FileOperationError, PathEscape

log = logging.getLogger(__name__)

VCS_METADATA_DIR = ".git"
NEW_FILE_MODE = 0o644


@dataclass(frozen=True)
class ApplyResult:
    written: tuple[str, ...]
    deleted: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.written) + len(self.deleted)


def _is_subpath(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def resolve_in_root(root: Path, rel_path: str) -> Path:
    root = root.resolve()
    target = (root / rel_path).resolve()

    if target == root or not _is_subpath(target, root):
        raise PathEscape(rel_path)
    if target.relative_to(root).parts[0] == VCS_METADATA_DIR:
        raise PathEscape(rel_path, "version-control metadata is off limits")
    return target


def _write_atomic(target: Path, content: str) -> None:
    if target.is_dir():
        raise FileOperationError(f"Cannot write '{target}': it is a directory.")

    mode = (target.stat().st_mode & 0o777) if target.exists() else NEW_FILE_MODE
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def apply_operations(root: Path, operations: Iterable[FileOperation]) -> ApplyResult:
    """
    Apply parsed operations to the working copy, in order.

    Every path is resolved and containment-checked before anything is touched,
    so one escaping path rejects the whole batch. Writes replace the target
    through a temp file + rename; deletes of missing files are no-ops and are
    not counted.
    """
    ops = list(operations)
    resolved = [(op, resolve_in_root(root, op.path)) for op in ops]

    written: list[str] = []
    deleted: list[str] = []

    for op, target in resolved:
        try:
            if isinstance(op, WriteFile):
                target.parent.mkdir(parents=True, exist_ok=True)
                _write_atomic(target, op.content)
                written.append(op.path)
                log.info("Written: %s", op.path)
            elif isinstance(op, DeleteFile):
                if target.is_dir():
                    raise FileOperationError(f"Cannot delete '{op.path}': it is a directory.")
                if not target.exists():
                    log.debug("Delete skipped, not present: %s", op.path)
                    continue
                target.unlink()
                deleted.append(op.path)
                log.info("Deleted: %s", op.path)
            else:
                raise FileOperationError(f"Unsupported file operation: {op!r}")
        except OSError as e:
            raise FileOperationError(f"Failed to apply operation on '{op.path}': {e}") from e

    return ApplyResult(written=tuple(written), deleted=tuple(deleted))
