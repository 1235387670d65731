from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class WriteFile:
    path: str
    content: str


@dataclass(frozen=True)
class DeleteFile:
    path: str


FileOperation = Union[WriteFile, DeleteFile]


# One alternation so write and delete blocks come back in textual order.
# Content is non-greedy up to the first "</file>": a file whose content contains
# that literal sequence is truncated there. Known limitation of the format.
_BLOCK_RE = re.compile(
    r'<file\s+path="(?P<write_path>[^"]+)"\s*>(?P<content>.*?)</file>'
    r'|<delete\s+path="(?P<delete_path>[^"]+)"\s*/>',
    re.DOTALL,
)


def _normalize_content(raw: str) -> str:
    text = raw.strip()
    if not text:
        return ""
    return text + "\n"


def parse_file_operations(text: str) -> tuple[FileOperation, ...]:
    """
    Extract file operations from a backend response.

      <file path="src/app.py">
      ...full file contents...
      </file>

      <delete path="old/module.py"/>

    Anything outside recognized blocks is ignored. Never raises: a response
    with no blocks yields an empty tuple. Paths are returned exactly as
    written; containment is checked when the operations are applied.
    """
    if not text:
        return ()

    ops: list[FileOperation] = []
    for m in _BLOCK_RE.finditer(text):
        if m.group("write_path") is not None:
            ops.append(WriteFile(path=m.group("write_path"), content=_normalize_content(m.group("content"))))
        else:
            ops.append(DeleteFile(path=m.group("delete_path")))
    return tuple(ops)
