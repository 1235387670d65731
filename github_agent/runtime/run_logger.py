from __future__ import annotations

import json
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from github_agent.runtime.events import JobEvent


class RunLogger:
    """
    Appends one JSON line per job stage event.
    A logger without a path is a no-op (event log disabled).
    """

    def __init__(self, log_path: Optional[Path]):
        self._log_path = log_path
        self._lock = threading.Lock()
        if self._log_path is not None:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def append(self, event: JobEvent) -> None:
        if self._log_path is None:
            return
        line = json.dumps(asdict(event), ensure_ascii=False, default=str)
        with self._lock, self._log_path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.write("\n")
