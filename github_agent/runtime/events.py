from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

@dataclass(frozen=True)
class JobEvent:
    job_id: str
    repo: str
    stage: str
    timestamp: str

    status: str #"ok" | "error"
    message: str

    meta: Optional[Dict[str, Any]] = None
