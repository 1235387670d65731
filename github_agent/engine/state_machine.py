from __future__ import annotations

from enum import Enum

from github_agent.errors import TransitionError


class JobState(str, Enum):
    PENDING = "pending"
    MATERIALIZING = "materializing"
    COLLECTING_CONTEXT = "collecting_context"
    GENERATING = "generating"
    PARSING = "parsing"
    APPLYING = "applying"
    DETECTING_CHANGES = "detecting_changes"
    COMMITTING_AND_PUSHING = "committing_and_pushing"
    SKIPPED = "skipped"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({JobState.DONE, JobState.FAILED})

# Strictly forward. FAILED is reachable from any non-terminal state.
TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.PENDING: frozenset({JobState.MATERIALIZING}),
    JobState.MATERIALIZING: frozenset({JobState.COLLECTING_CONTEXT}),
    JobState.COLLECTING_CONTEXT: frozenset({JobState.GENERATING}),
    JobState.GENERATING: frozenset({JobState.PARSING}),
    JobState.PARSING: frozenset({JobState.APPLYING, JobState.SKIPPED}),
    JobState.APPLYING: frozenset({JobState.DETECTING_CHANGES}),
    JobState.DETECTING_CHANGES: frozenset({JobState.COMMITTING_AND_PUSHING, JobState.SKIPPED}),
    JobState.COMMITTING_AND_PUSHING: frozenset({JobState.DONE}),
    JobState.SKIPPED: frozenset({JobState.DONE}),
    JobState.DONE: frozenset(),
    JobState.FAILED: frozenset(),
}


def advance(current: JobState, target: JobState) -> JobState:
    if current in TERMINAL_STATES:
        raise TransitionError(f"Job already finished in state '{current.value}'.")
    if target == JobState.FAILED:
        return target
    if target not in TRANSITIONS[current]:
        raise TransitionError(f"Transition not allowed: {current.value} -> {target.value}")
    return target
