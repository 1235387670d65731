import pytest

from github_agent.engine.state_machine import JobState, advance
from github_agent.errors import TransitionError

HAPPY_PATH = [
    JobState.MATERIALIZING,
    JobState.COLLECTING_CONTEXT,
    JobState.GENERATING,
    JobState.PARSING,
    JobState.APPLYING,
    JobState.DETECTING_CHANGES,
    JobState.COMMITTING_AND_PUSHING,
    JobState.DONE,
]


def test_happy_path_is_allowed():
    state = JobState.PENDING
    for target in HAPPY_PATH:
        state = advance(state, target)
    assert state == JobState.DONE


def test_skip_after_parsing_and_after_detecting_changes():
    assert advance(JobState.PARSING, JobState.SKIPPED) == JobState.SKIPPED
    assert advance(JobState.DETECTING_CHANGES, JobState.SKIPPED) == JobState.SKIPPED
    assert advance(JobState.SKIPPED, JobState.DONE) == JobState.DONE


def test_no_going_back():
    with pytest.raises(TransitionError):
        advance(JobState.APPLYING, JobState.GENERATING)


def test_no_skipping_ahead():
    with pytest.raises(TransitionError):
        advance(JobState.MATERIALIZING, JobState.APPLYING)


@pytest.mark.parametrize("state", HAPPY_PATH[:-1])
def test_failed_reachable_from_any_running_state(state):
    assert advance(state, JobState.FAILED) == JobState.FAILED


@pytest.mark.parametrize("terminal", [JobState.DONE, JobState.FAILED])
def test_terminal_states_are_final(terminal):
    with pytest.raises(TransitionError):
        advance(terminal, JobState.FAILED)
