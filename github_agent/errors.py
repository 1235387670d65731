from __future__ import annotations


class AgentError(Exception):
    """Base class for every failure a webhook job can report."""


class ConfigurationError(AgentError):
    pass


class InvalidRepositoryName(AgentError, ValueError):
    pass


class PathEscape(AgentError, ValueError):
    """A file operation path resolves outside the working copy (or into .git)."""

    def __init__(self, path: str, reason: str = "resolves outside the working copy"):
        super().__init__(f"Refusing file operation on '{path}': {reason}.")
        self.path = path


class FileOperationError(AgentError):
    pass


class BackendError(AgentError):
    pass


class VersionControlError(AgentError):
    def __init__(self, message: str, *, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class JobTimeoutError(AgentError, TimeoutError):
    pass


class TransitionError(AgentError, ValueError):
    pass
