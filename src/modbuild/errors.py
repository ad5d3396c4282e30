"""Exception types raised by pipeline tasks."""

from __future__ import annotations


class BuildError(Exception):
    """Base class for all pipeline failures."""


class FatalDependencyError(BuildError):
    """A required tool could not be installed."""

    def __init__(self, name: str, output: str = "") -> None:
        self.name = name
        self.output = output
        message = f"Unable to install required dependency '{name}'"
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message)


class TaskFailure(BuildError):
    """A task precondition was violated or an external tool failed."""

    def __init__(self, message: str, *, task: str | None = None) -> None:
        self.task = task
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.task:
            return f"{self.task}: {message}"
        return message
