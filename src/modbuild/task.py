"""Task ABC and task registration."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .context import BuildContext

_task_registry: dict[str, type[Task]] = {}


def task(name: str):
    """Register a Task class under a pipeline-visible name."""

    def decorator(cls):
        cls.name = name
        _task_registry[name] = cls
        return cls

    return decorator


def get_task(name: str) -> Task:
    """Instantiate the task registered under name."""
    if name not in _task_registry:
        raise ValueError(f"Unknown task: '{name}'")
    return _task_registry[name]()


class Task(ABC):
    """Base class for all pipeline tasks."""

    name: str = ""

    @abstractmethod
    def run(self, ctx: BuildContext) -> None:
        """Perform the task; raise a BuildError to stop the pipeline."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
