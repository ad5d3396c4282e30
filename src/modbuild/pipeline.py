"""Pipeline model: a named, ordered list of tasks."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pydantic import BaseModel, Field

from .context import BuildContext
from .errors import TaskFailure
from .task import Task, get_task

logger = logging.getLogger(__name__)

PIPELINES: dict[str, list[str]] = {
    "Build": ["Init", "Clean", "Compile", "GenerateDocs"],
    "BuildAndTest": ["Init", "Clean", "Compile", "Analyze", "Test"],
    "BuildAndDeploy": ["Init", "Clean", "Compile", "Analyze", "Test", "Deploy", "Clean"],
}


class Pipeline(BaseModel):
    """A named sequence of tasks, run in order until one fails."""

    model_config = {"arbitrary_types_allowed": True}

    name: str
    tasks: list[Task] = Field(default_factory=list)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def run(self, ctx: BuildContext) -> None:
        """Execute every task in order; the first failure aborts the rest."""
        logger.info("Running pipeline '%s' for module '%s'", self.name, ctx.module_name)
        for item in self.tasks:
            if ctx.dry_run:
                logger.info("[DRY RUN] Would run %s", item.name)
                continue
            logger.info("==> %s", item.name)
            try:
                item.run(ctx)
            except TaskFailure as exc:
                if exc.task is None:
                    exc.task = item.name
                raise
        logger.info("Pipeline '%s' completed", self.name)


def get_pipeline(name: str) -> Pipeline:
    """Return the named pipeline with its tasks resolved from the registry."""
    # registers the built-in tasks
    from . import publish, quality, tasks  # noqa: F401

    if name not in PIPELINES:
        raise ValueError(f"Unknown pipeline: '{name}'")
    return Pipeline(name=name, tasks=[get_task(t) for t in PIPELINES[name]])
