"""Publishing tasks: GenerateDocs and Deploy."""

from __future__ import annotations

import logging
from pathlib import Path

from .context import BuildContext
from .errors import TaskFailure
from .task import Task, task
from .tools import run_tool

logger = logging.getLogger(__name__)


@task("GenerateDocs")
class GenerateDocs(Task):
    """Generate markdown help for every exported function."""

    def run(self, ctx: BuildContext) -> None:
        if ctx.module_folder is None or not ctx.module_folder.is_dir():
            raise TaskFailure("module has not been compiled")
        ctx.load_module(ctx.module_folder)

        docs = ctx.docs_folder
        docs.mkdir(parents=True, exist_ok=True)
        run_tool(ctx.project.tool("docs").command, ctx.variables(), cwd=ctx.work_dir)

        index = docs / ctx.project.docs_index
        if index.exists():
            logger.debug("Removing generated index stub %s", index.name)
            index.unlink()

        overview = docs / f"{ctx.module_name}.md"
        if overview.is_file():
            overview.rename(index)
            logger.info("Module overview published as %s", index)
        else:
            logger.warning("No module overview page %s was generated", overview.name)


def _find_package(ctx: BuildContext) -> Path:
    """The archive the pack tool produced for this version.

    NuGet names the archive after the descriptor's <id>, which usually but not
    always matches the module name.
    """
    expected = ctx.work_dir / f"{ctx.module_name}.{ctx.version}.nupkg"
    if expected.is_file():
        return expected
    candidates = sorted(ctx.work_dir.glob(f"*.{ctx.version}.nupkg"))
    if len(candidates) == 1:
        return candidates[0]
    if candidates:
        names = ", ".join(p.name for p in candidates)
        raise TaskFailure(f"ambiguous package for version {ctx.version}: {names}")
    raise TaskFailure(f"package was not created: {expected}")


@task("Deploy")
class Deploy(Task):
    """Package the compiled module and push it to the feed."""

    def run(self, ctx: BuildContext) -> None:
        if not ctx.deploy_url or not ctx.api_key:
            raise TaskFailure("deploy URL and API key are required")
        if ctx.module_folder is None or not ctx.module_folder.is_dir():
            raise TaskFailure("module has not been compiled")

        logger.info("Packaging %s %s", ctx.module_name, ctx.version)
        run_tool(ctx.project.tool("pack").command, ctx.variables(), cwd=ctx.work_dir)
        package = _find_package(ctx)
        ctx.package_path = package

        logger.info("Pushing %s to %s", package.name, ctx.deploy_url)
        run_tool(ctx.project.tool("push").command, ctx.variables(), cwd=ctx.work_dir)
