"""Preparation tasks: Init, Clean and Compile."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .context import BuildContext
from .errors import FatalDependencyError, TaskFailure
from .manifest import compute_version, read_manifest, update_descriptor, update_manifest
from .project import Dependency
from .task import Task, task
from .tools import run_tool

logger = logging.getLogger(__name__)

SOURCE_GROUPS = ("Classes", "Private", "Public")
FRAGMENT_SEPARATOR = "\r\n\r\n\r\n"


def _locate(dep: Dependency, ctx: BuildContext) -> str | None:
    """Return where a dependency was found, or None when it is absent."""
    if dep.check:
        try:
            result = run_tool(dep.check, ctx.variables(), cwd=ctx.work_dir, check=False)
        except TaskFailure as exc:
            logger.debug("Check for '%s' could not run: %s", dep.name, exc)
            return None
        return dep.name if result.returncode == 0 else None
    return shutil.which(dep.executable or dep.name)


def ensure_dependency(dep: Dependency, ctx: BuildContext) -> str:
    """Install a dependency if it is absent, then record it as loaded."""
    location = _locate(dep, ctx)
    if location is None:
        if not dep.install:
            raise FatalDependencyError(dep.name, "not found and no install command configured")
        logger.info("Installing dependency '%s'", dep.name)
        try:
            result = run_tool(dep.install, ctx.variables(), cwd=ctx.work_dir, check=False)
        except TaskFailure as exc:
            raise FatalDependencyError(dep.name, str(exc)) from exc
        if result.returncode != 0:
            raise FatalDependencyError(dep.name, result.stderr or result.stdout)
        location = _locate(dep, ctx)
        if location is None:
            raise FatalDependencyError(dep.name, "still unavailable after install")
    else:
        logger.debug("Dependency '%s' already present", dep.name)

    ctx.dependencies[dep.name] = location
    return location


def group_files(group: Path, extensions: list[str]) -> list[Path]:
    """Source files directly in a group folder or one level below it."""
    if not group.is_dir():
        return []
    suffixes = {ext.lower() for ext in extensions}
    candidates = list(group.glob("*")) + list(group.glob("*/*"))
    files = [p for p in candidates if p.is_file() and p.suffix.lower() in suffixes]
    return sorted(files, key=lambda p: p.relative_to(group).as_posix().lower())


def public_functions(source: Path, extensions: list[str]) -> list[str]:
    """Exported function names: basenames of the Public group files."""
    names: list[str] = []
    for path in group_files(source / "Public", extensions):
        if path.stem not in names:
            names.append(path.stem)
    return names


def combine_sources(source: Path, extensions: list[str]) -> str:
    """Concatenate Classes, Private and Public fragments in that order."""
    fragments: list[str] = []
    for group in SOURCE_GROUPS:
        files = group_files(source / group, extensions)
        logger.debug("Combining %d file(s) from %s", len(files), group)
        for path in files:
            # fragments are copied byte for byte, line endings included
            with path.open(encoding="utf-8-sig", newline="") as fh:
                fragments.append(fh.read())
    return FRAGMENT_SEPARATOR.join(fragments)


@task("Init")
class Init(Task):
    """Read the manifest, compute the version and ensure tools are present."""

    def run(self, ctx: BuildContext) -> None:
        ctx.manifest = read_manifest(ctx.source_path / ctx.project.manifest_name)
        ctx.version = compute_version(ctx.manifest, ctx.build_number)
        logger.info("Building %s version %s (%s)", ctx.module_name, ctx.version, ctx.ci_engine)

        for dep in ctx.project.dependencies:
            ensure_dependency(dep, ctx)


@task("Clean")
class Clean(Task):
    """Unload the module and remove its previous build output."""

    def run(self, ctx: BuildContext) -> None:
        ctx.unload_module()
        target = ctx.target_folder
        if not target.exists():
            logger.debug("Nothing to clean at %s", target)
            return
        logger.info("Removing %s", target)
        shutil.rmtree(target)


@task("Compile")
class Compile(Task):
    """Assemble the distributable module folder from the source tree."""

    def run(self, ctx: BuildContext) -> None:
        if ctx.version is None:
            raise TaskFailure("version has not been computed; run Init first")
        project = ctx.project
        source = ctx.source_path
        if not source.is_dir():
            raise TaskFailure(f"source folder not found: {source}")

        folder = ctx.target_folder
        folder.mkdir(parents=True, exist_ok=True)
        ctx.module_folder = folder

        module_file = folder / project.module_file_name
        with module_file.open("w", encoding="utf-8", newline="") as fh:
            fh.write(combine_sources(source, project.extensions))
        logger.info("Wrote %s", module_file)

        skip = set(SOURCE_GROUPS) | {project.init_script_name}
        for entry in sorted(source.iterdir()):
            if entry.name in skip:
                continue
            dest = folder / entry.name
            logger.debug("Copying %s", entry.name)
            if entry.is_dir():
                shutil.copytree(entry, dest, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, dest)

        manifest = folder / project.manifest_name
        if not manifest.is_file():
            raise TaskFailure(f"manifest missing from output: {manifest}")
        update_manifest(manifest, ctx.version, public_functions(source, project.extensions))

        descriptor = folder / project.descriptor_name
        if descriptor.is_file():
            update_descriptor(descriptor, ctx.version)
        else:
            logger.warning("Packaging descriptor %s not found; skipping", descriptor.name)
