"""HCL loading engine: parse build configuration files into projects."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import hcl2
import jinja2
from lark.exceptions import LarkError

from .project import TOOL_NAMES, Dependency, ModuleProject, ToolCommand

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "build.hcl"


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates first.

    Templates see ``env`` (the process environment) and ``cwd`` in addition
    to any caller-supplied context.
    """
    text = file.read_text()
    ctx: dict[str, Any] = {"env": dict(os.environ), "cwd": os.getcwd()}
    if context:
        ctx.update(context)
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        template = env.from_string(text)
        text = template.render(ctx)
    except jinja2.TemplateError as exc:
        raise ValueError(f"{file}: {exc}") from exc
    try:
        return hcl2.loads(text)
    except LarkError as exc:
        raise ValueError(f"{file}: {exc}") from exc


def _labeled_blocks(data: dict[str, Any], key: str) -> list[tuple[str, dict[str, Any]]]:
    """Flatten HCL2 labeled blocks: {"key": [{"label": {attrs}}, ...]}."""
    blocks: list[tuple[str, dict[str, Any]]] = []
    for block in data.get(key, []):
        for label, attrs in block.items():
            blocks.append((label, dict(attrs)))
    return blocks


def _build_project(name: str, data: dict[str, Any]) -> ModuleProject:
    """Build a single ModuleProject from parsed HCL data."""
    logger.debug("Building project '%s'", name)
    deps = [Dependency(name=dep_name, **attrs) for dep_name, attrs in _labeled_blocks(data, "dependency")]

    tools: dict[str, ToolCommand] = {}
    for tool_name, attrs in _labeled_blocks(data, "tool"):
        if tool_name not in TOOL_NAMES:
            raise ValueError(f"Project '{name}' configures unknown tool: '{tool_name}'")
        tools[tool_name] = ToolCommand(name=tool_name, **attrs)

    # Pass through non-structural fields
    proj_kwargs: dict[str, Any] = {"name": name, "dependencies": deps, "tools": tools}
    for key, value in data.items():
        if key not in {"dependency", "tool"}:
            proj_kwargs[key] = value

    return ModuleProject(**proj_kwargs)


def parse_projects(data: dict[str, Any]) -> dict[str, ModuleProject]:
    """Extract project blocks from a parsed data dict.

    Raises ValueError if a project name is declared twice.
    """
    projects: dict[str, ModuleProject] = {}
    for proj_name, proj_data in _labeled_blocks(data, "project"):
        if proj_name in projects:
            raise ValueError(f"Duplicate project: '{proj_name}'")
        logger.debug("Found project '%s'", proj_name)
        projects[proj_name] = _build_project(proj_name, proj_data)
    return projects


def load_project(
    file: str | Path = DEFAULT_CONFIG,
    name: str | None = None,
    *,
    context: dict[str, Any] | None = None,
) -> ModuleProject:
    """Load the named project from a config file, or its only project."""
    path = Path(file)
    if not path.is_file():
        raise ValueError(f"Configuration file not found: {path}")
    projects = parse_projects(load(path, context=context))

    if name is not None:
        if name not in projects:
            raise ValueError(f"{path}: unknown project '{name}'")
        return projects[name]
    if len(projects) != 1:
        raise ValueError(f"{path}: expected exactly one project, found {len(projects)}; select one by name")
    return next(iter(projects.values()))
