"""Shared fixtures: a small module source tree and fake tool commands."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from modbuild.context import BuildContext
from modbuild.project import ModuleProject, ToolCommand

MANIFEST = """@{
    RootModule = 'Demo.psm1'
    ModuleVersion = '1.3.0'
    GUID = 'a7c0c9a4-0000-4000-8000-000000000000'
    FunctionsToExport = '*'
}
"""

DESCRIPTOR = """<?xml version="1.0"?>
<package>
  <metadata>
    <id>Demo</id>
    <version>__VERSION__</version>
  </metadata>
</package>
"""


def py(code: str, *args: str) -> list[str]:
    """A tool command that runs a Python snippet."""
    return [sys.executable, "-c", code, *args]


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def source_tree(tmp_path) -> Path:
    """Lay out Source/ with Classes, Private and Public groups."""
    src = tmp_path / "Source"
    write(src / "Demo.psd1", MANIFEST)
    write(src / "Demo.nuspec", DESCRIPTOR)
    write(src / "Demo.psm1", "# development loader\n")
    write(src / "Classes" / "Widget.ps1", "class Widget {}")
    write(src / "Private" / "Format-Helper.ps1", "function Format-Helper {}")
    write(src / "Public" / "Get-Widget.ps1", "function Get-Widget {}")
    write(src / "Public" / "Set-Widget.ps1", "function Set-Widget {}")
    write(src / "en-US" / "about_Demo.help.txt", "about")
    write(src / "README.txt", "readme")
    return src


def make_project(**kwargs) -> ModuleProject:
    tools = {name: ToolCommand(name=name, command=cmd) for name, cmd in kwargs.pop("tools", {}).items()}
    return ModuleProject(name=kwargs.pop("name", "Demo"), tools=tools, **kwargs)


@pytest.fixture
def make_ctx(tmp_path):
    def _make(project: ModuleProject | None = None, **kwargs) -> BuildContext:
        return BuildContext(project or make_project(), work_dir=tmp_path, **kwargs)

    return _make
