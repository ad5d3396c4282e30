"""Project model: the module being built and how to build it."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from .context import BuildContext

logger = logging.getLogger(__name__)

TOOL_NAMES = ("analyze", "test", "docs", "pack", "push")


def _pwsh(script: str) -> list[str]:
    return ["pwsh", "-NoProfile", "-NonInteractive", "-Command", script]


DEFAULT_COMMANDS: dict[str, list[str]] = {
    "analyze": _pwsh(
        "Invoke-ScriptAnalyzer -Path '${module_folder}' -Settings '${analyzer_settings}' -Recurse"
        " | Select-Object RuleName, Severity, ScriptName, Line, Message"
        " | ConvertTo-Json -Depth 3"
    ),
    "test": _pwsh(
        "Import-Module '${module_folder}' -Force;"
        " Invoke-Pester -Path '${work_dir}' -OutputFormat NUnitXml -OutputFile '${results_file}'"
    ),
    "docs": _pwsh(
        "Import-Module '${module_folder}' -Force;"
        " New-MarkdownHelp -Module '${module_name}' -OutputFolder '${docs_folder}' -WithModulePage -Force"
    ),
    "pack": [
        "nuget",
        "pack",
        "${descriptor_path}",
        "-BasePath",
        "${module_folder}",
        "-OutputDirectory",
        "${work_dir}",
        "-NoPackageAnalysis",
    ],
    "push": ["nuget", "push", "${package_path}", "-Source", "${deploy_url}", "-ApiKey", "${api_key}"],
}


class ToolCommand(BaseModel):
    """An external program invoked by a task."""

    name: str
    command: list[str]


class Dependency(BaseModel):
    """A third-party tool that must be present before the build starts.

    Presence is established by ``check`` exiting 0 when given, otherwise by
    ``executable`` being found on PATH.
    """

    name: str
    executable: str | None = None
    check: list[str] | None = None
    install: list[str] | None = None


class ModuleProject(BaseModel):
    """The module to build and the layout of its sources."""

    name: str
    description: str = ""
    source: str = "Source"
    output: str = "Output"
    docs: str = "docs"
    manifest: str | None = None
    descriptor: str | None = None
    init_script: str | None = None
    extensions: list[str] = Field(default_factory=lambda: [".ps1", ".psm1"])
    versioned_output: bool = True
    analyzer_settings: str = "PSScriptAnalyzerSettings.psd1"
    results_file: str = "TestResults.xml"
    docs_index: str = "index.md"
    dependencies: list[Dependency] = Field(default_factory=list)
    tools: dict[str, ToolCommand] = Field(default_factory=dict)

    @property
    def manifest_name(self) -> str:
        return self.manifest or f"{self.name}.psd1"

    @property
    def descriptor_name(self) -> str:
        return self.descriptor or f"{self.name}.nuspec"

    @property
    def init_script_name(self) -> str:
        return self.init_script or f"{self.name}.psm1"

    @property
    def module_file_name(self) -> str:
        return f"{self.name}.psm1"

    def tool(self, name: str) -> ToolCommand:
        """Return the configured command for a tool, falling back to the default."""
        if name in self.tools:
            return self.tools[name]
        if name not in DEFAULT_COMMANDS:
            raise ValueError(f"Unknown tool: '{name}'")
        return ToolCommand(name=name, command=list(DEFAULT_COMMANDS[name]))

    def build(self, pipeline: str = "Build", **kwargs) -> BuildContext:
        """Run a named pipeline. kwargs are passed to BuildContext."""
        from .pipeline import get_pipeline

        ctx = BuildContext(self, **kwargs)
        logger.info("Building module '%s'", self.name)
        get_pipeline(pipeline).run(ctx)
        return ctx
