"""Runtime execution context for the build pipeline."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import TaskFailure

if TYPE_CHECKING:
    from .manifest import ManifestInfo
    from .project import ModuleProject
    from .quality import TestSummary

logger = logging.getLogger(__name__)


class CiEngine(StrEnum):
    """The CI system driving the build."""

    LOCAL = "Local"
    BAMBOO = "Bamboo"
    APPVEYOR = "AppVeyor"


class BuildContext:
    """Runtime state passed through the task chain."""

    def __init__(
        self,
        project: ModuleProject,
        *,
        ci_engine: CiEngine | str = CiEngine.LOCAL,
        build_number: int | None = None,
        deploy_url: str | None = None,
        api_key: str | None = None,
        work_dir: str | Path | None = None,
        dry_run: bool = False,
    ) -> None:
        self.project = project
        self.ci_engine = CiEngine(ci_engine)
        self.build_number = build_number
        self.deploy_url = deploy_url
        self.api_key = api_key
        self.work_dir = Path(work_dir or os.getcwd()).resolve()
        self.dry_run = dry_run

        self.version: str | None = None
        self.manifest: ManifestInfo | None = None
        self.module_folder: Path | None = None
        self.loaded_module: Path | None = None
        self.dependencies: dict[str, str] = {}
        self.test_summary: TestSummary | None = None
        self.package_path: Path | None = None

    @property
    def module_name(self) -> str:
        return self.project.name

    @property
    def source_path(self) -> Path:
        return self.work_dir / self.project.source

    @property
    def output_path(self) -> Path:
        return self.work_dir / self.project.output

    @property
    def docs_folder(self) -> Path:
        return self.work_dir / self.project.docs

    @property
    def results_file(self) -> Path:
        return self.work_dir / self.project.results_file

    @property
    def target_folder(self) -> Path:
        """Compiled module location, version-qualified when configured."""
        folder = self.output_path / self.module_name
        if self.project.versioned_output:
            if self.version is None:
                raise TaskFailure("version has not been computed; run Init first")
            folder = folder / self.version
        return folder

    def load_module(self, path: Path) -> None:
        """Register the compiled module as the active instance."""
        if self.loaded_module is not None and self.loaded_module != path:
            self.unload_module()
        logger.debug("Loading module '%s' from %s", self.module_name, path)
        self.loaded_module = path

    def unload_module(self) -> None:
        """Deregister any loaded instance of the module."""
        if self.loaded_module is None:
            logger.debug("Module '%s' is not loaded", self.module_name)
            return
        logger.debug("Unloading module '%s' from %s", self.module_name, self.loaded_module)
        self.loaded_module = None

    def variables(self) -> dict[str, Any]:
        """Values available to ${...} references in tool commands."""
        optional: Mapping[str, Any] = {
            "version": self.version,
            "module_folder": self.module_folder,
            "package_path": self.package_path,
            "deploy_url": self.deploy_url,
            "api_key": self.api_key,
        }
        values: dict[str, Any] = {
            "module_name": self.module_name,
            "ci_engine": str(self.ci_engine),
            "work_dir": self.work_dir,
            "source_path": self.source_path,
            "output_path": self.output_path,
            "docs_folder": self.docs_folder,
            "results_file": self.results_file,
            "analyzer_settings": self.work_dir / self.project.analyzer_settings,
            "descriptor_path": (self.module_folder or self.source_path) / self.project.descriptor_name,
            "env": dict(os.environ),
        }
        values.update({k: v for k, v in optional.items() if v is not None})
        return values
