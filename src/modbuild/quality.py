"""Quality gates: static analysis and the test run."""

from __future__ import annotations

import json
import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

import requests
from pydantic import BaseModel, Field, ValidationError, field_validator

from .context import BuildContext, CiEngine
from .errors import TaskFailure
from .task import Task, task
from .tools import run_tool

logger = logging.getLogger(__name__)

APPVEYOR_DEFAULT_URL = "https://ci.appveyor.com"
UPLOAD_TIMEOUT = 60

_SEVERITIES = {0: "Information", 1: "Warning", 2: "Error", 3: "ParseError"}


class Finding(BaseModel):
    """A single analyzer diagnostic."""

    model_config = {"populate_by_name": True}

    rule: str = Field(default="", alias="RuleName")
    severity: str = Field(default="", alias="Severity")
    script: str = Field(default="", alias="ScriptName")
    line: int | None = Field(default=None, alias="Line")
    message: str = Field(default="", alias="Message")

    @field_validator("severity", mode="before")
    @classmethod
    def _severity_name(cls, value: Any) -> str:
        if isinstance(value, int):
            return _SEVERITIES.get(value, str(value))
        return "" if value is None else str(value)

    @field_validator("rule", "script", "message", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def __str__(self) -> str:
        location = f"{self.script}:{self.line}" if self.line is not None else self.script
        return f"[{self.severity}] {self.rule} {location} - {self.message}"


class TestSummary(BaseModel):
    """Counts from a test results file."""

    __test__ = False

    format: str = "nunit"
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0


def parse_findings(output: str) -> list[Finding]:
    """Decode analyzer JSON output: an array, a single object, or nothing."""
    text = output.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TaskFailure(f"unreadable analyzer output: {exc}") from exc
    if isinstance(data, dict):
        data = [data]
    try:
        return [Finding.model_validate(item) for item in data]
    except ValidationError as exc:
        raise TaskFailure(f"unreadable analyzer finding: {exc}") from exc


def _count(node: ET.Element, *names: str) -> int:
    return sum(int(node.get(name) or 0) for name in names)


def parse_results(path: Path) -> TestSummary:
    """Summarize an NUnit 2 (test-results) or NUnit 3 (test-run) XML file."""
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise TaskFailure(f"unable to read test results {path}: {exc}") from exc

    if root.tag == "test-results":
        total = _count(root, "total")
        failed = _count(root, "failures", "errors")
        skipped = _count(root, "not-run", "skipped", "ignored", "inconclusive")
        passed = max(total - failed - _count(root, "inconclusive", "skipped", "ignored"), 0)
        return TestSummary(format="nunit", total=total, passed=passed, failed=failed, skipped=skipped)
    if root.tag == "test-run":
        return TestSummary(
            format="nunit3",
            total=_count(root, "total"),
            passed=_count(root, "passed"),
            failed=_count(root, "failed"),
            skipped=_count(root, "skipped", "inconclusive"),
        )
    raise TaskFailure(f"unrecognized test results format: <{root.tag}>")


def upload_results(path: Path, summary: TestSummary) -> None:
    """Publish a results file to the AppVeyor test API for the current job."""
    job_id = os.environ.get("APPVEYOR_JOB_ID")
    if not job_id:
        raise TaskFailure("APPVEYOR_JOB_ID is not set")
    base = os.environ.get("APPVEYOR_URL", APPVEYOR_DEFAULT_URL).rstrip("/")
    url = f"{base}/api/testresults/{summary.format}/{job_id}"
    logger.info("Uploading %s to %s", path.name, url)
    try:
        with path.open("rb") as fh:
            response = requests.post(url, files={"file": (path.name, fh, "application/xml")}, timeout=UPLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TaskFailure(f"test results upload failed: {exc}") from exc


def _compiled_folder(ctx: BuildContext) -> Path:
    if ctx.module_folder is None or not ctx.module_folder.is_dir():
        raise TaskFailure("module has not been compiled")
    return ctx.module_folder


@task("Analyze")
class Analyze(Task):
    """Run the static analyzer over the compiled module."""

    def run(self, ctx: BuildContext) -> None:
        _compiled_folder(ctx)
        result = run_tool(ctx.project.tool("analyze").command, ctx.variables(), cwd=ctx.work_dir)
        findings = parse_findings(result.stdout)
        if not findings:
            logger.debug("Analyzer reported no findings")
            return
        for finding in findings:
            logger.error("%s", finding)
        raise TaskFailure(f"analyzer reported {len(findings)} finding(s)")


@task("Test")
class Test(Task):
    """Run the test suite against the compiled module."""

    __test__ = False

    def run(self, ctx: BuildContext) -> None:
        ctx.load_module(_compiled_folder(ctx))
        results = ctx.results_file
        results.unlink(missing_ok=True)

        result = run_tool(ctx.project.tool("test").command, ctx.variables(), cwd=ctx.work_dir, check=False)
        if not results.is_file():
            raise TaskFailure(f"test run produced no results file (exit status {result.returncode})")

        summary = parse_results(results)
        ctx.test_summary = summary
        logger.info(
            "Tests: %d total, %d passed, %d failed, %d skipped",
            summary.total,
            summary.passed,
            summary.failed,
            summary.skipped,
        )

        if ctx.ci_engine == CiEngine.APPVEYOR:
            upload_results(results, summary)

        if summary.failed > 0:
            raise TaskFailure(f"{summary.failed} test(s) failed")
        if result.returncode != 0:
            logger.warning("Test tool exited with status %d but reported no failures", result.returncode)
