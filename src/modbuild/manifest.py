"""Module manifest and packaging descriptor handling.

The manifest version is patched as text rather than through the manifest
tooling, which rejects a declared version that does not match the name of
the folder holding the manifest.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel

from .errors import TaskFailure

logger = logging.getLogger(__name__)

VERSION_TOKEN = "__VERSION__"

_VERSION_LINE = re.compile(r"^(?P<indent>[ \t]*)ModuleVersion\s*=[^\r\n]*", re.MULTILINE)
_VERSION_VALUE = re.compile(
    r"^[ \t]*ModuleVersion\s*=\s*['\"](?P<declared>(?P<major>\d+)\.(?P<minor>\d+)(?:\.\d+){0,2})['\"]",
    re.MULTILINE,
)
_EXPORTS = re.compile(
    r"(?P<indent>^[ \t]*)FunctionsToExport\s*=\s*(?:@\([^)]*\)|'[^']*'|\"[^\"]*\"|\$null)",
    re.MULTILINE,
)


def _read(path: Path) -> str:
    with path.open(encoding="utf-8-sig", newline="") as fh:
        return fh.read()


def _write(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)


def _newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _top_level(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    """First match directly inside the outer hashtable, skipping nested ones."""
    for match in pattern.finditer(text):
        before = text[: match.start()]
        if before.count("{") - before.count("}") <= 1:
            return match
    return None


class ManifestInfo(BaseModel):
    """Metadata read from the source manifest."""

    path: Path
    module_version: str
    major: int
    minor: int


def read_manifest(path: Path) -> ManifestInfo:
    """Parse the declared major/minor version out of a manifest file."""
    if not path.is_file():
        raise TaskFailure(f"manifest not found: {path}")
    match = _top_level(_VERSION_VALUE, _read(path))
    if match is None:
        raise TaskFailure(f"no ModuleVersion declared in {path}")
    declared = match.group("declared")
    logger.debug("Manifest %s declares version %s", path.name, declared)
    return ManifestInfo(
        path=path,
        module_version=declared,
        major=int(match.group("major")),
        minor=int(match.group("minor")),
    )


def compute_version(info: ManifestInfo, build_number: int | None = None) -> str:
    """Combine the manifest's major.minor with the build number as patch."""
    patch = build_number if build_number is not None else 0
    if patch < 0:
        raise TaskFailure(f"build number must not be negative: {patch}")
    return f"{info.major}.{info.minor}.{patch}"


def _export_list(functions: Iterable[str]) -> str:
    names = ", ".join(f"'{name}'" for name in functions)
    return f"@({names})"


def set_manifest_version(text: str, version: str) -> str:
    """Replace the module's own ModuleVersion line wholesale.

    Versions pinned inside nested hashtables (RequiredModules) are left alone.
    """
    match = _top_level(_VERSION_LINE, text)
    if match is None:
        raise TaskFailure("manifest has no ModuleVersion entry")
    line = f"{match.group('indent')}ModuleVersion = '{version}'"
    return text[: match.start()] + line + text[match.end() :]


def set_exported_functions(text: str, functions: Iterable[str]) -> str:
    """Replace the FunctionsToExport list wholesale.

    When the manifest has no export list one is added after ModuleVersion.
    """
    exports = _export_list(functions)
    match = _top_level(_EXPORTS, text)
    if match is not None:
        line = f"{match.group('indent')}FunctionsToExport = {exports}"
        return text[: match.start()] + line + text[match.end() :]

    logger.debug("Manifest has no FunctionsToExport; adding one")
    anchor = _top_level(_VERSION_LINE, text)
    if anchor is None:
        raise TaskFailure("manifest has no ModuleVersion entry")
    line = f"{_newline(text)}{anchor.group('indent')}FunctionsToExport = {exports}"
    return text[: anchor.end()] + line + text[anchor.end() :]


def update_manifest(path: Path, version: str, functions: Iterable[str]) -> None:
    """Patch a manifest file in place with the version and export list."""
    text = _read(path)
    text = set_manifest_version(text, version)
    text = set_exported_functions(text, functions)
    _write(path, text)
    logger.info("Set %s version to %s", path.name, version)


def update_descriptor(path: Path, version: str) -> None:
    """Substitute the version placeholder in a packaging descriptor."""
    text = _read(path)
    count = text.count(VERSION_TOKEN)
    if count == 0:
        logger.warning("No %s placeholder found in %s", VERSION_TOKEN, path.name)
    _write(path, text.replace(VERSION_TOKEN, version))
    logger.debug("Replaced %d version placeholder(s) in %s", count, path.name)
