"""External tool invocation with ${...} argument interpolation."""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .errors import TaskFailure

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|\$\{([^{}]+)\}")


def _lookup(ref: str, variables: Mapping[str, Any]) -> Any:
    """Resolve a dotted reference (e.g., 'env.HOME') against the variables."""
    current: Any = variables
    for part in ref.split("."):
        try:
            current = current[part]
        except (KeyError, TypeError):
            raise TaskFailure(f"undefined variable '{ref}'") from None
    return current


def interpolate(value: str, variables: Mapping[str, Any]) -> str:
    """Replace ${name} references in value; $${ produces a literal ${."""
    if "${" not in value:
        return value

    def _replace(m: re.Match) -> str:  # type: ignore[type-arg]
        if m.group(0) == "$${":
            return "${"
        return str(_lookup(m.group(1).strip(), variables))

    return _INTERP_PATTERN.sub(_replace, value)


def render_command(command: Sequence[str], variables: Mapping[str, Any]) -> list[str]:
    """Interpolate every argument of a command line."""
    return [interpolate(arg, variables) for arg in command]


def run_tool(
    command: Sequence[str],
    variables: Mapping[str, Any],
    *,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run an external tool without a shell, capturing its output.

    With check, a non-zero exit raises TaskFailure including the tool's stderr.
    """
    args = render_command(command, variables)
    if not args:
        raise TaskFailure("empty tool command")
    logger.debug("Running: %s", subprocess.list2cmdline(args))
    try:
        result = subprocess.run(args, cwd=cwd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        raise TaskFailure(f"tool not found: '{args[0]}'") from None

    if result.stderr:
        logger.debug("%s stderr: %s", args[0], result.stderr.strip())
    if check and result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        message = f"'{args[0]}' exited with status {result.returncode}"
        raise TaskFailure(f"{message}: {detail}" if detail else message)
    return result
