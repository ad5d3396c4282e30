"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from .config import DEFAULT_CONFIG, load_project
from .context import CiEngine
from .errors import BuildError
from .pipeline import PIPELINES

logger = logging.getLogger(__name__)


def _build_number(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modbuild",
        description="Build, analyze, test, document and deploy a script module.",
    )
    parser.add_argument("pipeline", nargs="?", default="Build", choices=list(PIPELINES))
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG, help="build configuration file")
    parser.add_argument("-p", "--project", default=None, help="project to build when the config declares several")
    parser.add_argument("--build-number", type=_build_number, default=None)
    parser.add_argument("--ci-engine", type=CiEngine, default=CiEngine.LOCAL, choices=list(CiEngine))
    parser.add_argument("--deploy-url", default=None)
    parser.add_argument("--api-key", default=None)
    parser.add_argument("--work-dir", default=None, help="pipeline working directory (default: cwd)")
    parser.add_argument("--dry-run", action="store_true", help="list the tasks without running them")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    try:
        project = load_project(args.config, args.project)
        project.build(
            args.pipeline,
            ci_engine=args.ci_engine,
            build_number=args.build_number,
            deploy_url=args.deploy_url,
            api_key=args.api_key,
            work_dir=args.work_dir,
            dry_run=args.dry_run,
        )
    except (BuildError, ValueError) as exc:
        logger.debug("Build failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
