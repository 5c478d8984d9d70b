"""CLI entry points for the pipeline stages."""

import argparse
import asyncio
import sys
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from pennytrace.config import Settings, get_settings
from pennytrace.core.logging import get_logger, setup_logging, stage_context
from pennytrace.pipeline import run_consolidate, run_fetch, run_normalize, run_pipeline, run_publish

logger = get_logger(__name__)

StageRunner = Callable[[Settings], Coroutine[Any, Any, object]]


def _add_fetch_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--skip-av", action="store_true", help="Skip Alpha Vantage (strict daily quota)"
    )
    parser.add_argument("--skip-sec", action="store_true", help="Skip SEC EDGAR filings")
    parser.add_argument("--skip-yahoo", action="store_true", help="Skip Yahoo Finance")


def _run(stage: str, runner: StageRunner) -> int:
    """Run one stage, logging any failure. Returns the process exit code."""
    settings = get_settings()
    setup_logging(settings)
    with stage_context(stage):
        logger.info("Stage started")
        try:
            asyncio.run(runner(settings))
        except Exception:
            logger.exception("Stage failed")
            return 1
        logger.info("Stage finished")
    return 0


def fetch(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Fetch raw data from remote providers")
    _add_fetch_flags(parser)
    args = parser.parse_args(argv)

    sys.exit(
        _run(
            "fetch",
            lambda settings: run_fetch(
                settings,
                skip_alpha_vantage=args.skip_av,
                skip_sec=args.skip_sec,
                skip_yahoo=args.skip_yahoo,
            ),
        )
    )


def consolidate(argv: Sequence[str] | None = None) -> None:
    argparse.ArgumentParser(description="Merge local and cached remote data").parse_args(argv)
    sys.exit(_run("consolidate", run_consolidate))


def normalize(argv: Sequence[str] | None = None) -> None:
    argparse.ArgumentParser(description="Aggregate consolidated data to daily bars").parse_args(
        argv
    )
    sys.exit(_run("normalize", run_normalize))


def publish(argv: Sequence[str] | None = None) -> None:
    argparse.ArgumentParser(description="Generate static JSON and CSV files").parse_args(argv)
    sys.exit(_run("publish", run_publish))


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="PennyTrace: run the full data pipeline")
    _add_fetch_flags(parser)
    args = parser.parse_args(argv)

    sys.exit(
        _run(
            "pipeline",
            lambda settings: run_pipeline(
                settings,
                skip_alpha_vantage=args.skip_av,
                skip_sec=args.skip_sec,
                skip_yahoo=args.skip_yahoo,
            ),
        )
    )
