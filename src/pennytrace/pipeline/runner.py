"""Run all four pipeline stages in order.

Stages communicate only through files, so any stage can be re-run on its
own after a failure.
"""

from __future__ import annotations

from pennytrace.config import Settings, get_settings
from pennytrace.core.logging import get_logger, stage_context
from pennytrace.models import AllEntitiesSummary
from pennytrace.pipeline.consolidate import run_consolidate
from pennytrace.pipeline.fetch import run_fetch
from pennytrace.pipeline.normalize import run_normalize
from pennytrace.pipeline.publish import run_publish

logger = get_logger(__name__)


async def run_pipeline(
    settings: Settings | None = None,
    *,
    skip_alpha_vantage: bool = False,
    skip_sec: bool = False,
    skip_yahoo: bool = False,
) -> AllEntitiesSummary:
    """Fetch, consolidate, normalize and publish."""
    settings = settings or get_settings()

    with stage_context("fetch"):
        logger.info("Pipeline stage started")
        await run_fetch(
            settings,
            skip_alpha_vantage=skip_alpha_vantage,
            skip_sec=skip_sec,
            skip_yahoo=skip_yahoo,
        )

    with stage_context("consolidate"):
        logger.info("Pipeline stage started")
        await run_consolidate(settings)

    with stage_context("normalize"):
        logger.info("Pipeline stage started")
        await run_normalize(settings)

    with stage_context("publish"):
        logger.info("Pipeline stage started")
        summary = await run_publish(settings)

    logger.info("Pipeline complete", total_records=summary.total_records)
    return summary
