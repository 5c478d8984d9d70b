"""Batch pipeline stages: fetch -> consolidate -> normalize -> publish."""

from pennytrace.pipeline.consolidate import (
    deduplicate_records,
    run_consolidate,
    score_record,
)
from pennytrace.pipeline.fetch import run_fetch
from pennytrace.pipeline.normalize import aggregate_to_daily, calculate_metrics, run_normalize
from pennytrace.pipeline.publish import (
    build_master_summary,
    filter_filings_to_period,
    generate_csv,
    parse_daily_csv,
    run_publish,
)
from pennytrace.pipeline.runner import run_pipeline

__all__ = [
    "aggregate_to_daily",
    "build_master_summary",
    "calculate_metrics",
    "deduplicate_records",
    "filter_filings_to_period",
    "generate_csv",
    "parse_daily_csv",
    "run_consolidate",
    "run_fetch",
    "run_normalize",
    "run_pipeline",
    "run_publish",
    "score_record",
]
