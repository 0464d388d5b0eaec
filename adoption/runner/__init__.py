"""Hive invocation and run orchestration."""

from adoption.runner.hive import HiveRun, HiveRunner, hive_repo_path
from adoption.runner.pipeline import BatchReport, ParseResult, parse_hive_results, run_all_simulations

__all__ = [
    "BatchReport",
    "HiveRun",
    "HiveRunner",
    "ParseResult",
    "hive_repo_path",
    "parse_hive_results",
    "run_all_simulations",
]
