"""Per-EIP test catalogs: table sync and Hive result merging."""

from adoption.catalog.results import (
    MergeReport,
    TestResultsFile,
    merge_grouped_results,
    new_document,
    summarize_simulation,
)
from adoption.catalog.table import locate_table, parse_test_table, sync_catalog

__all__ = [
    "MergeReport",
    "TestResultsFile",
    "locate_table",
    "merge_grouped_results",
    "new_document",
    "parse_test_table",
    "summarize_simulation",
    "sync_catalog",
]
