"""Adoption statistics derived from merged results documents."""

from adoption.stats.adoption import (
    ClientStats,
    OverallAdoptionStats,
    build_eip_adoption,
    build_fork_adoption,
    classify_variant,
    client_stats,
    eip_progress,
    filter_failing_tests,
    fork_progress,
    is_test_failing,
    overall_adoption_stats,
)

__all__ = [
    "ClientStats",
    "OverallAdoptionStats",
    "build_eip_adoption",
    "build_fork_adoption",
    "classify_variant",
    "client_stats",
    "eip_progress",
    "filter_failing_tests",
    "fork_progress",
    "is_test_failing",
    "overall_adoption_stats",
]
