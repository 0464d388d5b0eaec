"""Hive export parsing: name decoding, client resolution, and grouping."""

from adoption.hive.aggregate import AggregationResult, VariantGroup, group_results, variant_key
from adoption.hive.clients import ClientMapping, ClientRoster, load_github_repos
from adoption.hive.export import HiveExport, find_export_file, load_export
from adoption.hive.names import DecodedTestName, decode_test_name, simulation_for_test_name

__all__ = [
    "AggregationResult",
    "ClientMapping",
    "ClientRoster",
    "DecodedTestName",
    "HiveExport",
    "VariantGroup",
    "decode_test_name",
    "find_export_file",
    "group_results",
    "load_export",
    "load_github_repos",
    "simulation_for_test_name",
    "variant_key",
]
