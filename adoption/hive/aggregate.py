"""Grouping of Hive test cases by test, variant, client, and simulator.

Folds the flat ``testCases`` map of an export into::

    base_test -> variant_key -> VariantGroup(parameters, results)

where ``results`` is ``client -> simulation -> passed``. The variant key
is the compact JSON encoding of the parameter list, or ``"standalone"``
for tests without parameters, so artifact-only and bracket-less names of
the same test fall into one group.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from typing import Any, Iterable

from adoption.hive.clients import ClientMapping
from adoption.hive.names import (
    client_suffix_pattern,
    decode_test_name,
    simulation_for_test_name,
)

STANDALONE_KEY = "standalone"


@dataclass
class VariantGroup:
    """Results observed for one parameterisation of a test."""

    parameters: list[str] | None
    results: dict[str, dict[str, bool]] = field(default_factory=dict)


@dataclass
class AggregationResult:
    """Grouped results plus the names that could not be decoded."""

    groups: dict[str, dict[str, VariantGroup]] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def observation_count(self) -> int:
        """Number of distinct (test, variant, client, simulation) entries."""
        return sum(
            len(simulations)
            for variants in self.groups.values()
            for group in variants.values()
            for simulations in group.results.values()
        )


def variant_key(parameters: Iterable[str] | None) -> str:
    """Key identifying a variant within its test.

    The merger matches variants on the same normalisation: a missing
    parameter list is the standalone variant.
    """
    if not parameters:
        return STANDALONE_KEY
    return json.dumps(list(parameters), separators=(",", ":"))


def group_results(
    test_cases: Iterable[dict[str, Any]],
    mapping: ClientMapping,
    verbose: bool = False,
) -> AggregationResult:
    """Group export test cases by base test and variant.

    Args:
        test_cases: Export records, each with ``name`` and
            ``summaryResult.pass``.
        mapping: Hive name to client id mapping.
        verbose: Print one line per absorbed test case.

    Returns:
        AggregationResult. When the same (test, variant, client,
        simulation) appears twice, the later record wins.
    """
    result = AggregationResult()
    pattern = client_suffix_pattern(mapping)

    for case in test_cases:
        name = case.get("name", "")
        decoded = decode_test_name(name, mapping, pattern=pattern)
        if decoded is None:
            print(f"Warning: could not parse test info from: {name}", file=sys.stderr)
            result.skipped.append(name)
            continue

        key = variant_key(decoded.parameters)
        variants = result.groups.setdefault(decoded.base_test, {})
        group = variants.get(key)
        if group is None:
            parameters = list(decoded.parameters) if decoded.parameters else None
            group = VariantGroup(parameters=parameters)
            variants[key] = group

        simulation = simulation_for_test_name(name)
        passed = bool((case.get("summaryResult") or {}).get("pass", False))
        group.results.setdefault(decoded.client, {})[simulation] = passed

        if verbose:
            outcome = "PASS" if passed else "FAIL"
            print(f"  {decoded.base_test} [{key}] [{decoded.client}] [{simulation}]: {outcome}")

    return result
