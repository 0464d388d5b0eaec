"""Test results document management and result merging.

A results document (``forks/<fork>/<eip>/results.json``) holds the test
catalog of one EIP::

    {
      "spec": "...",
      "lastUpdated": "<ISO-8601>",
      "tests": [
        {"id": ..., "description": ..., "setup": ..., "expectation": ...,
         "status": "completed", "variants": [
            {"parameters": [...], "results": {
                "<client>": [{"simulation": "consume-rlp", "status": "pass"}]
            }}
         ]}
      ]
    }

Catalog entries come from the test case table sync; merging Hive results
only ever adds variants and results beneath existing entries.
"""

from __future__ import annotations

import copy
import datetime
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from adoption.errors import ResultsNotFoundError
from adoption.hive.aggregate import VariantGroup


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.datetime.now(tz=datetime.timezone.utc).isoformat()


def new_document(spec: str, now: str | None = None) -> dict[str, Any]:
    """Create an empty results document."""
    return {"spec": spec, "lastUpdated": now or utc_now(), "tests": []}


class TestResultsFile:
    """Reads and writes one EIP's results.json."""

    __test__ = False  # not a pytest test class

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict[str, Any]:
        """Load the document.

        Raises:
            ResultsNotFoundError: If the file does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
        """
        try:
            text = self.path.read_text()
        except FileNotFoundError:
            raise ResultsNotFoundError(f"Test results not found: {self.path}")
        document = json.loads(text)
        document["tests"] = document.get("tests") or []
        return document

    def save(self, document: dict[str, Any]) -> None:
        """Write the document with stable 2-space indentation."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")


@dataclass
class MergeReport:
    """What a merge touched."""

    updated: dict[str, int] = field(default_factory=dict)  # test id -> variant count
    missing: list[str] = field(default_factory=list)
    created_variants: int = 0


def _same_parameters(variant: dict[str, Any], parameters: list[str] | None) -> bool:
    return list(variant.get("parameters") or []) == list(parameters or [])


def _find_or_create_variant(
    test: dict[str, Any], parameters: list[str] | None
) -> tuple[dict[str, Any], bool]:
    variants = test["variants"]
    for variant in variants:
        if _same_parameters(variant, parameters):
            variant.setdefault("results", {})
            return variant, False
    variant = {"parameters": list(parameters or []), "results": {}}
    variants.append(variant)
    return variant, True


def _record_result(
    variant: dict[str, Any], client: str, simulation: str, passed: bool
) -> None:
    client_results = variant["results"].setdefault(client, [])
    for result in client_results:
        if result.get("simulation") == simulation:
            break
    else:
        result = {"simulation": simulation, "status": "pending"}
        client_results.append(result)
    result["status"] = "pass" if passed else "fail"


def merge_grouped_results(
    document: dict[str, Any],
    groups: dict[str, dict[str, VariantGroup]],
    now: str | None = None,
) -> tuple[dict[str, Any], MergeReport]:
    """Merge grouped Hive results into a results document.

    The input document is left untouched; the returned copy differs only
    in ``lastUpdated`` and in the variants/results named by ``groups``.
    Merging the same groups twice leaves every status unchanged.

    Args:
        document: Current results document.
        groups: ``AggregationResult.groups`` from ``group_results``.
        now: Timestamp for ``lastUpdated`` (defaults to the current time).

    Returns:
        Tuple of (merged document, MergeReport).
    """
    merged = copy.deepcopy(document)
    merged["tests"] = merged.get("tests") or []
    tests = merged["tests"]
    by_id = {test.get("id"): test for test in tests}
    report = MergeReport()

    for base_test, variants in groups.items():
        test = by_id.get(base_test)
        if test is None:
            print(f"Warning: no matching test found for: {base_test}", file=sys.stderr)
            report.missing.append(base_test)
            continue

        if not test.get("variants"):
            test["variants"] = []

        for group in variants.values():
            variant, created = _find_or_create_variant(test, group.parameters)
            if created:
                report.created_variants += 1
            for client, simulations in group.results.items():
                for simulation, passed in simulations.items():
                    _record_result(variant, client, simulation, passed)

        report.updated[base_test] = len(test["variants"])

    merged["lastUpdated"] = now or utc_now()
    return merged, report


def summarize_simulation(
    document: dict[str, Any], simulation: str
) -> dict[str, dict[str, int]]:
    """Count recorded pass/fail results for one simulation.

    Returns:
        Dict of {client_id: {"pass": n, "fail": m}} over every variant,
        ignoring pending results.
    """
    summary: dict[str, dict[str, int]] = {}
    for test in document.get("tests") or []:
        for variant in test.get("variants") or []:
            for client, results in (variant.get("results") or {}).items():
                for result in results:
                    if result.get("simulation") != simulation:
                        continue
                    status = result.get("status")
                    if status not in ("pass", "fail"):
                        continue
                    counts = summary.setdefault(client, {"pass": 0, "fail": 0})
                    counts[status] += 1
    return summary
