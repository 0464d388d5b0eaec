"""Client adoption statistics.

Derives per-client and aggregate scores from a results document.

A client's execution of a variant is:

* ``passed``  - every simulation has a ``pass`` result,
* ``failed``  - at least one simulation has a ``fail`` result,
* ``pending`` - anything else, including no results at all.

A missing result and an explicit ``pending`` result are the same thing
everywhere in this module. Tests without variants count as one pending
unit per client, so they show up in totals but never in scores.

Scores are percentages rounded half-up to one decimal.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from adoption.errors import AdoptionError
from adoption.hive.clients import UNKNOWN_VERSION
from adoption.simulations import SIMULATIONS

PASSED = "passed"
FAILED = "failed"
PENDING = "pending"


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like ``Math.round(value * 10**digits) / 10**digits``."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _client_results(variant: dict[str, Any], client_id: str) -> list[dict[str, Any]]:
    return (variant.get("results") or {}).get(client_id) or []


def _status_for(results: list[dict[str, Any]], simulation: str) -> str | None:
    for result in results:
        if result.get("simulation") == simulation:
            return result.get("status")
    return None


def passed_all_simulations(results: list[dict[str, Any]]) -> bool:
    """True if every simulation has a ``pass`` result."""
    return all(_status_for(results, sim) == "pass" for sim in SIMULATIONS)


def classify_variant(variant: dict[str, Any], client_id: str) -> str:
    """Classify one client's execution of a variant.

    Returns:
        "passed", "failed", or "pending".
    """
    results = _client_results(variant, client_id)
    if passed_all_simulations(results):
        return PASSED
    if any(r.get("status") == "fail" for r in results):
        return FAILED
    return PENDING


@dataclass
class ClientStats:
    """Variant outcome counts for one client."""

    client_id: str
    passed: int = 0
    failed: int = 0
    pending: int = 0
    total: int = 0

    @property
    def pass_rate(self) -> float:
        """Percentage of passed units (0 when there are none)."""
        return self.passed / self.total * 100 if self.total > 0 else 0.0

    @property
    def is_active(self) -> bool:
        """True if the client has at least one recorded outcome."""
        return self.total > 0 and (self.passed > 0 or self.failed > 0)


@dataclass
class OverallAdoptionStats:
    """Adoption counts across all clients for one results document."""

    total_clients: int
    total_tests: int
    total_variants: int
    client_stats: list[ClientStats] = field(default_factory=list)

    @property
    def overall_pass_rate(self) -> float:
        """Passed units over all units, across every client."""
        total = sum(stat.total for stat in self.client_stats)
        passed = sum(stat.passed for stat in self.client_stats)
        return passed / total * 100 if total > 0 else 0.0

    @property
    def active_clients(self) -> int:
        return sum(1 for stat in self.client_stats if stat.is_active)


def client_stats(tests: Iterable[dict[str, Any]], client_id: str) -> ClientStats:
    """Count passed, failed and pending units for one client."""
    stats = ClientStats(client_id=client_id)
    for test in tests:
        variants = test.get("variants") or []
        if not variants:
            stats.total += 1
            stats.pending += 1
            continue
        for variant in variants:
            stats.total += 1
            outcome = classify_variant(variant, client_id)
            if outcome == PASSED:
                stats.passed += 1
            elif outcome == FAILED:
                stats.failed += 1
            else:
                stats.pending += 1
    return stats


def overall_adoption_stats(
    tests: list[dict[str, Any]], clients: list[dict[str, Any]]
) -> OverallAdoptionStats:
    """Compute per-client stats for every client in the roster."""
    return OverallAdoptionStats(
        total_clients=len(clients),
        total_tests=len(tests),
        total_variants=sum(len(test.get("variants") or []) for test in tests),
        client_stats=[client_stats(tests, client["id"]) for client in clients],
    )


def client_overall_progress(
    tests: Iterable[dict[str, Any]], client_id: str
) -> tuple[int, int]:
    """Passed and total unit counts for one client's progress indicator."""
    stats = client_stats(tests, client_id)
    return stats.passed, stats.total


def variant_counts_for_simulation(
    test: dict[str, Any], client_id: str, simulation: str
) -> tuple[int, int]:
    """Count a client's variants with a result under one simulation.

    Returns:
        Tuple of (passed, total) where total counts variants that have
        any result for the simulation.
    """
    statuses = [
        _status_for(_client_results(variant, client_id), simulation)
        for variant in test.get("variants") or []
    ]
    recorded = [status for status in statuses if status is not None]
    return sum(1 for s in recorded if s == "pass"), len(recorded)


def is_test_failing(test: dict[str, Any], clients: Iterable[dict[str, Any]]) -> bool:
    """True if any client has a non-passing variant under any simulation."""
    for client in clients:
        for simulation in SIMULATIONS:
            passed, total = variant_counts_for_simulation(test, client["id"], simulation)
            if total > 0 and passed < total:
                return True
    return False


def filter_failing_tests(
    tests: list[dict[str, Any]], clients: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    return [test for test in tests if is_test_failing(test, clients)]


def build_eip_adoption(
    eip: str,
    spec: str,
    tests: list[dict[str, Any]],
    last_updated: str,
    clients: list[dict[str, Any]],
) -> dict[str, Any]:
    """Build the adoption summary served for one EIP.

    Args:
        eip: EIP number.
        spec: Link to the EIP specification.
        tests: ``tests`` of the EIP's results document.
        last_updated: ``lastUpdated`` of the results document.
        clients: Client roster records.

    Returns:
        Dict with ``eip``, ``spec``, ``lastUpdated``, ``summary``
        (totalClients, activeClients, totalTests, totalVariants,
        overallScore) and per-client ``clients`` entries.
    """
    stats = overall_adoption_stats(tests, clients)
    by_id = {client["id"]: client for client in clients}

    client_entries = []
    for stat in stats.client_stats:
        info = by_id.get(stat.client_id, {})
        entry: dict[str, Any] = {
            "name": info.get("name") or stat.client_id,
            "version": info.get("version") or UNKNOWN_VERSION,
        }
        if info.get("githubRepo"):
            entry["githubRepo"] = info["githubRepo"]
        entry["result"] = {
            "passed": stat.passed,
            "failed": stat.failed,
            "pending": stat.pending,
            "total": stat.total,
            "score": round_half_up(stat.pass_rate),
        }
        client_entries.append(entry)

    return {
        "eip": eip,
        "spec": spec,
        "lastUpdated": last_updated,
        "summary": {
            "totalClients": stats.total_clients,
            "activeClients": stats.active_clients,
            "totalTests": stats.total_tests,
            "totalVariants": stats.total_variants,
            "overallScore": round_half_up(stats.overall_pass_rate),
        },
        "clients": client_entries,
    }


def _empty_eip_adoption(eip: str, spec: str) -> dict[str, Any]:
    return {
        "eip": eip,
        "spec": spec,
        "lastUpdated": "",
        "summary": {
            "totalClients": 0,
            "activeClients": 0,
            "totalTests": 0,
            "totalVariants": 0,
            "overallScore": 0,
        },
        "clients": [],
    }


ResultsLoader = Callable[[str], dict[str, Any]]


def build_fork_adoption(
    eips: list[dict[str, Any]],
    load_results: ResultsLoader,
    clients: list[dict[str, Any]],
) -> dict[str, Any]:
    """Build per-EIP summaries and the fork-wide average score.

    Args:
        eips: Manifest EIP entries (``number``, ``spec``).
        load_results: Returns the results document for an EIP number and
            raises ``AdoptionError``/``OSError``/``ValueError`` when there
            is none.
        clients: Client roster records.

    Returns:
        Dict with ``eips`` (one summary per manifest entry, zeroed when
        the EIP has no results) and ``summary`` (totalEIPs,
        averageScore). The average is taken over all EIPs.
    """
    adoptions = []
    for eip in eips:
        number = str(eip.get("number", ""))
        spec = eip.get("spec", "")
        try:
            document = load_results(number)
        except (AdoptionError, OSError, ValueError):
            adoptions.append(_empty_eip_adoption(number, spec))
            continue
        adoptions.append(build_eip_adoption(
            number,
            spec,
            document.get("tests") or [],
            document.get("lastUpdated", ""),
            clients,
        ))

    total = len(eips)
    average = 0.0
    if total > 0:
        average = round_half_up(
            sum(a["summary"]["overallScore"] for a in adoptions) / total
        )
    return {
        "eips": adoptions,
        "summary": {"totalEIPs": total, "averageScore": average},
    }


def eip_progress(
    tests: list[dict[str, Any]] | None, clients: list[dict[str, Any]]
) -> int:
    """Whole-percent progress of an EIP over clients with a known version.

    ``tests`` is None when the EIP has no results document yet.
    """
    if tests is None:
        return 0
    reporting = [c for c in clients if c.get("version") != UNKNOWN_VERSION]
    stats = overall_adoption_stats(tests, reporting)
    return int(round_half_up(stats.overall_pass_rate, 0))


def fork_progress(progresses: Iterable[int]) -> int:
    """Mean progress over EIPs that have made any progress."""
    started = [p for p in progresses if p > 0]
    if not started:
        return 0
    return int(round_half_up(sum(started) / len(started), 0))


def format_test_id(test_id: str) -> str:
    """Display name for a test id: ``test_bal_nonce_changes`` -> ``Nonce Changes``."""
    text = re.sub(r"^test_bal_", "", test_id).replace("_", " ")
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)
