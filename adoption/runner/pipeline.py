"""Hive run orchestration: run simulators, absorb exports, persist results.

For every testable EIP and every simulation, in order, Hive is run and its
export merged into the EIP's results document before the next simulation
starts, so each saved document reflects every simulation processed so far.
"""

from __future__ import annotations

import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path

from adoption.catalog.results import (
    MergeReport,
    TestResultsFile,
    merge_grouped_results,
    summarize_simulation,
)
from adoption.errors import AdoptionError
from adoption.hive.aggregate import group_results
from adoption.hive.clients import ClientRoster, load_github_repos
from adoption.hive.export import load_export
from adoption.manifest import CLIENTS_FILE, HIVE_CLIENTS_FILE, TestableEIP, results_path
from adoption.runner.hive import HiveRun, HiveRunner
from adoption.simulations import SIMULATIONS


@dataclass
class ParseResult:
    """Outcome of absorbing one export."""

    export_path: Path
    results_path: Path
    merge: MergeReport
    skipped: list[str] = field(default_factory=list)
    summary: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def total_updates(self) -> int:
        return sum(c["pass"] + c["fail"] for c in self.summary.values())


def update_client_roster(data_dir: Path, client_versions: dict[str, str]) -> ClientRoster:
    """Record reported client versions and GitHub links in clients.json."""
    roster = ClientRoster(data_dir / CLIENTS_FILE)
    build_config = data_dir / HIVE_CLIENTS_FILE
    github_repos = load_github_repos(build_config) if build_config.exists() else {}
    roster.update_versions(client_versions, github_repos)
    roster.save()
    print("Updated clients.json with version and GitHub repository information")
    return roster


def parse_hive_results(
    simulation: str,
    fork: str,
    eip: str,
    data_dir: Path,
    output_dir: Path,
    verbose: bool = False,
) -> ParseResult:
    """Absorb the Hive export for one (simulation, EIP) into results.json.

    Args:
        simulation: Simulator whose export is read.
        fork: Fork name.
        eip: EIP number.
        data_dir: Tracker data directory.
        output_dir: Hive output directory (exports live in
            ``<output_dir>/<simulation>/<eip>/``).
        verbose: Print every absorbed test case.

    Returns:
        ParseResult with the merge report and per-client summary.

    Raises:
        ExportNotFoundError: If Hive left no export.
        ResultsNotFoundError: If the EIP has not been synced.
        json.JSONDecodeError: If the export or document is corrupt.
    """
    export_path, export = load_export(output_dir / simulation / eip)
    print(f"Found hive results: {export_path.name}")

    results_file = TestResultsFile(results_path(data_dir, fork, eip))
    document = results_file.load()

    print(f"Hive test suite: {export.name}")
    print(f"Current test spec: {document.get('spec', '')}")
    print(f"Processing {len(export.test_cases)} test cases...")

    roster = update_client_roster(data_dir, export.client_versions)
    aggregation = group_results(export.test_cases, roster.mapping(), verbose=verbose)
    print(
        f"Grouped {aggregation.observation_count} results into "
        f"{len(aggregation.groups)} base tests"
    )

    merged, report = merge_grouped_results(document, aggregation.groups)
    results_file.save(merged)

    result = ParseResult(
        export_path=export_path,
        results_path=results_file.path,
        merge=report,
        skipped=aggregation.skipped,
        summary=summarize_simulation(merged, simulation),
    )
    print(f"Updated {results_file.path}")
    print(f"Total result updates for {simulation}: {result.total_updates}")
    print("Results summary by client:")
    for client, counts in result.summary.items():
        print(f"  {client}: {counts['pass']} pass, {counts['fail']} fail")
    return result


@dataclass
class BatchReport:
    """Outcome of a multi-EIP batch."""

    completed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    runs: list[HiveRun] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def clear_output_dir(output_dir: Path) -> None:
    """Remove and recreate the Hive output directory."""
    print(f"Clearing hive results directory {output_dir}...")
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)


def _report_failed_run(run: HiveRun) -> None:
    reason = run.error or f"exit code {run.exit_code}"
    print(
        f"   Hive simulation {run.simulation} for EIP-{run.eip} failed ({reason})",
        file=sys.stderr,
    )
    for line in run.tail:
        print(f"     | {line}", file=sys.stderr)


def run_all_simulations(
    fork: str,
    eips: list[TestableEIP],
    runner: HiveRunner,
    data_dir: Path,
    output_dir: Path,
    on_error: str = "fail_fast",
    simulations: tuple[str, ...] = SIMULATIONS,
) -> BatchReport:
    """Run every simulation for every EIP and absorb the exports.

    A failed Hive run is reported and the export (if any) is still
    parsed. A failure to parse aborts the EIP; with ``on_error`` set to
    "fail_fast" it is re-raised and aborts the batch, with "continue" it
    is recorded and the next EIP is processed.

    Returns:
        BatchReport listing completed and failed EIPs and all Hive runs.
    """
    report = BatchReport()
    clear_output_dir(output_dir)

    for eip in eips:
        print(f"\nProcessing EIP-{eip.eip_number}...")
        try:
            for simulation in simulations:
                print(f"\n   Starting simulation: {simulation}")
                run = runner.run(
                    simulation,
                    eip.eip_number,
                    eip.clients_path,
                    output_dir / simulation / eip.eip_number,
                    eip.hive,
                )
                report.runs.append(run)
                if not run.ok:
                    _report_failed_run(run)
                parse_hive_results(simulation, fork, eip.eip_number, data_dir, output_dir)
                print(f"   Completed simulation: {simulation}")
        except (AdoptionError, OSError, ValueError) as e:
            print(f"   Failed to process EIP-{eip.eip_number}: {e}", file=sys.stderr)
            if on_error == "fail_fast":
                raise
            report.failed[eip.eip_number] = str(e)
            continue

        report.completed.append(eip.eip_number)
        print(f"\nCompleted all simulations for EIP-{eip.eip_number}")

    return report
