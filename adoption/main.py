"""Command-line entry point for the adoption tracker.

Provides sync, run, parse, summary, and serve subcommands for keeping the
per-EIP test catalogs current and inspecting the resulting adoption data.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from adoption.catalog.results import TestResultsFile
from adoption.config import ON_ERROR_POLICIES, AppConfig
from adoption.errors import AdoptionError
from adoption.hive.clients import ClientRoster
from adoption.manifest import (
    CLIENTS_FILE,
    get_testable_eips,
    load_fork_manifest,
    results_path,
    warn_missing_results,
)
from adoption.simulations import SIMULATIONS, simulation_label


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Block Access List client adoption tracker"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("adoption.json"),
        help="Path to the tracker config file (default: adoption.json)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # sync subcommand
    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync test catalogs from the EIP test case documents",
    )
    sync_parser.add_argument(
        "fork", nargs="?", default=None,
        help="Fork to sync (default: current_fork from config)",
    )
    sync_parser.add_argument(
        "--on-error",
        choices=sorted(ON_ERROR_POLICIES),
        default=None,
        help="Stop at the first failing EIP or continue with the rest",
    )

    # run subcommand
    run_parser = subparsers.add_parser(
        "run",
        help="Run Hive for every testable EIP and absorb the results",
    )
    run_parser.add_argument(
        "fork", nargs="?", default=None,
        help="Fork to run (default: current_fork from config)",
    )
    run_parser.add_argument(
        "--on-error",
        choices=sorted(ON_ERROR_POLICIES),
        default=None,
        help="Stop at the first failing EIP or continue with the rest",
    )
    run_parser.add_argument(
        "--hive-path",
        type=Path,
        default=None,
        help="Hive checkout (default: $HIVE_REPO_PATH or /tmp/hive)",
    )

    # parse subcommand
    parse_parser = subparsers.add_parser(
        "parse",
        help="Absorb an existing Hive export for one simulation and EIP",
    )
    parse_parser.add_argument("simulation", choices=SIMULATIONS)
    parse_parser.add_argument("eip", help="EIP number")
    parse_parser.add_argument(
        "--fork", default=None,
        help="Fork name (default: current_fork from config)",
    )
    parse_parser.add_argument(
        "--verbose", action="store_true", default=False,
        help="Print every absorbed test case",
    )

    # summary subcommand
    summary_parser = subparsers.add_parser(
        "summary",
        help="Print adoption statistics for a fork",
    )
    summary_parser.add_argument(
        "fork", nargs="?", default=None,
        help="Fork to summarize (default: current_fork from config)",
    )
    summary_parser.add_argument(
        "--eip", default=None,
        help="Print per-test status for one EIP",
    )
    summary_parser.add_argument(
        "--failing", action="store_true", default=False,
        help="With --eip, only list failing tests",
    )

    # serve subcommand
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the adoption JSON API",
    )
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def cmd_sync(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle sync subcommand.

    Returns:
        Exit code (0 for success, 1 if any EIP failed).
    """
    from adoption.sync import sync_all

    fork = args.fork or config.current_fork
    print(f"Syncing test cases for fork: {fork}")
    eips = get_testable_eips(config.data_dir, fork)
    if not eips:
        print("No testable EIPs found")
        return 0
    print(f"Found {len(eips)} testable EIP(s)")

    report = sync_all(eips, on_error=args.on_error or config.on_error)
    if not report.ok:
        print(
            f"\nSync failed for: {', '.join(sorted(report.failed))}",
            file=sys.stderr,
        )
        return 1
    print("\nAll test cases synced successfully")
    return 0


def cmd_run(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle run subcommand.

    Returns:
        Exit code (0 for success, 1 if Hive is missing or any EIP failed).
    """
    from adoption.runner.hive import HiveRunner
    from adoption.runner.pipeline import run_all_simulations

    fork = args.fork or config.current_fork
    print(f"Starting Hive integration test runner for fork: {fork}")
    eips = get_testable_eips(config.data_dir, fork)
    if not eips:
        print("No testable EIPs found")
        return 0
    print(f"Found {len(eips)} testable EIP(s)")
    warn_missing_results(eips)

    runner = HiveRunner(
        repo_path=args.hive_path,
        parallelism=config.hive_parallelism,
        timeout=config.hive_timeout,
        tail=config.tail_lines,
    )
    runner.verify()
    report = run_all_simulations(
        fork,
        eips,
        runner,
        config.data_dir,
        config.output_dir,
        on_error=args.on_error or config.on_error,
    )

    failed_runs = [run for run in report.runs if not run.ok]
    if failed_runs:
        print(f"\n{len(failed_runs)} Hive run(s) exited with errors")
    if not report.ok:
        print(
            f"\nFailed EIPs: {', '.join(sorted(report.failed))}",
            file=sys.stderr,
        )
        return 1
    print("\nIntegration test runner completed successfully")
    return 0


def cmd_parse(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle parse subcommand."""
    from adoption.runner.pipeline import parse_hive_results

    fork = args.fork or config.current_fork
    result = parse_hive_results(
        args.simulation,
        fork,
        args.eip,
        config.data_dir,
        config.output_dir,
        verbose=args.verbose,
    )
    if result.merge.missing:
        print(
            f"{len(result.merge.missing)} base test(s) had no catalog entry",
            file=sys.stderr,
        )
    return 0


def _print_eip_tests(
    fork: str, eip: str, config: AppConfig, clients: list[dict], failing: bool
) -> None:
    from adoption.stats.adoption import (
        filter_failing_tests,
        format_test_id,
        variant_counts_for_simulation,
    )

    document = TestResultsFile(results_path(config.data_dir, fork, eip)).load()
    tests = document.get("tests") or []
    if failing:
        tests = filter_failing_tests(tests, clients)
    print(f"\nEIP-{eip} tests ({len(tests)}) - last updated {document.get('lastUpdated', '')}")
    for test in tests:
        print(f"  {format_test_id(test['id'])} ({len(test.get('variants') or [])} variants)")
        for client in clients:
            cells = []
            for simulation in SIMULATIONS:
                passed, total = variant_counts_for_simulation(test, client["id"], simulation)
                cells.append(f"{simulation_label(simulation)} {passed}/{total}")
            print(f"    {client['id']:<12} {'  '.join(cells)}")


def cmd_summary(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle summary subcommand."""
    from adoption.stats.adoption import build_fork_adoption, eip_progress, fork_progress

    fork = args.fork or config.current_fork
    manifest = load_fork_manifest(config.data_dir, fork)
    clients = ClientRoster(config.data_dir / CLIENTS_FILE).clients

    def load(eip: str) -> dict:
        return TestResultsFile(results_path(config.data_dir, fork, eip)).load()

    rollup = build_fork_adoption(manifest["eips"], load, clients)

    progresses = []
    for entry in manifest["eips"]:
        try:
            tests = load(str(entry.get("number")))["tests"]
        except (AdoptionError, OSError, ValueError):
            tests = None
        progresses.append(eip_progress(tests, clients))

    print(f"{manifest.get('name', fork)}: average score "
          f"{rollup['summary']['averageScore']}% over "
          f"{rollup['summary']['totalEIPs']} EIP(s), progress {fork_progress(progresses)}%")
    for eip in rollup["eips"]:
        summary = eip["summary"]
        print(f"\nEIP-{eip['eip']}: {summary['overallScore']}% "
              f"({summary['activeClients']}/{summary['totalClients']} clients active, "
              f"{summary['totalTests']} tests, {summary['totalVariants']} variants)")
        for client in eip["clients"]:
            result = client["result"]
            print(f"  {client['name']:<14} {client['version']:<24} "
                  f"{result['passed']:>4} pass {result['failed']:>4} fail "
                  f"{result['pending']:>4} pending  {result['score']}%")

    if args.eip:
        _print_eip_tests(fork, args.eip, config, clients, args.failing)
    return 0


def cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    """Handle serve subcommand."""
    from adoption.api import AdoptionAPI, serve

    serve(AdoptionAPI(config), host=args.host, port=args.port)
    return 0


_COMMANDS = {
    "sync": cmd_sync,
    "run": cmd_run,
    "parse": cmd_parse,
    "summary": cmd_summary,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return 1

    handler = _COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    config = AppConfig(args.config)
    try:
        return handler(args, config)
    except (AdoptionError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
