"""Unit tests for parsing Hive exports and running batches."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest
import yaml

from adoption.errors import ExportNotFoundError, ResultsNotFoundError
from adoption.manifest import TestableEIP, results_path
from adoption.runner.hive import HiveRun
from adoption.runner.pipeline import (
    clear_output_dir,
    parse_hive_results,
    run_all_simulations,
    update_client_roster,
)

PREFIX = "tests/amsterdam/eip7928/test_bal.py"

ROSTER = [
    {"id": "geth", "name": "Geth", "hiveName": "go-ethereum", "version": "unknown"},
    {"id": "besu", "name": "Besu", "hiveName": "besu", "version": "unknown"},
]

HIVE_CLIENTS = [
    {"client": "go-ethereum", "dockerfile": "git", "build_args": {"github": "ethereum/go-ethereum", "tag": "bal-devnet"}},
]


def _setup_data(root: Path, eips: tuple[str, ...] = ("7928",)) -> Path:
    data_dir = root / "data"
    data_dir.mkdir()
    (data_dir / "clients.json").write_text(json.dumps(ROSTER))
    (data_dir / "hive_clients.yml").write_text(yaml.safe_dump(HIVE_CLIENTS))
    for eip in eips:
        path = results_path(data_dir, "glamsterdam", eip)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({
            "spec": f"BAL - EIP-{eip}",
            "lastUpdated": "old",
            "tests": [
                {"id": "test_a", "description": "", "setup": "", "expectation": "",
                 "status": "completed", "variants": []},
            ],
        }))
    return data_dir


def _write_export(output_dir: Path, simulation: str, eip: str, cases: dict[str, bool]) -> None:
    export_dir = output_dir / simulation / eip
    export_dir.mkdir(parents=True, exist_ok=True)
    (export_dir / "hive.json").write_text("{}")
    (export_dir / "1718000000-abc.json").write_text(json.dumps({
        "name": f"eest/{simulation}",
        "clientVersions": {"go-ethereum": "1.16.0"},
        "testCases": {
            str(i): {"name": name, "summaryResult": {"pass": passed}}
            for i, (name, passed) in enumerate(cases.items())
        },
    }))


def _eip(data_dir: Path, number: str = "7928") -> TestableEIP:
    return TestableEIP(
        fork="glamsterdam",
        eip_number=number,
        metadata={"number": number, "hive": {"testFilter": f"eip{number}"}},
        results_path=results_path(data_dir, "glamsterdam", number),
        clients_path=data_dir / "forks" / "glamsterdam" / number / "clients.yml",
    )


class FakeRunner:
    """Stands in for HiveRunner and writes an export per call."""

    def __init__(self, output_dir: Path, exit_code: int = 0, skip_export_for: str | None = None):
        self.output_dir = output_dir
        self.exit_code = exit_code
        self.skip_export_for = skip_export_for
        self.calls: list[tuple[str, str]] = []

    def run(self, simulation, eip, clients_file, results_root, hive_config):
        self.calls.append((simulation, eip))
        results_root.mkdir(parents=True, exist_ok=True)
        if eip != self.skip_export_for:
            artifact = "blockchain_test_engine" if simulation == "consume-engine" else "blockchain_test"
            _write_export(self.output_dir, simulation, eip, {
                f"{PREFIX}::test_a[p1-{artifact}]-go-ethereum": True,
            })
        return HiveRun(simulation=simulation, eip=eip, exit_code=self.exit_code,
                       tail=["boom"] if self.exit_code else [])


class TestUpdateClientRoster:
    """Tests for update_client_roster."""

    def test_versions_and_links(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = _setup_data(Path(tmpdir))
            roster = update_client_roster(data_dir, {"go-ethereum": "1.16.0"})

            geth = roster.get_client("geth")
            assert geth["version"] == "1.16.0"
            assert geth["githubRepo"] == "https://github.com/ethereum/go-ethereum/tree/bal-devnet"
            assert roster.get_client("besu")["version"] == "unknown"
            saved = json.loads((data_dir / "clients.json").read_text())
            assert saved[0]["version"] == "1.16.0"

    def test_without_build_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = _setup_data(Path(tmpdir))
            (data_dir / "hive_clients.yml").unlink()
            roster = update_client_roster(data_dir, {})
            assert "githubRepo" not in roster.get_client("geth")


class TestParseHiveResults:
    """Tests for parse_hive_results."""

    def test_merges_export_into_document(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root)
            output_dir = root / "out"
            _write_export(output_dir, "consume-rlp", "7928", {
                f"{PREFIX}::test_a[p1-blockchain_test]-go-ethereum": True,
                f"{PREFIX}::test_a[p1-blockchain_test]-besu": False,
                f"{PREFIX}::test_missing[p1-blockchain_test]-besu": True,
                f"{PREFIX}::test_a[p1-blockchain_test]-nethermind": True,
            })

            result = parse_hive_results("consume-rlp", "glamsterdam", "7928", data_dir, output_dir)

            document = json.loads(results_path(data_dir, "glamsterdam", "7928").read_text())
            variants = document["tests"][0]["variants"]
            assert variants == [{"parameters": ["p1"], "results": {
                "geth": [{"simulation": "consume-rlp", "status": "pass"}],
                "besu": [{"simulation": "consume-rlp", "status": "fail"}],
            }}]
            assert document["lastUpdated"] != "old"
            assert result.merge.missing == ["test_missing"]
            assert result.skipped == [f"{PREFIX}::test_a[p1-blockchain_test]-nethermind"]
            assert result.summary == {"geth": {"pass": 1, "fail": 0}, "besu": {"pass": 0, "fail": 1}}
            assert result.total_updates == 2

    def test_reports_grouping_counts(self, capsys):
        """Decoded results and base tests are counted in the progress output."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root)
            output_dir = root / "out"
            _write_export(output_dir, "consume-rlp", "7928", {
                f"{PREFIX}::test_a[p1-blockchain_test]-go-ethereum": True,
                f"{PREFIX}::test_a[p2-blockchain_test]-besu": True,
                f"{PREFIX}::test_missing[blockchain_test]-besu": True,
                f"{PREFIX}::test_a[p1-blockchain_test]-nethermind": True,
            })

            parse_hive_results("consume-rlp", "glamsterdam", "7928", data_dir, output_dir)

            assert "Grouped 3 results into 2 base tests" in capsys.readouterr().out

    def test_second_simulation_adds_results(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root)
            output_dir = root / "out"
            _write_export(output_dir, "consume-rlp", "7928", {
                f"{PREFIX}::test_a[p1-blockchain_test]-go-ethereum": True,
            })
            _write_export(output_dir, "consume-engine", "7928", {
                f"{PREFIX}::test_a[p1-blockchain_test_engine]-go-ethereum": True,
            })
            parse_hive_results("consume-rlp", "glamsterdam", "7928", data_dir, output_dir)
            parse_hive_results("consume-engine", "glamsterdam", "7928", data_dir, output_dir)

            document = json.loads(results_path(data_dir, "glamsterdam", "7928").read_text())
            assert document["tests"][0]["variants"][0]["results"]["geth"] == [
                {"simulation": "consume-rlp", "status": "pass"},
                {"simulation": "consume-engine", "status": "pass"},
            ]

    def test_missing_export(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root)
            with pytest.raises(ExportNotFoundError):
                parse_hive_results("consume-rlp", "glamsterdam", "7928", data_dir, root / "out")

    def test_missing_results_document(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root, eips=())
            _write_export(root / "out", "consume-rlp", "7928", {})
            with pytest.raises(ResultsNotFoundError):
                parse_hive_results("consume-rlp", "glamsterdam", "7928", data_dir, root / "out")


class TestClearOutputDir:
    """Tests for clear_output_dir."""

    def test_removes_previous_exports(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_dir = Path(tmpdir) / "out"
            (output_dir / "consume-rlp").mkdir(parents=True)
            clear_output_dir(output_dir)
            assert output_dir.is_dir()
            assert list(output_dir.iterdir()) == []


class TestRunAllSimulations:
    """Tests for run_all_simulations."""

    def test_runs_every_simulation_in_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root, eips=("7928", "7843"))
            output_dir = root / "out"
            runner = FakeRunner(output_dir)

            report = run_all_simulations(
                "glamsterdam", [_eip(data_dir, "7928"), _eip(data_dir, "7843")],
                runner, data_dir, output_dir,
            )

            assert runner.calls == [
                ("consume-rlp", "7928"), ("consume-engine", "7928"),
                ("consume-rlp", "7843"), ("consume-engine", "7843"),
            ]
            assert report.ok
            assert report.completed == ["7928", "7843"]
            document = json.loads(results_path(data_dir, "glamsterdam", "7843").read_text())
            assert len(document["tests"][0]["variants"][0]["results"]["geth"]) == 2

    def test_failed_run_still_parsed(self, capsys):
        """A non-zero Hive exit is reported and its export still absorbed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root)
            output_dir = root / "out"
            report = run_all_simulations(
                "glamsterdam", [_eip(data_dir)], FakeRunner(output_dir, exit_code=1),
                data_dir, output_dir,
            )
            assert report.completed == ["7928"]
            assert [run.exit_code for run in report.runs] == [1, 1]
            err = capsys.readouterr().err
            assert "failed (exit code 1)" in err
            assert "| boom" in err

    def test_fail_fast_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root, eips=("7928", "7843"))
            output_dir = root / "out"
            runner = FakeRunner(output_dir, skip_export_for="7928")
            with pytest.raises(ExportNotFoundError):
                run_all_simulations(
                    "glamsterdam", [_eip(data_dir, "7928"), _eip(data_dir, "7843")],
                    runner, data_dir, output_dir, on_error="fail_fast",
                )
            assert runner.calls == [("consume-rlp", "7928")]

    def test_continue_records_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            data_dir = _setup_data(root, eips=("7928", "7843"))
            output_dir = root / "out"
            runner = FakeRunner(output_dir, skip_export_for="7928")
            report = run_all_simulations(
                "glamsterdam", [_eip(data_dir, "7928"), _eip(data_dir, "7843")],
                runner, data_dir, output_dir, on_error="continue",
            )
            assert not report.ok
            assert list(report.failed) == ["7928"]
            assert report.completed == ["7843"]
