"""Fork manifests and per-EIP data locations.

The data directory is laid out as::

    <data_dir>/clients.json                      client roster
    <data_dir>/hive_clients.yml                  Hive client build config
    <data_dir>/forks/<fork>/manifest.json        fork manifest
    <data_dir>/forks/<fork>/<eip>/results.json   test results document
    <data_dir>/forks/<fork>/<eip>/clients.yml    Hive --client-file
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from adoption.errors import ManifestNotFoundError

CLIENTS_FILE = "clients.json"
HIVE_CLIENTS_FILE = "hive_clients.yml"
RESULTS_FILE = "results.json"
EIP_CLIENTS_FILE = "clients.yml"


def fork_dir(data_dir: Path, fork: str) -> Path:
    return data_dir / "forks" / fork


def results_path(data_dir: Path, fork: str, eip: str) -> Path:
    return fork_dir(data_dir, fork) / eip / RESULTS_FILE


def load_fork_manifest(data_dir: Path, fork: str) -> dict[str, Any]:
    """Load a fork manifest.

    Raises:
        ManifestNotFoundError: If the fork has no readable manifest.
    """
    path = fork_dir(data_dir, fork) / "manifest.json"
    try:
        manifest = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        raise ManifestNotFoundError(f"Fork {fork} not found")
    manifest.setdefault("eips", [])
    return manifest


def get_eip_metadata(manifest: dict[str, Any], eip: str) -> dict[str, Any] | None:
    """Find an EIP entry in a manifest by number."""
    for entry in manifest.get("eips", []):
        if str(entry.get("number")) == eip:
            return entry
    return None


@dataclass
class TestableEIP:
    """An EIP selected for syncing and running, with its file locations."""

    __test__ = False  # not a pytest test class

    fork: str
    eip_number: str
    metadata: dict[str, Any]
    results_path: Path
    clients_path: Path

    @property
    def title(self) -> str:
        return self.metadata.get("title", "")

    @property
    def test_cases_url(self) -> str | None:
        return self.metadata.get("testCases") or None

    @property
    def hive(self) -> dict[str, Any]:
        """Hive settings: ``buildArgs`` (fixtures, branch) and ``testFilter``."""
        return self.metadata.get("hive") or {}


def get_testable_eips(data_dir: Path, fork: str) -> list[TestableEIP]:
    """List the manifest's EIPs that are not marked ``skip``.

    Raises:
        ManifestNotFoundError: If the fork has no readable manifest.
    """
    manifest = load_fork_manifest(data_dir, fork)
    eips: list[TestableEIP] = []
    for entry in manifest["eips"]:
        number = str(entry.get("number"))
        if entry.get("skip"):
            print(f"Skipping EIP-{number} (marked as skip)")
            continue
        eips.append(TestableEIP(
            fork=fork,
            eip_number=number,
            metadata=entry,
            results_path=results_path(data_dir, fork, number),
            clients_path=fork_dir(data_dir, fork) / number / EIP_CLIENTS_FILE,
        ))
    return eips


def warn_missing_results(eips: list[TestableEIP]) -> None:
    """Report testable EIPs whose results document has not been synced."""
    for eip in eips:
        if not eip.results_path.exists():
            print(
                f"Warning: EIP-{eip.eip_number} has no results file at "
                f"{eip.results_path}; run 'adoption sync' first",
                file=sys.stderr,
            )
