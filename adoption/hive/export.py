"""Hive result export discovery and loading.

Hive writes one ``<timestamp>-<hash>.json`` file per suite run into its
results root, next to its own ``hive.json`` run metadata.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from adoption.errors import ExportNotFoundError

# Hive's own metadata file, never a results export
HIVE_METADATA_FILE = "hive.json"


@dataclass
class HiveExport:
    """The parts of a Hive suite export the tracker reads."""

    name: str
    description: str
    client_versions: dict[str, str] = field(default_factory=dict)
    test_cases: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HiveExport:
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            client_versions=dict(data.get("clientVersions") or {}),
            test_cases=list((data.get("testCases") or {}).values()),
        )


def find_export_file(results_dir: Path) -> Path | None:
    """Find the suite export in a Hive results directory.

    Args:
        results_dir: Directory passed to Hive as ``--results-root``.

    Returns:
        Path of the first (by name) ``.json`` file whose name contains a
        hyphen and is not ``hive.json``, or None if there is none or the
        directory cannot be read.
    """
    try:
        candidates = sorted(
            p for p in results_dir.iterdir()
            if p.is_file()
            and p.name.endswith(".json")
            and "-" in p.name
            and p.name != HIVE_METADATA_FILE
        )
    except OSError:
        return None
    return candidates[0] if candidates else None


def load_export(results_dir: Path) -> tuple[Path, HiveExport]:
    """Locate and parse the export in a results directory.

    Raises:
        ExportNotFoundError: If no export file is present.
        json.JSONDecodeError: If the export is not valid JSON.
    """
    path = find_export_file(results_dir)
    if path is None:
        raise ExportNotFoundError(f"No hive results file found in {results_dir}")
    data = json.loads(path.read_text())
    return path, HiveExport.from_dict(data)
