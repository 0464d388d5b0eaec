"""Hive simulator invocation.

Runs ``./hive`` from a Hive checkout for one (simulation, EIP) pair at a
time. A failing run is not an error for the batch: the exit code and the
last lines of output are kept for diagnostics and the caller moves on.
"""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from adoption.errors import HiveNotFoundError

HIVE_REPO_ENV = "HIVE_REPO_PATH"
DEFAULT_HIVE_REPO = "/tmp/hive"

# Default number of output lines kept from a run
DEFAULT_TAIL_LINES = 50


def hive_repo_path() -> Path:
    """Location of the Hive checkout (``$HIVE_REPO_PATH`` or /tmp/hive)."""
    return Path(os.environ.get(HIVE_REPO_ENV) or DEFAULT_HIVE_REPO)


def tail_lines(text: str, limit: int) -> list[str]:
    """Last ``limit`` lines of ``text``."""
    if limit <= 0:
        return []
    return text.splitlines()[-limit:]


@dataclass
class HiveRun:
    """Outcome of one Hive invocation."""

    simulation: str
    eip: str
    exit_code: int
    duration: float = 0.0
    tail: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None


class HiveRunner:
    """Builds and runs Hive commands for a checkout."""

    def __init__(
        self,
        repo_path: Path | None = None,
        parallelism: int = 4,
        timeout: float | None = None,
        tail: int = DEFAULT_TAIL_LINES,
    ) -> None:
        self.repo_path = repo_path or hive_repo_path()
        self.parallelism = parallelism
        self.timeout = timeout
        self.tail = tail

    def verify(self) -> None:
        """Check that ``./hive`` runs in the checkout.

        Raises:
            HiveNotFoundError: If the binary is missing or exits non-zero.
        """
        try:
            proc = subprocess.run(
                ["./hive", "--cleanup"],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=300,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise HiveNotFoundError(
                f"Hive CLI not found. Please install Hive first [error: {e}]"
            )
        if proc.returncode != 0:
            raise HiveNotFoundError(
                "Hive CLI not found. Please install Hive first "
                f"[error: exit code {proc.returncode}: {proc.stderr.strip()}]"
            )

    def build_command(
        self,
        simulation: str,
        clients_file: Path,
        results_root: Path,
        hive_config: dict[str, Any],
    ) -> list[str]:
        """Build the argv for one simulation run.

        Args:
            simulation: Hive simulator name (e.g. "consume-rlp").
            clients_file: Hive ``--client-file`` YAML.
            results_root: Directory Hive writes its export into.
            hive_config: Manifest ``hive`` entry with ``buildArgs``
                (fixtures, branch) and ``testFilter``.
        """
        build_args = hive_config.get("buildArgs") or {}
        command = [
            "./hive",
            "--sim", simulation,
            f"--client-file={clients_file}",
        ]
        if build_args.get("fixtures"):
            command += ["--sim.buildarg", f"fixtures={build_args['fixtures']}"]
        if build_args.get("branch"):
            command += ["--sim.buildarg", f"branch={build_args['branch']}"]
        command += [
            "--docker.output",
            "--results-root", str(results_root),
        ]
        if hive_config.get("testFilter"):
            command += ["--sim.limit", hive_config["testFilter"]]
        command += ["--sim.parallelism", str(self.parallelism)]
        return command

    def run(
        self,
        simulation: str,
        eip: str,
        clients_file: Path,
        results_root: Path,
        hive_config: dict[str, Any],
    ) -> HiveRun:
        """Run one simulation; never raises for a failed run.

        Returns:
            HiveRun with the exit code (-1 for spawn errors and timeouts)
            and the trailing output lines.
        """
        results_root.mkdir(parents=True, exist_ok=True)
        command = self.build_command(simulation, clients_file, results_root, hive_config)
        print(f"   Running Hive simulation: {simulation}")
        print(f"   Command: {' '.join(command)}")

        start_time = time.monotonic()
        try:
            proc = subprocess.run(
                command,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.stdout or ""
            if isinstance(output, bytes):
                output = output.decode(errors="replace")
            return HiveRun(
                simulation=simulation,
                eip=eip,
                exit_code=-1,
                duration=time.monotonic() - start_time,
                tail=tail_lines(output, self.tail),
                error=f"Hive timed out after {self.timeout} seconds",
            )
        except OSError as e:
            return HiveRun(
                simulation=simulation,
                eip=eip,
                exit_code=-1,
                duration=time.monotonic() - start_time,
                error=f"OS error running Hive: {e}",
            )

        output = proc.stdout + proc.stderr
        return HiveRun(
            simulation=simulation,
            eip=eip,
            exit_code=proc.returncode,
            duration=time.monotonic() - start_time,
            tail=tail_lines(output, self.tail) if proc.returncode != 0 else [],
        )
