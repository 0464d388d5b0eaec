"""Tracker configuration file management.

Reads the adoption.json configuration file that stores the
current fork, data locations, Hive invocation settings, API cache
durations, and the batch error policy.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

# Batch error policies
ON_ERROR_POLICIES = frozenset({"fail_fast", "continue"})

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "current_fork": "glamsterdam",
    "data_dir": "data",
    "output_dir": ".hive",
    "hive_parallelism": 4,
    "hive_timeout": None,
    "tail_lines": 50,
    "cache_max_age": 300,
    "cache_stale_while_revalidate": 3600,
    "on_error": "fail_fast",
}


class AppConfig:
    """Manages the adoption.json configuration file.

    Relative ``data_dir`` and ``output_dir`` values are resolved against
    the directory holding the config file (or the working directory when
    no file is used).
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    @property
    def base_dir(self) -> Path:
        """Directory that relative paths are resolved against."""
        if self.path is not None:
            return self.path.resolve().parent
        return Path.cwd()

    def _resolve(self, key: str) -> Path:
        value = Path(str(self._data.get(key, DEFAULT_CONFIG[key])))
        if value.is_absolute():
            return value
        return self.base_dir / value

    @property
    def current_fork(self) -> str:
        """Get the fork used when none is given on the command line."""
        return str(self._data.get("current_fork", DEFAULT_CONFIG["current_fork"]))

    @property
    def data_dir(self) -> Path:
        """Get the directory holding clients.json and forks/."""
        return self._resolve("data_dir")

    @property
    def output_dir(self) -> Path:
        """Get the directory Hive writes result exports into."""
        return self._resolve("output_dir")

    @property
    def hive_parallelism(self) -> int:
        """Get the --sim.parallelism value passed to Hive."""
        return int(
            self._data.get("hive_parallelism", DEFAULT_CONFIG["hive_parallelism"])
        )

    @property
    def hive_timeout(self) -> float | None:
        """Get the per-simulation timeout in seconds (None = unlimited)."""
        val = self._data.get("hive_timeout", DEFAULT_CONFIG["hive_timeout"])
        return float(val) if val is not None else None

    @property
    def tail_lines(self) -> int:
        """Get the number of trailing output lines kept from a failed run."""
        return int(self._data.get("tail_lines", DEFAULT_CONFIG["tail_lines"]))

    @property
    def cache_max_age(self) -> int:
        """Get the browser cache duration for API responses."""
        return int(self._data.get("cache_max_age", DEFAULT_CONFIG["cache_max_age"]))

    @property
    def cache_stale_while_revalidate(self) -> int:
        """Get the CDN cache duration for API responses."""
        return int(
            self._data.get(
                "cache_stale_while_revalidate",
                DEFAULT_CONFIG["cache_stale_while_revalidate"],
            )
        )

    @property
    def on_error(self) -> str:
        """Get the multi-EIP batch error policy.

        Raises:
            ValueError: If the configured policy is unknown.
        """
        policy = str(self._data.get("on_error", DEFAULT_CONFIG["on_error"]))
        if policy not in ON_ERROR_POLICIES:
            raise ValueError(
                f"Invalid on_error '{policy}'. Must be one of: {sorted(ON_ERROR_POLICIES)}"
            )
        return policy
