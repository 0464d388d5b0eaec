"""Client identity resolution and client roster management.

The roster (clients.json) is a JSON array of client records. Each record
names the client as Hive knows it (``hiveName``) and as the tracker does
(``id``). Results exports only carry Hive names, so every decoded record
goes through a ``ClientMapping`` built from the roster.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

import yaml

# Version reported for clients missing from an export
UNKNOWN_VERSION = "unknown"


class ClientMapping:
    """Maps Hive client names to tracker client ids.

    Built once per run and passed explicitly to the decoder and the
    aggregator, so several mappings can coexist in one process.
    """

    def __init__(self, hive_to_id: dict[str, str]) -> None:
        self._hive_to_id = dict(hive_to_id)

    @classmethod
    def from_clients(cls, clients: Iterable[dict[str, Any]]) -> ClientMapping:
        """Build a mapping from roster records.

        Args:
            clients: Client records with ``hiveName`` and ``id`` keys.

        Returns:
            ClientMapping covering every record that has a Hive name.
        """
        return cls({
            client["hiveName"]: client["id"]
            for client in clients
            if client.get("hiveName") and client.get("id")
        })

    @property
    def hive_names(self) -> list[str]:
        """Known Hive client names, in roster order."""
        return list(self._hive_to_id)

    def resolve(self, hive_name: str) -> str | None:
        """Get the tracker client id for a Hive client name.

        Args:
            hive_name: Client name as it appears in Hive test names.

        Returns:
            Client id, or None if the name is not in the roster.
        """
        return self._hive_to_id.get(hive_name)

    def __len__(self) -> int:
        return len(self._hive_to_id)

    def __contains__(self, hive_name: object) -> bool:
        return hive_name in self._hive_to_id


def load_github_repos(path: str | Path) -> dict[str, str]:
    """Load GitHub tree links from the Hive client build config.

    The build config is a YAML list of
    ``{client, dockerfile, build_args: {github, tag}}`` entries.

    Args:
        path: Path to hive_clients.yml.

    Returns:
        Dict of {hive_name: "https://github.com/<github>/tree/<tag>"}.
        Entries without ``build_args.github`` are skipped.
    """
    data = yaml.safe_load(Path(path).read_text()) or []
    repos: dict[str, str] = {}
    for entry in data:
        build_args = entry.get("build_args") or {}
        github = build_args.get("github")
        if not entry.get("client") or not github:
            continue
        tag = build_args.get("tag", "main")
        repos[entry["client"]] = f"https://github.com/{github}/tree/{tag}"
    return repos


class ClientRoster:
    """Manages the clients.json roster file.

    The pipeline only ever changes ``version`` and ``githubRepo``; every
    other field is seeded by hand and preserved on save.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._clients: list[dict[str, Any]] = []
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        """Load the roster from the file."""
        data = json.loads(self.path.read_text())
        if not isinstance(data, list):
            raise ValueError(f"Client roster must be a JSON array: {self.path}")
        self._clients = data

    def save(self) -> None:
        """Write the roster to the file.

        The new content goes to a sibling temp file first and is moved into
        place, so a concurrent reader sees either the old or the new roster.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._clients, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @property
    def clients(self) -> list[dict[str, Any]]:
        """Get all client records."""
        return list(self._clients)

    def get_client(self, client_id: str) -> dict[str, Any] | None:
        """Get a client record by tracker id."""
        for client in self._clients:
            if client.get("id") == client_id:
                return client
        return None

    def mapping(self) -> ClientMapping:
        """Build the Hive name mapping for this roster."""
        return ClientMapping.from_clients(self._clients)

    def update_versions(
        self,
        client_versions: dict[str, str],
        github_repos: dict[str, str] | None = None,
    ) -> None:
        """Record the client versions reported by a Hive export.

        Clients absent from ``client_versions`` are set to "unknown".
        ``githubRepo`` is replaced by the build-config link, or removed
        when the build config has no entry for the client.

        Args:
            client_versions: {hive_name: version} from the export.
            github_repos: {hive_name: url} from ``load_github_repos``.
        """
        github_repos = github_repos or {}
        updated: list[dict[str, Any]] = []
        for client in self._clients:
            hive_name = client.get("hiveName", "")
            record = dict(client)
            record["version"] = client_versions.get(hive_name) or UNKNOWN_VERSION
            repo = github_repos.get(hive_name)
            if repo is not None:
                record["githubRepo"] = repo
            else:
                record.pop("githubRepo", None)
            updated.append(record)
        self._clients = updated
