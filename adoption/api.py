"""JSON read API over the persisted results documents.

Routes::

    GET /api/adoption/<eip>          adoption summary of one EIP in the current fork
    GET /api/adoption/fork/<fork>    per-EIP summaries and average for a fork

Responses are computed from the files on every request and carry
browser/CDN cache headers. Lookups that fail return a 404 JSON body.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from adoption.catalog.results import TestResultsFile
from adoption.config import AppConfig
from adoption.errors import AdoptionError
from adoption.hive.clients import ClientRoster
from adoption.manifest import (
    CLIENTS_FILE,
    get_eip_metadata,
    load_fork_manifest,
    results_path,
)
from adoption.stats.adoption import build_eip_adoption, build_fork_adoption

_PREFIX = "/api/adoption/"


@dataclass
class Response:
    """A JSON response."""

    status: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class AdoptionAPI:
    """Builds API responses from a data directory."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @property
    def cache_headers(self) -> dict[str, str]:
        return {
            "Cache-Control": (
                f"public, max-age={self.config.cache_max_age}, "
                f"s-maxage={self.config.cache_stale_while_revalidate}"
            ),
            "Access-Control-Allow-Origin": "*",
        }

    def _clients(self) -> list[dict[str, Any]]:
        return ClientRoster(self.config.data_dir / CLIENTS_FILE).clients

    def eip_adoption(self, eip: str) -> Response:
        """Adoption summary for one EIP of the current fork."""
        fork = self.config.current_fork
        data_dir = self.config.data_dir
        try:
            document = TestResultsFile(results_path(data_dir, fork, eip)).load()
            metadata = get_eip_metadata(load_fork_manifest(data_dir, fork), eip)
            if metadata is None:
                raise AdoptionError("EIP metadata not found")
            body = build_eip_adoption(
                eip,
                metadata.get("spec", ""),
                document.get("tests") or [],
                document.get("lastUpdated", ""),
                self._clients(),
            )
        except (AdoptionError, OSError, ValueError) as e:
            print(f"Error loading EIP {eip}: {e}", file=sys.stderr)
            return Response(404, {"error": "EIP not found", "eip": eip})
        return Response(200, body, self.cache_headers)

    def fork_adoption(self, fork: str) -> Response:
        """Per-EIP adoption and average score for a fork."""
        data_dir = self.config.data_dir
        try:
            manifest = load_fork_manifest(data_dir, fork)
            rollup = build_fork_adoption(
                manifest["eips"],
                lambda eip: TestResultsFile(results_path(data_dir, fork, eip)).load(),
                self._clients(),
            )
        except (AdoptionError, OSError, ValueError) as e:
            print(f"Error loading fork {fork}: {e}", file=sys.stderr)
            return Response(404, {"error": "Fork not found", "fork": fork})
        body = {
            "name": manifest.get("name", fork),
            "description": manifest.get("description", ""),
            "summary": rollup["summary"],
            "eips": rollup["eips"],
        }
        return Response(200, body, self.cache_headers)

    def handle(self, path: str) -> Response:
        """Route a request path."""
        path = path.split("?", 1)[0].rstrip("/")
        if not path.startswith(_PREFIX):
            return Response(404, {"error": "Not found"})
        parts = path[len(_PREFIX):].split("/")
        if len(parts) == 2 and parts[0] == "fork" and parts[1]:
            return self.fork_adoption(parts[1])
        if len(parts) == 1 and parts[0]:
            return self.eip_adoption(parts[0])
        return Response(404, {"error": "Not found"})


def make_handler(api: AdoptionAPI) -> type[BaseHTTPRequestHandler]:
    """Build a request handler class bound to ``api``."""

    class AdoptionHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            response = api.handle(self.path)
            payload = json.dumps(response.body).encode()
            self.send_response(response.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            print(f"{self.address_string()} - {format % args}", file=sys.stderr)

    return AdoptionHandler


def serve(api: AdoptionAPI, host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the API until interrupted."""
    server = ThreadingHTTPServer((host, port), make_handler(api))
    print(f"Serving adoption API on http://{host}:{port}{_PREFIX}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
