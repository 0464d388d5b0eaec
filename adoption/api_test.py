"""Unit tests for the adoption API."""

from __future__ import annotations

import json
import tempfile
import threading
import urllib.error
import urllib.request
from http.server import ThreadingHTTPServer
from pathlib import Path

from adoption.api import AdoptionAPI, make_handler
from adoption.config import AppConfig

CLIENTS = [
    {"id": "geth", "name": "Geth", "hiveName": "go-ethereum", "version": "1.16.0",
     "githubRepo": "https://github.com/ethereum/go-ethereum/tree/bal"},
    {"id": "besu", "name": "Besu", "hiveName": "besu", "version": "unknown"},
]

MANIFEST = {
    "name": "Glamsterdam",
    "description": "Glamsterdam network upgrade",
    "eips": [
        {"number": 7928, "title": "BAL", "spec": "https://eips.ethereum.org/EIPS/eip-7928"},
        {"number": 7843, "title": "SLOTNUM", "spec": "https://eips.ethereum.org/EIPS/eip-7843"},
    ],
}

RESULTS = {
    "spec": "BAL - EIP-7928",
    "lastUpdated": "2025-06-01T00:00:00+00:00",
    "tests": [{"id": "test_a", "variants": [{"parameters": ["p1"], "results": {
        "geth": [
            {"simulation": "consume-rlp", "status": "pass"},
            {"simulation": "consume-engine", "status": "pass"},
        ],
        "besu": [
            {"simulation": "consume-rlp", "status": "pass"},
            {"simulation": "consume-engine", "status": "fail"},
        ],
    }}]}],
}


def _make_api(root: Path) -> AdoptionAPI:
    data_dir = root / "data"
    fork_dir = data_dir / "forks" / "glamsterdam"
    (fork_dir / "7928").mkdir(parents=True)
    (data_dir / "clients.json").write_text(json.dumps(CLIENTS))
    (fork_dir / "manifest.json").write_text(json.dumps(MANIFEST))
    (fork_dir / "7928" / "results.json").write_text(json.dumps(RESULTS))
    config_path = root / "adoption.json"
    config_path.write_text(json.dumps({"current_fork": "glamsterdam", "cache_max_age": 60}))
    return AdoptionAPI(AppConfig(config_path))


class TestEipAdoption:
    """Tests for the EIP route."""

    def test_found(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            response = _make_api(Path(tmpdir)).handle("/api/adoption/7928")
            assert response.status == 200
            assert response.body["spec"] == "https://eips.ethereum.org/EIPS/eip-7928"
            assert response.body["summary"]["overallScore"] == 50.0
            assert response.body["summary"]["activeClients"] == 2
            assert [c["name"] for c in response.body["clients"]] == ["Geth", "Besu"]
            assert response.headers["Cache-Control"] == "public, max-age=60, s-maxage=3600"
            assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_missing_results(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            response = _make_api(Path(tmpdir)).handle("/api/adoption/7843")
            assert response.status == 404
            assert response.body == {"error": "EIP not found", "eip": "7843"}

    def test_not_in_manifest(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            api = _make_api(root)
            extra = root / "data" / "forks" / "glamsterdam" / "1" / "results.json"
            extra.parent.mkdir()
            extra.write_text(json.dumps(RESULTS))
            assert api.handle("/api/adoption/1").status == 404


class TestForkAdoption:
    """Tests for the fork route."""

    def test_found(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            response = _make_api(Path(tmpdir)).handle("/api/adoption/fork/glamsterdam")
            assert response.status == 200
            assert response.body["name"] == "Glamsterdam"
            assert response.body["summary"] == {"totalEIPs": 2, "averageScore": 25.0}
            assert [e["eip"] for e in response.body["eips"]] == ["7928", "7843"]
            assert response.body["eips"][1]["summary"]["overallScore"] == 0

    def test_unknown_fork(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            response = _make_api(Path(tmpdir)).handle("/api/adoption/fork/osaka")
            assert response.status == 404
            assert response.body == {"error": "Fork not found", "fork": "osaka"}


class TestRouting:
    """Tests for AdoptionAPI.handle."""

    def test_unknown_paths(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            api = _make_api(Path(tmpdir))
            for path in ("/", "/api/adoption/", "/api/adoption/fork/", "/api/other/7928",
                         "/api/adoption/7928/extra"):
                assert api.handle(path).status == 404, path

    def test_query_and_trailing_slash(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            api = _make_api(Path(tmpdir))
            assert api.handle("/api/adoption/7928/?v=1").status == 200


class TestHttpHandler:
    """Tests for the HTTP handler."""

    def test_serves_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            api = _make_api(Path(tmpdir))
            server = ThreadingHTTPServer(("127.0.0.1", 0), make_handler(api))
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()
            base = f"http://127.0.0.1:{server.server_address[1]}"
            try:
                with urllib.request.urlopen(f"{base}/api/adoption/7928") as resp:
                    assert resp.status == 200
                    assert resp.headers["Content-Type"] == "application/json"
                    assert json.loads(resp.read())["eip"] == "7928"
                try:
                    urllib.request.urlopen(f"{base}/api/adoption/fork/osaka")
                except urllib.error.HTTPError as e:
                    assert e.code == 404
                    assert json.loads(e.read()) == {"error": "Fork not found", "fork": "osaka"}
                else:
                    raise AssertionError("expected 404")
            finally:
                server.shutdown()
                server.server_close()
