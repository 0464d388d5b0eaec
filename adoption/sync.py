"""Test case sync from the EIP test case documents.

For each testable EIP the manifest's ``testCases`` link (a GitHub page)
is fetched as raw markdown, its test table parsed, and the EIP's results
document rewritten with the parsed catalog.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable

import requests

from adoption.catalog.results import TestResultsFile, new_document
from adoption.catalog.table import parse_test_table, sync_catalog
from adoption.errors import AdoptionError, FetchError
from adoption.manifest import TestableEIP

FETCH_TIMEOUT = 30.0


def raw_github_url(url: str) -> str:
    """Turn a github.com blob link into its raw.githubusercontent.com URL."""
    return url.replace("github.com", "raw.githubusercontent.com").replace("/blob", "")


def fetch_markdown(url: str, timeout: float = FETCH_TIMEOUT) -> str:
    """Fetch a document body.

    Raises:
        FetchError: On connection errors or non-2xx responses.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}")
    return response.text


@dataclass
class SyncReport:
    """Outcome of a multi-EIP sync."""

    synced: dict[str, int] = field(default_factory=dict)  # eip -> test count
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def sync_eip(eip: TestableEIP, markdown: str) -> int:
    """Replace one EIP's catalog with the tests parsed from ``markdown``.

    Creates the results document when the EIP has none yet.

    Returns:
        Number of tests in the synced catalog.

    Raises:
        TableFormatError: If the document has no test table.
    """
    print("   Parsing test cases...")
    entries = parse_test_table(markdown)
    print(f"   Parsed {len(entries)} test cases")

    results_file = TestResultsFile(eip.results_path)
    if results_file.exists():
        print("   Reading existing test results...")
        document = results_file.load()
    else:
        print("   Creating new test results file...")
        document = new_document(f"{eip.title} - EIP-{eip.eip_number}")

    merged = sync_catalog(document, entries)
    results_file.save(merged)
    return len(merged["tests"])


def sync_all(
    eips: list[TestableEIP],
    on_error: str = "fail_fast",
    fetch: Callable[[str], str] | None = None,
) -> SyncReport:
    """Sync every EIP's catalog.

    EIPs without a ``testCases`` link are skipped. A fetch or parse
    failure aborts the batch under "fail_fast" and is recorded under
    "continue".
    """
    fetch = fetch or fetch_markdown
    report = SyncReport()
    for eip in eips:
        print(f"\nProcessing EIP-{eip.eip_number}...")
        if not eip.test_cases_url:
            print(f"Warning: no testCases URL for EIP-{eip.eip_number}, skipping")
            report.skipped.append(eip.eip_number)
            continue

        url = raw_github_url(eip.test_cases_url)
        print(f"   Fetching from: {url}")
        try:
            count = sync_eip(eip, fetch(url))
        except (AdoptionError, OSError, ValueError) as e:
            print(f"   Failed to sync EIP-{eip.eip_number}: {e}", file=sys.stderr)
            if on_error == "fail_fast":
                raise
            report.failed[eip.eip_number] = str(e)
            continue

        report.synced[eip.eip_number] = count
        print(f"   EIP-{eip.eip_number}: {count} tests synced")
    return report
