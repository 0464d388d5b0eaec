"""Test case table extraction and catalog sync.

Each EIP's test case list lives in a markdown document with a single
table of the form::

    | Function Name | Goal | Setup | Expectation | Status |
    |---------------|------|-------|-------------|--------|
    | `test_bal_nonce_changes` | ... | ... | ... | ✅ Completed |

Only completed rows become catalog entries. Syncing rebuilds the
catalog's ``tests`` from the parsed entries, keeping the recorded
variants of every id still present in the table.
"""

from __future__ import annotations

import copy
import sys
from typing import Any

from adoption.catalog.results import utc_now
from adoption.errors import TableFormatError

REQUIRED_COLUMNS = ("Function Name", "Goal", "Setup", "Expectation", "Status")

COMPLETED_MARK = "✅"

_PIPE_PLACEHOLDER = "<!PIPE!>"


def locate_table(text: str) -> tuple[int, int]:
    """Find the header and separator lines of the test case table.

    Returns:
        Tuple of (header_index, separator_index) as line numbers.

    Raises:
        TableFormatError: If no line carries all required column labels,
            or the line after it is not a ``---`` separator.
    """
    lines = text.split("\n")
    header_index = next(
        (
            i for i, line in enumerate(lines)
            if all(column in line for column in REQUIRED_COLUMNS)
        ),
        -1,
    )
    if header_index == -1:
        raise TableFormatError("Table header with required columns not found")

    separator_index = header_index + 1
    if separator_index >= len(lines) or "---" not in lines[separator_index]:
        raise TableFormatError("Invalid table separator")

    return header_index, separator_index


def split_row(line: str) -> list[str]:
    """Split a table row into its non-empty cells, honouring ``\\|``."""
    processed = line.replace("\\|", _PIPE_PLACEHOLDER)
    cells = (
        cell.strip().replace(_PIPE_PLACEHOLDER, "|")
        for cell in processed.split("|")
    )
    return [cell for cell in cells if cell]


def normalize_status(status: str) -> str:
    """Map a free-text status cell to "completed" or "planned"."""
    if "completed" in status.lower() or COMPLETED_MARK in status:
        return "completed"
    return "planned"


def parse_test_table(text: str) -> list[dict[str, Any]]:
    """Parse completed test cases from a markdown document.

    Rows are read from the line after the separator until the first blank
    or non-table line.

    Returns:
        Catalog entries in table order, each with an empty ``variants``.

    Raises:
        TableFormatError: If the table cannot be located.
    """
    _, separator_index = locate_table(text)
    lines = text.split("\n")

    entries: list[dict[str, Any]] = []
    for raw_line in lines[separator_index + 1:]:
        line = raw_line.strip()
        if not line or not line.startswith("|"):
            break

        # empty cells are dropped, so a short row had a blank column
        cells = split_row(line)
        if len(cells) < len(REQUIRED_COLUMNS):
            print(f"Warning: skipping row with empty cells: {line}", file=sys.stderr)
            continue

        function_name, goal, setup, expectation, status = cells[:5]
        if normalize_status(status) != "completed":
            continue

        entries.append({
            "id": function_name.replace("`", ""),
            "description": goal,
            "setup": setup,
            "expectation": expectation,
            "status": "completed",
            "variants": [],
        })

    return entries


def sync_catalog(
    document: dict[str, Any],
    entries: list[dict[str, Any]],
    now: str | None = None,
) -> dict[str, Any]:
    """Rebuild a results document's tests from freshly parsed entries.

    Tests follow the table order. For ids already in the document the
    text fields come from the table and the recorded ``variants`` are
    kept. Ids that disappear from the table are dropped with their
    variants; a warning naming them is printed when the table shrinks.

    Returns:
        New document; ``spec`` and any other top-level keys are kept.
    """
    old_tests = document.get("tests") or []
    existing = {test.get("id"): test for test in old_tests}
    old_ids = [test.get("id") for test in old_tests]
    new_ids = {entry["id"] for entry in entries}
    if len(new_ids) < len(set(old_ids)):
        removed = [test_id for test_id in old_ids if test_id not in new_ids]
        print(
            f"Warning: test table shrank from {len(set(old_ids))} to "
            f"{len(new_ids)} ids; recorded results for these tests will be "
            f"dropped: {', '.join(str(r) for r in removed)}",
            file=sys.stderr,
        )

    tests = []
    for entry in entries:
        test = dict(entry)
        previous = existing.get(entry["id"])
        if previous is not None:
            test["variants"] = copy.deepcopy(previous.get("variants") or [])
        tests.append(test)

    return {
        **document,
        "lastUpdated": now or utc_now(),
        "tests": tests,
    }
