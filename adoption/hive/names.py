"""Hive test name decoding.

Hive reports every executed fixture under a name of the form::

    tests/amsterdam/eip7928_block_level_access_lists/test_block_access_lists.py::test_bal_nonce_changes[fork_Amsterdam-blockchain_test]-besu

The trailing ``-<client>`` suffix names the Hive client; some exports put
it just inside the closing bracket instead (``[...-besu]``). The text
between ``::`` and ``[`` is the test function, and the bracketed blob holds
the dash-joined pytest parameters. Two parameter tokens only mark the
fixture format (and with it the simulator) and are not part of the variant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from adoption.hive.clients import ClientMapping
from adoption.simulations import CONSUME_ENGINE, CONSUME_RLP

# Fixture-format tokens that are dropped from the parameter list
ENGINE_ARTIFACT = "blockchain_test_engine"
ARTIFACT_TOKENS = frozenset({"blockchain_test", ENGINE_ARTIFACT})

_FUNCTION_RE = re.compile(r"::([^[]+)(\[([^\]]+)\])?")


@dataclass(frozen=True)
class DecodedTestName:
    """A Hive test name split into its tracker-relevant parts."""

    base_test: str
    parameters: tuple[str, ...] | None
    client: str


def client_suffix_pattern(mapping: ClientMapping) -> re.Pattern[str] | None:
    """Build the ``-(<client>|...)(])?$`` pattern for a mapping.

    The client either follows the parameter bracket (``...]-client``) or
    is the last dash-joined token inside it (``...-client]``).

    Returns:
        Compiled pattern, or None when the mapping is empty.
    """
    if not len(mapping):
        return None
    names = "|".join(re.escape(name) for name in mapping.hive_names)
    return re.compile(f"-({names})(\\])?$")


def parse_parameters(blob: str | None) -> tuple[str, ...] | None:
    """Split a bracketed parameter blob, dropping fixture-format tokens.

    Returns:
        Remaining tokens in order, or None if nothing but artifacts (or
        nothing at all) was present.
    """
    if not blob:
        return None
    tokens = tuple(
        token for token in blob.split("-") if token not in ARTIFACT_TOKENS
    )
    return tokens or None


def decode_test_name(
    name: str,
    mapping: ClientMapping,
    pattern: re.Pattern[str] | None = None,
) -> DecodedTestName | None:
    """Decode one Hive test name.

    Args:
        name: Raw test case name from the export.
        mapping: Hive name to client id mapping.
        pattern: Precompiled ``client_suffix_pattern(mapping)``; built on
            demand when omitted.

    Returns:
        DecodedTestName, or None when no known client suffix matches or
        the name has no ``::<function>`` part.
    """
    if pattern is None:
        pattern = client_suffix_pattern(mapping)
    if pattern is None:
        return None

    client_match = pattern.search(name)
    if client_match is None:
        return None

    hive_client = client_match.group(1)
    client = mapping.resolve(hive_client)
    if client is None:
        return None

    without_client = name[: client_match.start()]
    if client_match.group(2):
        without_client += "]"
    function_match = _FUNCTION_RE.search(without_client)
    if function_match is None:
        return None

    return DecodedTestName(
        base_test=function_match.group(1),
        parameters=parse_parameters(function_match.group(3)),
        client=client,
    )


def simulation_for_test_name(name: str) -> str:
    """Determine which simulator produced a raw test name.

    Engine fixtures carry the ``blockchain_test_engine`` marker somewhere
    in the name; everything else ran under consume-rlp.
    """
    if ENGINE_ARTIFACT in name:
        return CONSUME_ENGINE
    return CONSUME_RLP
