"""The two Hive simulators each test is executed under."""

from __future__ import annotations

CONSUME_RLP = "consume-rlp"
CONSUME_ENGINE = "consume-engine"

# Execution order for a batch run; also the set of modes a variant
# must pass under to count as passed.
SIMULATIONS = (CONSUME_RLP, CONSUME_ENGINE)

_LABELS = {
    CONSUME_RLP: "rlp",
    CONSUME_ENGINE: "eng",
}


def simulation_label(simulation: str) -> str:
    """Short column label for a simulation (unknown names pass through)."""
    return _LABELS.get(simulation, simulation)
