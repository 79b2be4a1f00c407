# src/cksim_core/cache/keys.py
"""
Cache key factories. A key must capture every input that can change the cached
result, and nothing else, so that an unchanged circuit hits and an edited one misses.
"""
from typing import Tuple

from ..components import VoltageSource
from ..data_structures import CircuitSnapshot


def create_topology_key(snapshot: CircuitSnapshot) -> Tuple:
    """
    Key for a topology analysis. Grouping and loop membership depend only on the
    terminals of each element, whether it is traversable, and whether it is a
    source. Parameter values and dynamic state are deliberately left out.
    """
    structure = tuple(
        (
            element.element_id,
            element.node0,
            element.node1,
            element.is_traversable(),
            isinstance(element, VoltageSource),
        )
        for element in snapshot.elements
    )
    return ("topology", structure)
