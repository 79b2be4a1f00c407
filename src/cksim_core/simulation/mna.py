# src/cksim_core/simulation/mna.py
"""
Dense Modified Nodal Analysis for one group.

Unknowns are the voltage of every non-reference node followed by one branch
current per voltage source. Each connected piece of the primitive graph gets its
own reference node at 0 V, so a participant set that falls apart into islands
stays non-singular. Resistances reaching this module are strictly positive; the
companion model builder lifts wires and closed switches to the resistance floor.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Sequence

import networkx as nx
import numpy as np

from .exceptions import MnaInputError
from .results import MnaSolution
from .solver import factorize_mna_matrix, solve_mna_system

logger = logging.getLogger(__name__)


# --- Primitives (identity-hashed: two equal-valued sources are still two branches) ---

@dataclass(frozen=True, eq=False)
class MnaResistor:
    node0: Hashable
    node1: Hashable
    resistance: float


@dataclass(frozen=True, eq=False)
class MnaBattery:
    """Ideal source holding V(node1) - V(node0) = voltage. Branch current flows node0 -> node1."""
    node0: Hashable
    node1: Hashable
    voltage: float


class MnaCircuit:
    """
    Assembles and solves the MNA system for a list of primitives.
    """
    def __init__(
        self,
        batteries: Sequence[MnaBattery] = (),
        resistors: Sequence[MnaResistor] = (),
        group_id: str = "",
    ):
        self.batteries: List[MnaBattery] = list(batteries)
        self.resistors: List[MnaResistor] = list(resistors)
        self.group_id = group_id

        for resistor in self.resistors:
            if not np.isfinite(resistor.resistance) or resistor.resistance <= 0:
                raise MnaInputError(
                    group_id=group_id,
                    details=f"Resistance must be finite and positive, got {resistor.resistance!r} "
                            f"between '{resistor.node0}' and '{resistor.node1}'."
                )

        self.nodes: List[Hashable] = self._collect_nodes()
        self.reference_nodes: List[Hashable] = self._select_reference_nodes()
        reference_set = set(self.reference_nodes)
        self.node_index_map: Dict[Hashable, int] = {}
        for node in self.nodes:
            if node not in reference_set:
                self.node_index_map[node] = len(self.node_index_map)
        self.branch_index_map: Dict[MnaBattery, int] = {
            battery: len(self.node_index_map) + i for i, battery in enumerate(self.batteries)
        }

    @property
    def size(self) -> int:
        return len(self.node_index_map) + len(self.batteries)

    def _collect_nodes(self) -> List[Hashable]:
        seen: Dict[Hashable, None] = {}
        for primitive in (*self.batteries, *self.resistors):
            seen.setdefault(primitive.node0, None)
            seen.setdefault(primitive.node1, None)
        return list(seen)

    def _select_reference_nodes(self) -> List[Hashable]:
        graph = nx.Graph()
        graph.add_nodes_from(self.nodes)
        for primitive in (*self.batteries, *self.resistors):
            graph.add_edge(primitive.node0, primitive.node1)
        order = {node: i for i, node in enumerate(self.nodes)}
        return [min(component, key=order.__getitem__) for component in nx.connected_components(graph)]

    def _index(self, node: Hashable) -> Optional[int]:
        return self.node_index_map.get(node)

    def assemble(self):
        """Builds the dense (matrix, rhs) pair."""
        n = self.size
        matrix = np.zeros((n, n), dtype=float)
        rhs = np.zeros(n, dtype=float)

        # KCL rows: sum of currents leaving each node is zero.
        for resistor in self.resistors:
            g = 1.0 / resistor.resistance
            i0, i1 = self._index(resistor.node0), self._index(resistor.node1)
            if i0 is not None:
                matrix[i0, i0] += g
            if i1 is not None:
                matrix[i1, i1] += g
            if i0 is not None and i1 is not None:
                matrix[i0, i1] -= g
                matrix[i1, i0] -= g

        # Branch columns plus one constraint row per source: V(node1) - V(node0) = voltage.
        for battery, k in self.branch_index_map.items():
            i0, i1 = self._index(battery.node0), self._index(battery.node1)
            if i0 is not None:
                matrix[i0, k] += 1.0
                matrix[k, i0] -= 1.0
            if i1 is not None:
                matrix[i1, k] -= 1.0
                matrix[k, i1] += 1.0
            rhs[k] = battery.voltage

        return matrix, rhs

    def solve(self) -> MnaSolution:
        """Solves the system. Raises SingularMatrixError rather than returning NaNs."""
        voltages: Dict[Hashable, float] = {node: 0.0 for node in self.reference_nodes}
        if self.size == 0:
            return MnaSolution(node_voltages=voltages, branch_currents={})

        matrix, rhs = self.assemble()
        factorization = factorize_mna_matrix(matrix, self.group_id)
        x = solve_mna_system(factorization, rhs, self.group_id)

        for node, index in self.node_index_map.items():
            voltages[node] = float(x[index])
        currents = {battery: float(x[k]) for battery, k in self.branch_index_map.items()}
        logger.debug(
            f"Solved MNA system of size {self.size} for group '{self.group_id}' "
            f"({len(self.reference_nodes)} reference node(s))."
        )
        return MnaSolution(node_voltages=voltages, branch_currents=currents)
