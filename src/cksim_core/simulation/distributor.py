# src/cksim_core/simulation/distributor.py
"""
Writes solved values back onto the caller's circuit.

Group solutions (from the built-in solver or an external one) are merged into a
single FrameResult. Non-participating elements report exactly 0 A. Nodes that no
matrix solved get their voltage by walking outward from solved nodes, and pieces
of one group that were solved against separate references are shifted to agree
across the zero-current elements joining them.
"""
import logging
import math
from dataclasses import replace
from typing import Collection, Dict, Hashable, List, Mapping, Optional, Sequence, Set

import networkx as nx

from ..analysis.results import Group, TopologyAnalysisResults
from ..components import (
    Capacitor, CircuitElement, DynamicState, Fuse, Inductor, LightBulb, VoltageSource,
)
from ..data_structures import CircuitSnapshot
from .companion import TransientResultSet
from .config import SolverConfig
from .exceptions import NumericalOverflowError
from .results import ElementResult, FrameResult, GroupSolution

logger = logging.getLogger(__name__)


class ResultDistributor:
    def __init__(self, config: SolverConfig):
        self.config = config

    # --- Building group solutions ---

    @staticmethod
    def from_transient(
        group_id: str, result_set: TransientResultSet, bulb_resistances: Optional[Mapping[str, float]] = None
    ) -> GroupSolution:
        """Condenses a subdivided integration into a GroupSolution."""
        final_solution = result_set.final_solution
        currents = {
            element_id: result_set.time_average_current(element_id) for element_id in final_solution.stamps
        }
        dynamic_states = {
            e.element_id: e.state for e in result_set.final_state.circuit.dynamic_elements
        }
        return GroupSolution(
            group_id=group_id,
            element_currents=currents,
            dynamic_states=dynamic_states,
            node_voltages=final_solution.caller_node_voltages(),
            bulb_resistances=dict(bulb_resistances or {}),
        )

    # --- Frame assembly ---

    def distribute(
        self,
        snapshot: CircuitSnapshot,
        topology: TopologyAnalysisResults,
        group_solutions: Mapping[str, GroupSolution],
        dt: float,
        stale_group_ids: Collection[str] = (),
    ) -> FrameResult:
        """
        Merges group solutions into a FrameResult. Solutions listed in
        `stale_group_ids` were applied on an earlier frame and are being shown
        again; they do not advance fuse trip timers.
        """
        element_map = snapshot.element_map
        end_time = snapshot.time + dt
        currents: Dict[str, float] = {}
        updated: Dict[str, CircuitElement] = {}
        solved_voltages: Dict[Hashable, float] = {}
        solved_pieces: List[Set[Hashable]] = []
        solved_dynamic = set()

        for group in topology.groups:
            group_solution = group_solutions.get(group.group_id)
            for element_id in group.element_ids:
                element = element_map[element_id]
                solved = group_solution is not None and element_id in group.participant_ids
                current = group_solution.element_currents.get(element_id, 0.0) if solved else 0.0
                current = self._clamp(element_id, "current", current)
                currents[element_id] = current

                if isinstance(element, (Capacitor, Inductor)):
                    if solved and element_id in group_solution.dynamic_states:
                        state = group_solution.dynamic_states[element_id]
                        state = DynamicState(
                            voltage_drop=self._clamp(element_id, "voltage drop", state.voltage_drop),
                            current=self._clamp(element_id, "current", state.current),
                        )
                        solved_dynamic.add(element_id)
                    elif isinstance(element, Inductor):
                        state = DynamicState()
                    else:
                        # An isolated capacitor keeps its charge.
                        state = DynamicState(voltage_drop=element.state.voltage_drop, current=0.0)
                    updated[element_id] = replace(element, state=state)
                elif isinstance(element, Fuse) and group.group_id not in stale_group_ids:
                    updated[element_id] = element.after_frame(current, dt, self.config.fuse_trip_delay)
                elif isinstance(element, LightBulb) and solved and element_id in group_solution.bulb_resistances:
                    updated[element_id] = replace(element, resistance=group_solution.bulb_resistances[element_id])

            if group_solution is not None:
                group_voltages = {
                    node: v for node, v in group_solution.node_voltages.items() if node in group.nodes
                }
                solved_voltages.update(group_voltages)
                solved_pieces.extend(_solved_pieces(group, element_map, group_voltages))

        next_snapshot = snapshot.with_elements(updated, time=end_time)
        node_voltages = propagate_voltages(next_snapshot, solved_voltages, end_time, pieces=solved_pieces)

        element_results: Dict[str, ElementResult] = {}
        for element in next_snapshot.elements:
            if element.element_id in solved_dynamic:
                drop = element.state.voltage_drop
            else:
                drop = node_voltages[element.node0] - node_voltages[element.node1]
            element_results[element.element_id] = ElementResult(
                element_id=element.element_id, current=currents[element.element_id], voltage_drop=drop
            )

        return FrameResult(
            time=end_time,
            dt=dt,
            element_results=element_results,
            node_voltages=node_voltages,
            snapshot=next_snapshot,
            solved_group_ids=tuple(g for g in group_solutions if g in topology.element_to_group.values()),
        )

    def _clamp(self, element_id: str, quantity_name: str, value: float) -> float:
        bound = self.config.clamp_magnitude
        if math.isfinite(value) and abs(value) <= bound:
            return value
        if self.config.strict_numerics:
            raise NumericalOverflowError(element_id=element_id, quantity_name=quantity_name, value=value, bound=bound)
        logger.warning(f"Clamping {quantity_name} of '{element_id}' from {value!r} to within {bound:.1e}.")
        if math.isnan(value):
            return 0.0
        return math.copysign(bound, value)


def _voltage_rise(element: CircuitElement, from_node: Hashable, time: float) -> float:
    """V(far terminal) - V(from_node) across an element that is not carrying current."""
    if isinstance(element, VoltageSource):
        rise = element.voltage_at(time)
    elif isinstance(element, (Capacitor, Inductor)):
        rise = -element.state.voltage_drop
    else:
        return 0.0
    return rise if from_node == element.node0 else -rise


def _solved_pieces(
    group: Group, element_map: Mapping[str, CircuitElement], voltages: Mapping[Hashable, float]
) -> List[Set[Hashable]]:
    """
    Splits a group's solved nodes into the pieces the linear solve referenced
    separately: connected components of its participating elements, in element
    order. A solved node outside every piece stands alone.
    """
    graph = nx.Graph()
    for element_id in group.element_ids:
        if element_id in group.participant_ids:
            element = element_map[element_id]
            graph.add_edge(element.node0, element.node1)
    pieces = [{node for node in component if node in voltages} for component in nx.connected_components(graph)]
    pieces.extend({node} for node in voltages if node not in graph)
    return pieces


def propagate_voltages(
    snapshot: CircuitSnapshot,
    solved_voltages: Mapping[Hashable, float],
    time: float,
    pieces: Optional[Sequence[Collection[Hashable]]] = None,
) -> Dict[Hashable, float]:
    """
    Assigns a voltage to every node by an iterative depth-first walk across
    traversable elements, applying the zero-current drop of each element crossed.

    Solved nodes come in `pieces` (by default a single piece holding all of them).
    Voltage differences inside a piece are kept. A piece reached by the walk is
    shifted as a whole so the element leading into it shows its zero-current drop;
    a piece nothing leads into keeps its solved values. Unsolved nodes that no walk
    reaches start from 0 V. Each node is visited at most once.
    """
    adjacency: Dict[Hashable, List[CircuitElement]] = {}
    for element in snapshot.elements:
        adjacency.setdefault(element.node0, []).append(element)
        if element.node1 != element.node0:
            adjacency.setdefault(element.node1, []).append(element)

    if pieces is None:
        pieces = [solved_voltages.keys()]
    piece_nodes = [[n for n in piece if n in adjacency and n in solved_voltages] for piece in pieces]
    piece_of = {node: index for index, nodes in enumerate(piece_nodes) for node in nodes}

    voltages: Dict[Hashable, float] = {}
    visited = set()

    def place(index: int, offset: float) -> List[Hashable]:
        for node in piece_nodes[index]:
            voltages[node] = solved_voltages[node] + offset
            visited.add(node)
        return list(piece_nodes[index])

    def walk(stack: List[Hashable]):
        while stack:
            node = stack.pop()
            for element in adjacency[node]:
                if not element.is_traversable():
                    continue
                neighbor = element.opposite_node(node)
                if neighbor in visited:
                    continue
                target = voltages[node] + _voltage_rise(element, node, time)
                if neighbor in piece_of:
                    stack.extend(place(piece_of[neighbor], target - solved_voltages[neighbor]))
                else:
                    voltages[neighbor] = target
                    visited.add(neighbor)
                    stack.append(neighbor)

    for index, nodes in enumerate(piece_nodes):
        if nodes and nodes[0] not in visited:
            walk(place(index, 0.0))
    for node in snapshot.nodes():
        if node not in visited:
            voltages[node] = 0.0
            visited.add(node)
            walk([node])
    return voltages
