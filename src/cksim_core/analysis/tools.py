# src/cksim_core/analysis/tools.py
"""
Cache-aware topology services: partitioning into independent groups and deciding
which elements participate in the linear solve.
"""
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

import networkx as nx

from ..cache.keys import create_topology_key
from ..cache.service import SimulationCache
from ..components import CircuitElement, VoltageSource
from ..data_structures import CircuitSnapshot
from .exceptions import TopologyAnalysisError
from .results import Group, TopologyAnalysisResults

logger = logging.getLogger(__name__)


def build_element_graph(elements: Iterable[CircuitElement], traversable_only: bool = False) -> nx.MultiGraph:
    """
    Builds a multigraph with one edge per element, keyed by element id. Parallel
    elements stay distinct edges.
    """
    graph = nx.MultiGraph()
    for element in elements:
        if traversable_only and not element.is_traversable():
            continue
        graph.add_edge(element.node0, element.node1, key=element.element_id)
    return graph


def partition(elements: Sequence[CircuitElement]) -> List[Group]:
    """
    Splits the elements into connected groups. Every element lands in exactly one
    group and no two groups share a node. Open switches and tripped fuses stay in
    the graph, so grouping depends on wiring alone.
    """
    structural = build_element_graph(elements)
    participants = find_participants(elements)
    by_node: Dict = {}
    for component_index, component_nodes in enumerate(nx.connected_components(structural)):
        for node in component_nodes:
            by_node[node] = component_index

    members: Dict[int, List[CircuitElement]] = {}
    for element in elements:
        members.setdefault(by_node[element.node0], []).append(element)

    groups: List[Group] = []
    # Insertion order follows each group's first element, so ids are stable across frames.
    for group_elements in members.values():
        element_ids = tuple(e.element_id for e in group_elements)
        nodes = frozenset(n for e in group_elements for n in (e.node0, e.node1))
        groups.append(Group(
            group_id=f"group:{element_ids[0]}",
            element_ids=element_ids,
            nodes=nodes,
            has_source=any(isinstance(e, VoltageSource) for e in group_elements),
            participant_ids=frozenset(element_ids) & participants,
        ))
    return groups


def find_participants(elements: Iterable[CircuitElement]) -> FrozenSet[str]:
    """
    Returns the ids of elements that lie on a closed loop of traversable elements,
    i.e. whose terminals stay connected when that element alone is removed.
    Anything else cannot carry current and is reported at exactly 0 A.
    """
    graph = build_element_graph(elements, traversable_only=True)
    participants = set()
    for node0, node1, element_id in list(graph.edges(keys=True)):
        if node0 == node1:
            continue
        graph.remove_edge(node0, node1, key=element_id)
        if nx.has_path(graph, node0, node1):
            participants.add(element_id)
        graph.add_edge(node0, node1, key=element_id)
    return frozenset(participants)


class TopologyAnalyzer:
    """
    Performs and caches the topological analysis of a circuit snapshot.
    """
    def __init__(self, snapshot: CircuitSnapshot, cache: SimulationCache):
        if not isinstance(snapshot, CircuitSnapshot):
            raise TypeError("TopologyAnalyzer requires a CircuitSnapshot.")
        if not isinstance(cache, SimulationCache):
            raise TypeError("TopologyAnalyzer requires a valid SimulationCache instance.")

        self.snapshot: CircuitSnapshot = snapshot
        self.cache: SimulationCache = cache
        self._analysis_results: Optional[TopologyAnalysisResults] = None

    def analyze(self) -> TopologyAnalysisResults:
        if self._analysis_results is not None:
            return self._analysis_results

        self._analysis_results = self.cache.get_or_compute(
            create_topology_key(self.snapshot), self._compute, scope='process'
        )
        return self._analysis_results

    def _compute(self) -> TopologyAnalysisResults:
        logger.debug(f"No cached topology for '{self.snapshot.name}'. Performing full analysis.")
        try:
            groups = partition(self.snapshot.elements)
            element_to_group = {
                element_id: group.group_id for group in groups for element_id in group.element_ids
            }
            results = TopologyAnalysisResults(groups=tuple(groups), element_to_group=element_to_group)
        except (TypeError, KeyError, nx.NetworkXError) as e:
            raise TopologyAnalysisError(
                circuit_name=self.snapshot.name,
                details=f"An unexpected error occurred during topology analysis: {e}"
            ) from e

        logger.debug(
            f"Partitioned '{self.snapshot.name}' into {len(results.groups)} group(s), "
            f"{len(results.participant_ids)} participating element(s)."
        )
        return results
