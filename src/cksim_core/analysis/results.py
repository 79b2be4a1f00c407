# src/cksim_core/analysis/results.py
"""
Immutable result contracts of the topology analysis.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from ..components import NodeId


@dataclass(frozen=True)
class Group:
    """
    A maximal connected set of elements. Groups never share a node, so each one is
    solved as an independent linear system.
    """
    group_id: str
    element_ids: Tuple[str, ...]
    nodes: FrozenSet[NodeId]
    has_source: bool
    #: Elements on a closed loop of traversable elements. Only these enter the matrix.
    participant_ids: FrozenSet[str]

    @property
    def is_solvable(self) -> bool:
        """A group is solved only when it has a source and something to drive."""
        return self.has_source and bool(self.participant_ids)


@dataclass(frozen=True)
class TopologyAnalysisResults:
    """
    The partition of one circuit snapshot. Cached in the 'process' scope, so it must
    not be mutated by consumers.
    """
    groups: Tuple[Group, ...]
    element_to_group: Dict[str, str]

    @property
    def participant_ids(self) -> FrozenSet[str]:
        return frozenset().union(*(g.participant_ids for g in self.groups))

    def get_group(self, group_id: str) -> Group:
        for group in self.groups:
            if group.group_id == group_id:
                return group
        raise KeyError(f"Unknown group '{group_id}'.")
