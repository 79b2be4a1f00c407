# src/cksim_core/analysis/__init__.py
from .tools import TopologyAnalyzer, partition, find_participants, build_element_graph
from .results import Group, TopologyAnalysisResults
from .exceptions import TopologyAnalysisError

__all__ = [
    "TopologyAnalyzer", "partition", "find_participants", "build_element_graph",
    "Group", "TopologyAnalysisResults", "TopologyAnalysisError",
]
