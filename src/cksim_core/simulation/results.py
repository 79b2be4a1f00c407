# src/cksim_core/simulation/results.py
"""
Immutable result contracts produced by the solver layers.

`MnaSolution` is the answer to one linear solve. `GroupSolution` condenses a
group's whole frame (possibly many sub-step solves, or an external response).
`FrameResult` is what the caller receives once per frame.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from ..components import DynamicState, NodeId
from ..data_structures import CircuitSnapshot


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class MnaSolution:
    """
    Node voltages and branch currents of one solved linear system. Valid for exactly
    one solve. Branch currents are keyed by the voltage source primitive that owns
    the branch.
    """
    node_voltages: Mapping[NodeId, float]
    branch_currents: Mapping[Any, float]

    def __post_init__(self):
        object.__setattr__(self, 'node_voltages', _freeze(self.node_voltages))
        object.__setattr__(self, 'branch_currents', _freeze(self.branch_currents))

    def get_node_voltage(self, node: NodeId) -> float:
        return self.node_voltages[node]

    def voltage_across(self, node0: NodeId, node1: NodeId) -> float:
        """V(node0) - V(node1)."""
        return self.node_voltages[node0] - self.node_voltages[node1]

    def get_branch_current(self, primitive) -> float:
        return self.branch_currents[primitive]

    def get_current_for_resistor(self, resistor) -> float:
        """Current from node0 to node1 through the resistor."""
        return self.voltage_across(resistor.node0, resistor.node1) / resistor.resistance

    def approx_equals(self, other: "MnaSolution", tolerance: float = 1e-6) -> bool:
        """Compares node voltages only; branch keys are identities local to one solve."""
        if set(self.node_voltages) != set(other.node_voltages):
            return False
        return all(
            abs(self.node_voltages[n] - other.node_voltages[n]) <= tolerance for n in self.node_voltages
        )


@dataclass(frozen=True)
class GroupSolution:
    """
    The outcome of one group for one frame, ready for the result distributor.

    `element_currents` holds the reported (time-averaged) current of every solved
    element; elements of the group that are missing here carry 0 A.
    """
    group_id: str
    element_currents: Mapping[str, float]
    dynamic_states: Mapping[str, DynamicState] = field(default_factory=dict)
    node_voltages: Mapping[NodeId, float] = field(default_factory=dict)
    bulb_resistances: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        for name in ('element_currents', 'dynamic_states', 'node_voltages', 'bulb_resistances'):
            object.__setattr__(self, name, _freeze(getattr(self, name)))


@dataclass(frozen=True)
class ElementResult:
    element_id: str
    current: float
    voltage_drop: float


@dataclass(frozen=True)
class FrameResult:
    """
    Everything a frame produces. `snapshot` is the caller's circuit advanced to the
    end of the frame, with updated dynamic state, fuse state and bulb resistances,
    ready to be passed back in for the next frame.
    """
    time: float
    dt: float
    element_results: Mapping[str, ElementResult]
    node_voltages: Mapping[NodeId, float]
    snapshot: CircuitSnapshot
    solved_group_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'element_results', _freeze(self.element_results))
        object.__setattr__(self, 'node_voltages', _freeze(self.node_voltages))

    def current(self, element_id: str) -> float:
        return self.element_results[element_id].current

    def voltage_drop(self, element_id: str) -> float:
        return self.element_results[element_id].voltage_drop

    def voltage(self, node: NodeId) -> float:
        return self.node_voltages[node]

    def voltage_between(self, node0: NodeId, node1: NodeId) -> float:
        """V(node0) - V(node1)."""
        return self.node_voltages[node0] - self.node_voltages[node1]
