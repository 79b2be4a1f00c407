# src/cksim_core/simulation/companion.py
"""
Companion models and the immutable transient circuit they are built from.

A `TransientCircuit` holds the participating elements of one group, including
the (voltage_drop, current) state of every capacitor and inductor. Solving it
over a step `h` replaces each element with MNA primitives:

- resistive elements become a resistor lifted to the resistance floor;
- sources become an ideal source at their value at the end of the step, with an
  optional series internal resistance;
- capacitors and inductors become a trapezoidal companion source in series with
  a companion resistor (h/2C or 2L/h).

Solving never mutates anything. `TransientCircuit.updated` returns the circuit
carrying the state at the end of the step.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Hashable, List, Mapping, Optional, Tuple

import numpy as np

from ..components import (
    Capacitor, CircuitElement, DynamicState, Inductor, LightBulb, RESISTIVE_TYPES,
    Switch, VoltageSource,
)
from .config import SolverConfig
from .exceptions import MnaInputError
from .mna import MnaBattery, MnaCircuit, MnaResistor
from .results import MnaSolution
from .subdivision import StepRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyntheticNode:
    """An internal node created by a companion model. Never collides with caller node ids."""
    element_id: str
    tag: str


@dataclass(frozen=True)
class CompanionStamp:
    """The primitives standing in for one element, kept so results can be read back."""
    element: CircuitElement
    branch: Optional[MnaBattery] = None
    resistor: Optional[MnaResistor] = None
    #: The node that closes the measured voltage of a capacitor (before its series resistance).
    measure_node: Optional[Hashable] = None


class CompanionModelBuilder:
    """
    Converts elements into MNA primitives. This is the only place that dispatches
    on element type.
    """
    def __init__(self, config: SolverConfig):
        self.config = config

    def resistance_of(self, element: CircuitElement) -> float:
        if isinstance(element, Switch) and not element.closed:
            return self.config.max_resistance
        return max(element.resistance, self.config.resistance_floor)

    def build(
        self, elements: Tuple[CircuitElement, ...], time: float, dt: float, group_id: str = ""
    ) -> Tuple[MnaCircuit, Dict[str, CompanionStamp]]:
        """
        Builds the MNA circuit for a step of length `dt` ending at `time`.
        """
        if not dt > 0:
            raise MnaInputError(group_id=group_id, details=f"Time step must be positive, got {dt!r}.")
        batteries: List[MnaBattery] = []
        resistors: List[MnaResistor] = []
        stamps: Dict[str, CompanionStamp] = {}

        for element in elements:
            if isinstance(element, RESISTIVE_TYPES):
                resistor = MnaResistor(element.node0, element.node1, self.resistance_of(element))
                resistors.append(resistor)
                stamps[element.element_id] = CompanionStamp(element, resistor=resistor)

            elif isinstance(element, VoltageSource):
                voltage = element.voltage_at(time)
                if element.internal_resistance > 0:
                    internal = SyntheticNode(element.element_id, "internal")
                    branch = MnaBattery(element.node0, internal, voltage)
                    resistor = MnaResistor(internal, element.node1, element.internal_resistance)
                    resistors.append(resistor)
                else:
                    branch = MnaBattery(element.node0, element.node1, voltage)
                    resistor = None
                batteries.append(branch)
                stamps[element.element_id] = CompanionStamp(element, branch=branch, resistor=resistor)

            elif isinstance(element, Capacitor):
                # Trapezoidal: u1 = (u0 + i0*h/2C) + i1*h/2C, with u the drop node0 -> node1.
                companion_r = dt / (2 * element.capacitance)
                companion_v = element.state.voltage_drop + element.state.current * companion_r
                source_node = SyntheticNode(element.element_id, "source")
                measure_node = SyntheticNode(element.element_id, "plate")
                branch = MnaBattery(element.node0, source_node, -companion_v)
                resistor = MnaResistor(source_node, measure_node, companion_r)
                batteries.append(branch)
                resistors.append(resistor)
                resistors.append(MnaResistor(measure_node, element.node1, self.config.capacitor_series_resistance))
                stamps[element.element_id] = CompanionStamp(element, branch=branch, resistor=resistor,
                                                            measure_node=measure_node)

            elif isinstance(element, Inductor):
                # Trapezoidal: u1 = i1*2L/h - (u0 + i0*2L/h).
                companion_r = 2 * element.inductance / dt
                companion_v = -(element.state.voltage_drop + element.state.current * companion_r)
                source_node = SyntheticNode(element.element_id, "source")
                branch = MnaBattery(element.node0, source_node, -companion_v)
                resistor = MnaResistor(source_node, element.node1, companion_r)
                batteries.append(branch)
                resistors.append(resistor)
                stamps[element.element_id] = CompanionStamp(element, branch=branch, resistor=resistor)

            else:
                raise MnaInputError(
                    group_id=group_id,
                    details=f"Element '{element.element_id}' of type {type(element).__name__} has no companion model."
                )

        return MnaCircuit(batteries=batteries, resistors=resistors, group_id=group_id), stamps


@dataclass(frozen=True)
class TransientSolution:
    """One solved step: the raw MNA solution plus the stamps needed to read it."""
    solution: MnaSolution
    stamps: Mapping[str, CompanionStamp]
    dt: float

    def current(self, element_id: str) -> float:
        """Current from node0 to node1 through the element."""
        stamp = self.stamps[element_id]
        if stamp.branch is not None:
            return self.solution.get_branch_current(stamp.branch)
        return self.solution.get_current_for_resistor(stamp.resistor)

    def voltage_drop(self, element_id: str) -> float:
        """V(node0) - V(node1), measured before a capacitor's series resistance."""
        stamp = self.stamps[element_id]
        far_node = stamp.measure_node if stamp.measure_node is not None else stamp.element.node1
        return self.solution.voltage_across(stamp.element.node0, far_node)

    def dynamic_state(self, element_id: str) -> DynamicState:
        return DynamicState(voltage_drop=self.voltage_drop(element_id), current=self.current(element_id))

    def caller_node_voltages(self) -> Dict[Hashable, float]:
        return {
            node: v for node, v in self.solution.node_voltages.items() if not isinstance(node, SyntheticNode)
        }


@dataclass(frozen=True)
class TransientCircuit:
    """The participating elements of one group, with their dynamic state."""
    elements: Tuple[CircuitElement, ...]
    builder: CompanionModelBuilder = field(compare=False)
    group_id: str = ""

    @property
    def dynamic_elements(self) -> Tuple[CircuitElement, ...]:
        return tuple(e for e in self.elements if isinstance(e, (Capacitor, Inductor)))

    def solve_propagate(self, time: float, dt: float) -> TransientSolution:
        """Solves one step of length `dt` ending at `time`."""
        mna_circuit, stamps = self.builder.build(self.elements, time, dt, self.group_id)
        return TransientSolution(solution=mna_circuit.solve(), stamps=stamps, dt=dt)

    def updated(self, solution: TransientSolution) -> "TransientCircuit":
        """Returns the circuit with each dynamic element carrying its end-of-step state."""
        new_elements = tuple(
            replace(e, state=solution.dynamic_state(e.element_id)) if isinstance(e, (Capacitor, Inductor)) else e
            for e in self.elements
        )
        return replace(self, elements=new_elements)

    def with_bulb_resistances(self, resistances: Mapping[str, float]) -> "TransientCircuit":
        new_elements = tuple(
            replace(e, resistance=resistances[e.element_id])
            if isinstance(e, LightBulb) and e.element_id in resistances else e
            for e in self.elements
        )
        return replace(self, elements=new_elements)


@dataclass(frozen=True)
class TransientState:
    """
    Subdivision state: the circuit (with dynamic state) at `time`, plus the solve
    that produced it. The initial state of a frame has no solution.
    """
    circuit: TransientCircuit
    time: float
    solution: Optional[TransientSolution] = None

    def update(self, dt: float) -> "TransientState":
        solution = self.circuit.solve_propagate(self.time + dt, dt)
        return TransientState(self.circuit.updated(solution), self.time + dt, solution)

    def characteristic_array(self) -> np.ndarray:
        """Voltage drop and current of every dynamic element, in element order."""
        return np.array(
            [v for e in self.circuit.dynamic_elements for v in (e.state.voltage_drop, e.state.current)],
            dtype=float,
        )


class TransientSteppable:
    """Adapts TransientState to the subdivision controller."""

    def update(self, state: TransientState, dt: float) -> TransientState:
        return state.update(dt)

    def distance(self, a: TransientState, b: TransientState) -> float:
        """Max absolute difference of dynamic-element voltage drops and currents."""
        diff = a.characteristic_array() - b.characteristic_array()
        return float(np.max(np.abs(diff))) if diff.size else 0.0


def capacitor_state_from_voltage(capacitor: Capacitor, voltage_drop: float, dt: float) -> DynamicState:
    """End-of-step capacitor state implied by a new voltage under the trapezoidal rule."""
    u0, i0 = capacitor.state.voltage_drop, capacitor.state.current
    current = (2 * capacitor.capacitance / dt) * (voltage_drop - u0) - i0
    return DynamicState(voltage_drop=voltage_drop, current=current)


def inductor_state_from_voltage(inductor: Inductor, voltage_drop: float, dt: float) -> DynamicState:
    """End-of-step inductor state implied by a new voltage under the trapezoidal rule."""
    u0, i0 = inductor.state.voltage_drop, inductor.state.current
    current = i0 + (dt / (2 * inductor.inductance)) * (u0 + voltage_drop)
    return DynamicState(voltage_drop=voltage_drop, current=current)


@dataclass(frozen=True)
class TransientResultSet:
    """The accepted steps of one frame, in order."""
    steps: Tuple[StepRecord, ...]

    @property
    def total_time(self) -> float:
        return sum(step.dt for step in self.steps)

    @property
    def final_state(self) -> TransientState:
        return self.steps[-1].state

    @property
    def final_solution(self) -> TransientSolution:
        return self.final_state.solution

    def time_average_current(self, element_id: str) -> float:
        """Current weighted by the length of each accepted step."""
        weighted = sum(step.state.solution.current(element_id) * step.dt for step in self.steps)
        return weighted / self.total_time
