# src/cksim_core/simulation/external.py
"""
Asynchronous solving of groups by an external solver.

The coordinator keeps a table of pending requests keyed by group id. A group
with a request in flight is not asked again. `poll()` collects whatever has
finished and converts each response into a `GroupSolution`, which the caller
applies through the same ResultDistributor used by the built-in path. A failed,
cancelled or timed-out request is logged and dropped, so the group keeps the
last values that were applied to it.
"""
import logging
import time as _time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Hashable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..components import (
    Capacitor, CircuitElement, Inductor, LightBulb, RESISTIVE_TYPES, VoltageSource,
)
from ..constants import SPICE_MINIMUM_RESISTANCE
from .companion import CompanionModelBuilder, capacitor_state_from_voltage, inductor_state_from_voltage
from .config import SolverConfig
from .engine import GroupSolver
from .exceptions import ExternalSolverError
from .results import GroupSolution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalSolveRequest:
    """
    One group's participating elements, to be advanced from `time` by `dt`.
    Every resistive element, real light bulbs included, is solved at its present
    resistance; the coordinator derives the next bulb resistance from the response.
    """
    group_id: str
    elements: Tuple[CircuitElement, ...]
    time: float
    dt: float

    @property
    def batteries(self) -> Tuple[VoltageSource, ...]:
        return tuple(e for e in self.elements if isinstance(e, VoltageSource))

    @property
    def resistors(self) -> Tuple[CircuitElement, ...]:
        return tuple(e for e in self.elements if isinstance(e, RESISTIVE_TYPES))

    @property
    def capacitors(self) -> Tuple[Capacitor, ...]:
        return tuple(e for e in self.elements if isinstance(e, Capacitor))

    @property
    def inductors(self) -> Tuple[Inductor, ...]:
        return tuple(e for e in self.elements if isinstance(e, Inductor))

    def nodes(self) -> List[Hashable]:
        seen: Dict[Hashable, None] = {}
        for element in self.elements:
            seen.setdefault(element.node0, None)
            seen.setdefault(element.node1, None)
        return list(seen)


@dataclass(frozen=True)
class ExternalSolveResponse:
    """
    Per-node voltages at the end of the step and the branch current of each
    source (flowing node0 -> node1 through the source), keyed by element id.
    """
    group_id: str
    node_voltages: Mapping[Hashable, float]
    source_currents: Mapping[str, float]

    def __post_init__(self):
        object.__setattr__(self, 'node_voltages', MappingProxyType(dict(self.node_voltages)))
        object.__setattr__(self, 'source_currents', MappingProxyType(dict(self.source_currents)))


class ExternalSolverBackend(Protocol):
    def submit(self, request: ExternalSolveRequest) -> Future:
        """Starts a solve and returns a future resolving to an ExternalSolveResponse."""
        ...


class LocalExternalSolver:
    """
    A backend that runs the built-in group solver on an executor. Useful as a
    reference implementation of the service contract and in tests.
    """
    def __init__(self, config: Optional[SolverConfig] = None, executor: Optional[Executor] = None):
        self._solver = GroupSolver(config or SolverConfig())
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="cksim-external")

    def submit(self, request: ExternalSolveRequest) -> Future:
        return self._executor.submit(self._solve, request)

    def _solve(self, request: ExternalSolveRequest) -> ExternalSolveResponse:
        solution = self._solver.solve(
            request.group_id, request.elements, request.time, request.dt, settle_bulbs=False
        )
        return ExternalSolveResponse(
            group_id=request.group_id,
            node_voltages=solution.node_voltages,
            source_currents={b.element_id: solution.element_currents[b.element_id] for b in request.batteries},
        )

    def shutdown(self, wait: bool = True):
        if self._owns_executor:
            self._executor.shutdown(wait=wait)


@dataclass
class _PendingSolve:
    request: ExternalSolveRequest
    future: Future
    submitted_at: float


class ExternalSolveCoordinator:
    def __init__(
        self,
        backend: ExternalSolverBackend,
        config: Optional[SolverConfig] = None,
        timeout: float = 5.0,
        clock: Callable[[], float] = _time.monotonic,
    ):
        self.backend = backend
        self.config = config or SolverConfig()
        self.timeout = timeout
        self._clock = clock
        self._builder = CompanionModelBuilder(self.config)
        self._pending: Dict[str, _PendingSolve] = {}

    @property
    def pending_group_ids(self) -> Tuple[str, ...]:
        return tuple(self._pending)

    def has_pending(self, group_id: str) -> bool:
        return group_id in self._pending

    def request(self, group_id: str, elements: Sequence[CircuitElement], time: float, dt: float) -> bool:
        """
        Submits a solve for the group unless one is already in flight.
        Returns True when a new request was submitted.
        """
        if group_id in self._pending:
            logger.debug(f"External solve for group '{group_id}' still pending; request skipped.")
            return False
        request = ExternalSolveRequest(group_id=group_id, elements=tuple(elements), time=time, dt=dt)
        try:
            future = self.backend.submit(request)
        except Exception as e:
            self._report_failure(group_id, f"Submitting the request failed: {e}")
            return False
        self._pending[group_id] = _PendingSolve(request=request, future=future, submitted_at=self._clock())
        return True

    def poll(self) -> Dict[str, GroupSolution]:
        """Collects finished solves. Failed and expired requests are logged and dropped."""
        completed: Dict[str, GroupSolution] = {}
        now = self._clock()
        for group_id, pending in list(self._pending.items()):
            if pending.future.done():
                del self._pending[group_id]
                if pending.future.cancelled():
                    self._report_failure(group_id, "The request was cancelled.")
                    continue
                try:
                    response = pending.future.result()
                    completed[group_id] = self.to_group_solution(pending.request, response)
                except ExternalSolverError as e:
                    logger.error(e.get_diagnostic_report())
                except Exception as e:
                    self._report_failure(group_id, f"The external solver raised {type(e).__name__}: {e}")
            elif now - pending.submitted_at > self.timeout:
                del self._pending[group_id]
                pending.future.cancel()
                self._report_failure(group_id, f"No response within {self.timeout} s.")
        return completed

    def cancel_all(self):
        for pending in self._pending.values():
            pending.future.cancel()
        self._pending.clear()

    def to_group_solution(self, request: ExternalSolveRequest, response: ExternalSolveResponse) -> GroupSolution:
        """
        Derives element currents and dynamic state from node voltages and source
        currents. Dynamic state follows the trapezoidal relation over `dt`. A real
        bulb's next resistance comes from its voltage and is applied on the next frame.
        """
        if response.group_id != request.group_id:
            raise ExternalSolverError(
                group_id=request.group_id,
                details=f"Response is for group '{response.group_id}'."
            )
        missing = [n for n in request.nodes() if n not in response.node_voltages]
        if missing:
            raise ExternalSolverError(group_id=request.group_id, details=f"Response lacks voltages for nodes {missing}.")

        voltages = response.node_voltages
        currents: Dict[str, float] = {}
        dynamic_states = {}
        bulb_resistances: Dict[str, float] = {}
        for element in request.elements:
            drop = voltages[element.node0] - voltages[element.node1]
            if isinstance(element, VoltageSource):
                if element.element_id not in response.source_currents:
                    raise ExternalSolverError(
                        group_id=request.group_id,
                        details=f"Response lacks the current of source '{element.element_id}'."
                    )
                currents[element.element_id] = response.source_currents[element.element_id]
            elif isinstance(element, Capacitor):
                state = capacitor_state_from_voltage(element, drop, request.dt)
                dynamic_states[element.element_id] = state
                currents[element.element_id] = state.current
            elif isinstance(element, Inductor):
                state = inductor_state_from_voltage(element, drop, request.dt)
                dynamic_states[element.element_id] = state
                currents[element.element_id] = state.current
            else:
                currents[element.element_id] = drop / self._builder.resistance_of(element)
                if isinstance(element, LightBulb) and element.is_real:
                    bulb_resistances[element.element_id] = LightBulb.empirical_resistance(
                        drop,
                        cold_resistance=self.config.bulb_cold_resistance,
                        coefficient=self.config.bulb_coefficient,
                        log_base=self.config.bulb_log_base,
                    )

        return GroupSolution(
            group_id=request.group_id,
            element_currents=currents,
            dynamic_states=dynamic_states,
            node_voltages=dict(voltages),
            bulb_resistances=bulb_resistances,
        )

    def _report_failure(self, group_id: str, details: str):
        logger.error(ExternalSolverError(group_id=group_id, details=details).get_diagnostic_report())


@dataclass(frozen=True)
class SpiceNetlist:
    text: str
    #: Caller node id -> SPICE node name. The first node of the group is ground ("0").
    node_names: Mapping[Hashable, str] = field(default_factory=dict)


def write_spice_netlist(request: ExternalSolveRequest, config: Optional[SolverConfig] = None) -> SpiceNetlist:
    """
    Renders a request as a SPICE deck. Capacitor and inductor initial conditions
    come from their persisted state, so the deck uses UIC.
    """
    builder = CompanionModelBuilder(config or SolverConfig())
    node_names: Dict[Hashable, str] = {}
    for index, node in enumerate(request.nodes()):
        node_names[node] = "0" if index == 0 else f"n{index}"

    lines = [f"* cksim group {request.group_id} at t={request.time:g}"]
    for i, source in enumerate(request.batteries, start=1):
        n0, n1 = node_names[source.node0], node_names[source.node1]
        voltage = source.voltage_at(request.time + request.dt)
        if source.internal_resistance > 0:
            internal = f"int{i}"
            lines.append(f"V{i} {internal} {n0} DC {voltage:g}")
            lines.append(f"RINT{i} {internal} {n1} {source.internal_resistance:g}")
        else:
            lines.append(f"V{i} {n1} {n0} DC {voltage:g}")
    for i, element in enumerate(request.resistors, start=1):
        resistance = max(builder.resistance_of(element), SPICE_MINIMUM_RESISTANCE)
        lines.append(f"R{i} {node_names[element.node0]} {node_names[element.node1]} {resistance:g}")
    for i, capacitor in enumerate(request.capacitors, start=1):
        lines.append(
            f"C{i} {node_names[capacitor.node0]} {node_names[capacitor.node1]} "
            f"{capacitor.capacitance:g} IC={capacitor.state.voltage_drop:g}"
        )
    for i, inductor in enumerate(request.inductors, start=1):
        lines.append(
            f"L{i} {node_names[inductor.node0]} {node_names[inductor.node1]} "
            f"{inductor.inductance:g} IC={inductor.state.current:g}"
        )
    lines.append(f".tran {request.dt / 10:g} {request.dt:g} UIC")
    lines.append(".END")
    return SpiceNetlist(text="\n".join(lines) + "\n", node_names=node_names)
