# src/cksim_core/simulation/engine.py
"""
The per-frame engine: partition, build companion models, integrate each group
under timestep subdivision, then hand everything to the result distributor.
"""
import logging
from typing import Dict, Sequence

from ..analysis import Group, TopologyAnalyzer
from ..components import CircuitElement, LightBulb
from .companion import (
    CompanionModelBuilder, TransientCircuit, TransientResultSet, TransientState, TransientSteppable,
)
from .config import SolverConfig
from .context import SimulationContext
from .distributor import ResultDistributor
from .exceptions import MnaInputError
from .results import FrameResult, GroupSolution
from .subdivision import TimestepSubdivisions

logger = logging.getLogger(__name__)

#: Bulb resistance changes below this are treated as converged.
_BULB_CONVERGENCE_OHMS = 1e-9


class GroupSolver:
    """Integrates the participating elements of one group over one frame."""

    def __init__(self, config: SolverConfig):
        self.config = config
        self.builder = CompanionModelBuilder(config)
        self.subdivisions = TimestepSubdivisions(
            error_threshold=config.error_threshold,
            min_dt=config.min_dt,
            paused_dt=config.paused_dt,
        )
        self._steppable = TransientSteppable()

    def integrate(self, circuit: TransientCircuit, start_time: float, dt: float) -> TransientResultSet:
        steps = self.subdivisions.step_in_time_with_history(
            TransientState(circuit=circuit, time=start_time), self._steppable, dt
        )
        return TransientResultSet(steps=tuple(steps))

    def solve(
        self,
        group_id: str,
        elements: Sequence[CircuitElement],
        start_time: float,
        dt: float,
        settle_bulbs: bool = True,
    ) -> GroupSolution:
        """
        Integrates the group over one frame. With `settle_bulbs` off, real bulbs are
        solved once at their persisted resistance.
        """
        circuit = TransientCircuit(elements=tuple(elements), builder=self.builder, group_id=group_id)
        real_bulbs = [e for e in circuit.elements if isinstance(e, LightBulb) and e.is_real]

        result_set = self.integrate(circuit, start_time, dt)
        if not real_bulbs or not settle_bulbs:
            return ResultDistributor.from_transient(group_id, result_set)

        # Fixed-point loop: guess resistance, solve, re-derive resistance from the voltage.
        # Stopping without convergence is accepted.
        resistances: Dict[str, float] = {b.element_id: b.resistance for b in real_bulbs}
        for iteration in range(self.config.bulb_iterations):
            if iteration > 0:
                result_set = self.integrate(circuit.with_bulb_resistances(resistances), start_time, dt)
            final = result_set.final_solution
            new_resistances = {
                bulb_id: LightBulb.empirical_resistance(
                    final.voltage_drop(bulb_id),
                    cold_resistance=self.config.bulb_cold_resistance,
                    coefficient=self.config.bulb_coefficient,
                    log_base=self.config.bulb_log_base,
                )
                for bulb_id in resistances
            }
            converged = all(
                abs(new_resistances[b] - resistances[b]) < _BULB_CONVERGENCE_OHMS for b in resistances
            )
            resistances = new_resistances
            if converged:
                break
        logger.debug(f"Bulb resistance loop for group '{group_id}' ran {iteration + 1} iteration(s).")
        return ResultDistributor.from_transient(group_id, result_set, bulb_resistances=resistances)


class SimulationEngine:
    """
    Stateless executor for one frame. All inputs come from the SimulationContext.
    """
    def __init__(self, context: SimulationContext):
        self.context = context
        self.group_solver = GroupSolver(context.config)
        self.distributor = ResultDistributor(context.config)

    def run_frame(self) -> FrameResult:
        snapshot, dt = self.context.snapshot, self.context.dt
        if not dt > 0:
            raise MnaInputError(group_id="", details=f"Frame time step must be positive, got {dt!r}.")

        topology = TopologyAnalyzer(snapshot, self.context.cache).analyze()
        element_map = snapshot.element_map

        group_solutions: Dict[str, GroupSolution] = {}
        for group in topology.groups:
            if not group.is_solvable:
                continue
            group_solutions[group.group_id] = self._solve_group(group, element_map, snapshot.time, dt)

        result = self.distributor.distribute(snapshot, topology, group_solutions, dt)
        logger.debug(
            f"Frame t={result.time:.6g} s for '{snapshot.name}': solved {len(group_solutions)} "
            f"of {len(topology.groups)} group(s)."
        )
        return result

    def _solve_group(
        self, group: Group, element_map: Dict[str, CircuitElement], start_time: float, dt: float
    ) -> GroupSolution:
        participants = [element_map[eid] for eid in group.element_ids if eid in group.participant_ids]
        return self.group_solver.solve(group.group_id, participants, start_time, dt)
