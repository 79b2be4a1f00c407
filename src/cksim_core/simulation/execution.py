# src/cksim_core/simulation/execution.py
"""
Public entry points for solving frames.

`run_frame` solves one frame of a snapshot. `TransientSimulation` owns a snapshot
across frames, threading each frame's updated elements into the next, and can
route groups to an external solver instead of the built-in one.

Both validate the snapshot first and convert any diagnosable failure into a
single `SimulationRunError` carrying the diagnostic report.
"""
import logging
from typing import Dict, Optional

from ..analysis import TopologyAnalyzer
from ..cache import SimulationCache
from ..components import CircuitElement, Fuse, Switch
from ..data_structures import CircuitSnapshot
from ..errors import Diagnosable, SimulationRunError, format_diagnostic_report
from ..validation import SemanticValidationError, SnapshotValidator, ValidationIssueLevel
from .config import SolverConfig
from .context import SimulationContext
from .distributor import ResultDistributor
from .engine import SimulationEngine
from .external import ExternalSolveCoordinator
from .results import FrameResult, GroupSolution

logger = logging.getLogger(__name__)


def _validate(snapshot: CircuitSnapshot):
    issues = SnapshotValidator(snapshot).validate()
    if any(issue.level == ValidationIssueLevel.ERROR for issue in issues):
        raise SemanticValidationError(issues)


def _wrap_failure(e: Exception) -> SimulationRunError:
    if isinstance(e, Diagnosable):
        logger.error(f"A diagnosable error occurred while solving a frame: {e}")
        return SimulationRunError(e.get_diagnostic_report())
    logger.critical(f"An unexpected internal error occurred while solving a frame: {e}", exc_info=True)
    report = format_diagnostic_report(
        error_type=f"An Unexpected Simulation Error Occurred ({type(e).__name__})",
        details=f"The solver encountered an unexpected internal error: {e}",
        suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
        context={}
    )
    return SimulationRunError(report)


def run_frame(
    snapshot: CircuitSnapshot,
    dt: float,
    config: Optional[SolverConfig] = None,
    cache: Optional[SimulationCache] = None,
) -> FrameResult:
    """
    Solves one frame of length `dt` starting at `snapshot.time`.

    Args:
        snapshot: The caller's circuit, including persisted dynamic state.
        dt: Frame length in seconds. Must be positive.
        config: Solver tunables. Defaults to SolverConfig().
        cache: An optional SimulationCache to reuse across frames.

    Returns:
        The FrameResult. Its `snapshot` is the input for the next frame.

    Raises:
        SimulationRunError: If validation or solving fails. The original exception
                            is chained for debugging.
    """
    try:
        _validate(snapshot)
        context = SimulationContext(
            snapshot=snapshot,
            dt=dt,
            config=config or SolverConfig(),
            cache=cache if cache is not None else SimulationCache(),
        )
        return SimulationEngine(context).run_frame()
    except SimulationRunError:
        raise
    except Exception as e:
        raise _wrap_failure(e) from e


class TransientSimulation:
    """
    Owns a circuit snapshot across frames.

    Without a coordinator every frame is solved synchronously. With an
    `ExternalSolveCoordinator`, solvable groups are submitted to the external
    solver and each frame applies whatever responses have arrived. Groups still
    waiting keep their last applied values.
    """
    def __init__(
        self,
        snapshot: CircuitSnapshot,
        config: Optional[SolverConfig] = None,
        cache: Optional[SimulationCache] = None,
        coordinator: Optional[ExternalSolveCoordinator] = None,
    ):
        self.snapshot = snapshot
        self.config = config or SolverConfig()
        self.cache = cache if cache is not None else SimulationCache()
        self.coordinator = coordinator
        self.last_result: Optional[FrameResult] = None
        self._applied: Dict[str, GroupSolution] = {}

    @property
    def time(self) -> float:
        return self.snapshot.time

    def step(self, dt: float) -> FrameResult:
        """Solves one frame and advances the owned snapshot."""
        if self.coordinator is None:
            result = run_frame(self.snapshot, dt, self.config, self.cache)
        else:
            try:
                _validate(self.snapshot)
                result = self._step_external(dt)
            except Exception as e:
                raise _wrap_failure(e) from e
        self.snapshot = result.snapshot
        self.last_result = result
        return result

    def run(self, dt: float, frames: int) -> FrameResult:
        """Solves `frames` consecutive frames and returns the last result."""
        if frames < 1:
            raise ValueError("frames must be at least 1.")
        for _ in range(frames):
            result = self.step(dt)
        logger.info(f"Ran {frames} frame(s) of '{self.snapshot.name}' to t={self.time:.6g} s.")
        return result

    def _step_external(self, dt: float) -> FrameResult:
        if not dt > 0:
            raise ValueError(f"Frame time step must be positive, got {dt!r}.")
        topology = TopologyAnalyzer(self.snapshot, self.cache).analyze()
        element_map = self.snapshot.element_map
        live_groups = {group.group_id: group for group in topology.groups}

        # Solutions for groups that no longer exist, or whose members changed, are stale.
        self._applied = {
            group_id: solution for group_id, solution in self._applied.items()
            if group_id in live_groups
            and set(solution.element_currents) <= live_groups[group_id].participant_ids
        }

        for group in topology.groups:
            if group.is_solvable:
                participants = [element_map[e] for e in group.element_ids if e in group.participant_ids]
                self.coordinator.request(group.group_id, participants, self.snapshot.time, dt)
            else:
                self._applied.pop(group.group_id, None)

        fresh = set()
        for group_id, solution in self.coordinator.poll().items():
            if group_id in live_groups:
                self._applied[group_id] = solution
                fresh.add(group_id)

        # Solutions carried over from an earlier frame are shown again but do not
        # count as this frame's current for fuse timers.
        stale = set(self._applied) - fresh
        return ResultDistributor(self.config).distribute(
            self.snapshot, topology, self._applied, dt, stale_group_ids=stale
        )

    # --- Caller edits between frames ---

    def replace_element(self, element: CircuitElement):
        """Swaps in an edited element with the same id."""
        self.snapshot.get_element(element.element_id)
        self.snapshot = self.snapshot.with_elements({element.element_id: element})

    def reset_fuse(self, element_id: str):
        fuse = self.snapshot.get_element(element_id)
        if not isinstance(fuse, Fuse):
            raise TypeError(f"Element '{element_id}' is not a Fuse.")
        self.replace_element(fuse.reset())

    def toggle_switch(self, element_id: str):
        switch = self.snapshot.get_element(element_id)
        if not isinstance(switch, Switch):
            raise TypeError(f"Element '{element_id}' is not a Switch.")
        self.replace_element(switch.toggled())
