# src/cksim_core/simulation/context.py
"""
Defines the `SimulationContext` handed to the stateless SimulationEngine.
"""
from dataclasses import dataclass

from ..data_structures import CircuitSnapshot
from ..cache.service import SimulationCache
from .config import SolverConfig


@dataclass(frozen=True)
class SimulationContext:
    """
    Everything one frame depends on: the caller's snapshot, the frame length,
    the solver tunables and the shared cache. Frozen so a frame's inputs cannot
    change while it is being solved.
    """
    snapshot: CircuitSnapshot
    dt: float
    config: SolverConfig
    cache: SimulationCache
