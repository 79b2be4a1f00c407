# src/cksim_core/simulation/__init__.py
from .config import SolverConfig, ConfigParsingError, parse_solver_config
from .context import SimulationContext
from .mna import MnaCircuit, MnaResistor, MnaBattery
from .results import MnaSolution, GroupSolution, ElementResult, FrameResult
from .companion import (
    CompanionModelBuilder, TransientCircuit, TransientState, TransientSolution, TransientResultSet,
    TransientSteppable, SyntheticNode,
)
from .subdivision import TimestepSubdivisions, StepRecord
from .distributor import ResultDistributor, propagate_voltages
from .engine import SimulationEngine, GroupSolver
from .external import (
    ExternalSolveRequest, ExternalSolveResponse, ExternalSolverBackend, LocalExternalSolver,
    ExternalSolveCoordinator, SpiceNetlist, write_spice_netlist,
)
from .execution import run_frame, TransientSimulation
from .exceptions import (
    MnaInputError, SingularMatrixError, NumericalOverflowError, ExternalSolverError,
)

__all__ = [
    "SolverConfig", "ConfigParsingError", "parse_solver_config", "SimulationContext",
    "MnaCircuit", "MnaResistor", "MnaBattery",
    "MnaSolution", "GroupSolution", "ElementResult", "FrameResult",
    "CompanionModelBuilder", "TransientCircuit", "TransientState", "TransientSolution",
    "TransientResultSet", "TransientSteppable", "SyntheticNode",
    "TimestepSubdivisions", "StepRecord",
    "ResultDistributor", "propagate_voltages",
    "SimulationEngine", "GroupSolver",
    "ExternalSolveRequest", "ExternalSolveResponse", "ExternalSolverBackend", "LocalExternalSolver",
    "ExternalSolveCoordinator", "SpiceNetlist", "write_spice_netlist",
    "run_frame", "TransientSimulation",
    "MnaInputError", "SingularMatrixError", "NumericalOverflowError", "ExternalSolverError",
]
