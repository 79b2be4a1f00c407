# src/cksim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.debug("CKSim Core package initialized.")

from .units import ureg, pint, Quantity, to_magnitude
from .components import (
    ElementBase, DynamicState, ELEMENT_REGISTRY, ComponentError,
    Resistor, Wire, SeriesAmmeter, Switch, Fuse, LightBulb,
    VoltageSource, Battery, ACVoltageSource, Capacitor, Inductor,
)
from .data_structures import CircuitSnapshot
from .cache import SimulationCache
from .analysis import TopologyAnalyzer, partition, find_participants, TopologyAnalysisError
from .parser import NetlistParser, load_circuit
from .validation import SnapshotValidator, SemanticValidationError
from .simulation import (
    SolverConfig, parse_solver_config, MnaCircuit, FrameResult, run_frame, TransientSimulation,
    ExternalSolveCoordinator, LocalExternalSolver, write_spice_netlist,
    MnaInputError, SingularMatrixError,
)
from .errors import CKSimError, CircuitBuildError, SimulationRunError

__all__ = [
    # Units
    "ureg", "pint", "Quantity", "to_magnitude",
    # Elements
    "ElementBase", "DynamicState", "ELEMENT_REGISTRY", "ComponentError",
    "Resistor", "Wire", "SeriesAmmeter", "Switch", "Fuse", "LightBulb",
    "VoltageSource", "Battery", "ACVoltageSource", "Capacitor", "Inductor",
    # Data Structures
    "CircuitSnapshot", "SimulationCache",
    # Analysis
    "TopologyAnalyzer", "partition", "find_participants", "TopologyAnalysisError",
    # Loading and validation
    "NetlistParser", "load_circuit", "SnapshotValidator", "SemanticValidationError",
    # Simulation
    "SolverConfig", "parse_solver_config", "MnaCircuit", "FrameResult", "run_frame",
    "TransientSimulation", "ExternalSolveCoordinator", "LocalExternalSolver", "write_spice_netlist",
    "MnaInputError", "SingularMatrixError",
    # Top-Level Errors
    "CKSimError", "CircuitBuildError", "SimulationRunError",
]
