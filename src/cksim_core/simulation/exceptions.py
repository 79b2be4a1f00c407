# src/cksim_core/simulation/exceptions.py
"""
Diagnosable exceptions raised while a frame is being solved.

All of them derive from `DiagnosableError`, so the facade in `execution.py` can
catch the whole family and re-raise a single `SimulationRunError` with the
report attached.
"""
import numpy as np
from typing import Optional
from dataclasses import dataclass

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class MnaInputError(DiagnosableError):
    """
    Raised for structural problems found while setting up an MNA system, before
    any matrix is assembled.
    """
    group_id: str
    details: str

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="MNA Input Error",
            details=self.details,
            suggestion="Check the element values of the group: resistances must be finite and non-negative and the time step must be positive.",
            context={'group_id': self.group_id}
        )


@dataclass()
class SingularMatrixError(DiagnosableError, np.linalg.LinAlgError):
    """
    Raised when a group's MNA matrix cannot be factorized. Resistance floors and
    per-component reference nodes make this unreachable for valid input, so it is
    treated as fatal rather than answered with NaNs.

    Catchable both as `DiagnosableError` and as numpy's `LinAlgError`.
    """
    details: str
    group_id: Optional[str] = None

    def __str__(self):
        group_str = f" in group '{self.group_id}'" if self.group_id is not None else ""
        return f"Singular matrix detected{group_str}: {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Singular Matrix Encountered",
            details=self.details,
            suggestion="This usually means a loop of ideal voltage sources with no resistance between them. Give one of the sources an internal resistance.",
            context={'group_id': self.group_id}
        )


@dataclass()
class NumericalOverflowError(DiagnosableError):
    """
    Raised in strict mode when a solved value exceeds the clamp bound before it is
    written back. Outside strict mode the value is clamped and a warning is logged.
    """
    element_id: str
    quantity_name: str
    value: float
    bound: float

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Numerical Overflow",
            details=f"The {self.quantity_name} of '{self.element_id}' evaluated to {self.value!r}, beyond the bound of {self.bound:.1e}.",
            suggestion="Look for degenerate values such as a near-zero capacitance or inductance.",
            context={'element_id': self.element_id}
        )


@dataclass()
class ExternalSolverError(DiagnosableError):
    """Describes a failed or timed-out external solve. Logged, never propagated to the frame."""
    group_id: str
    details: str

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="External Solver Failure",
            details=self.details,
            suggestion="The last applied results for this group were kept. Check the external solver service.",
            context={'group_id': self.group_id}
        )
