# src/cksim_core/components/exceptions.py
"""
Defines the diagnosable exception for the element model.
"""
from dataclasses import dataclass

from ..errors import DiagnosableError, format_diagnostic_report

@dataclass()
class ComponentError(DiagnosableError):
    """
    Raised when an element cannot be constructed or converted, such as when a
    parameter has the wrong dimension or an impossible value.
    """
    element_id: str
    details: str

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Circuit Element Error",
            details=self.details,
            suggestion="Check the element's parameters: resistances must be non-negative, capacitance, inductance and fuse ratings must be positive, and units must match the parameter.",
            context={'element_id': self.element_id}
        )
