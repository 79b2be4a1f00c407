# src/cksim_core/analysis/exceptions.py
"""
Defines diagnosable exceptions for the analysis services.
"""
from dataclasses import dataclass
from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class TopologyAnalysisError(DiagnosableError):
    """Raised when the element graph cannot be partitioned."""
    circuit_name: str
    details: str

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Topological Analysis Error",
            details=f"Circuit '{self.circuit_name}': {self.details}",
            suggestion="This may indicate an internal error or unhashable node ids in the circuit snapshot.",
            context={}
        )
