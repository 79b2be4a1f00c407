# src/cksim_core/errors.py
import logging
from typing import Any, Dict, Protocol, abstractmethod
from typing import runtime_checkable

logger = logging.getLogger(__name__)

# --- User-Facing Exception Hierarchy ---

class CKSimError(Exception):
    """Base class for all custom, user-facing errors in CKSim Core."""
    pass

class CircuitBuildError(CKSimError):
    """
    Raised when a circuit snapshot cannot be built from its description, from YAML
    loading through element construction. The message is a pre-formatted diagnostic report.
    """
    pass

class SimulationRunError(CKSimError):
    """
    Raised when a frame fails to solve after the snapshot was built, such as a
    validation error or a numerical defect. The message is a pre-formatted diagnostic report.
    """
    pass


class FrameworkLogicError(CKSimError):
    """Raised when an internal contract is violated. Always indicates a bug, never bad input."""
    pass


# --- Diagnostic Protocol & Base Exception ---

@runtime_checkable
class Diagnosable(Protocol):
    """Protocol for exceptions that can render their own diagnostic report."""
    def get_diagnostic_report(self) -> str:
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    Concrete base class for every internal exception that can explain itself.

    Subclasses must implement `get_diagnostic_report`. The facade functions in
    `simulation.execution` catch this type and re-raise the report as a
    `SimulationRunError`.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        raise NotImplementedError


# --- Stateless Formatting Utility ---

def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    Formats the multi-line report shared by all diagnosable errors.

    Args:
        error_type: The high-level category of the error (e.g., "Singular Matrix").
        details: A detailed, potentially multi-line description of the problem.
        suggestion: Actionable advice for resolving the issue.
        context: Optional extra fields. Recognized keys are 'element_id', 'group_id',
                 'source_file', 'user_input' and 'time'.

    Returns:
        A formatted report string ready for display.
    """
    lines = [
        "\n",
        "================ CKSim Core: Actionable Diagnostic Report ================",
        f"Error Type:     {error_type}",
    ]
    if element_id := context.get('element_id'):
        lines.append(f"Element:        {element_id}")
    if group_id := context.get('group_id'):
        lines.append(f"Group:          {group_id}")
    if source_file := context.get('source_file'):
        lines.append(f"Source File:    {source_file}")
    if user_input := context.get('user_input'):
        lines.append(f"User Input:     '{user_input}'")
    if (sim_time := context.get('time')) is not None:
        lines.append(f"Sim Time:       {sim_time}")

    lines.append("\nDetails:")
    for line in details.splitlines():
        lines.append(f"  {line}")

    if suggestion:
        lines.append("\nSuggestion:")
        for line in suggestion.splitlines():
            lines.append(f"  {line}")

    lines.append("========================================================================")
    return "\n".join(lines)
