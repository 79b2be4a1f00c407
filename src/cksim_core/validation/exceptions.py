# src/cksim_core/validation/exceptions.py
"""
Defines the diagnosable exception raised when a snapshot fails validation.
"""
from typing import List

from .issues import ValidationIssue, ValidationIssueLevel
from ..errors import DiagnosableError, format_diagnostic_report


class SemanticValidationError(DiagnosableError):
    """
    Container for all error-level issues found in one validation pass.
    """
    def __init__(self, issues: List[ValidationIssue]):
        self.issues: List[ValidationIssue] = [
            issue for issue in issues if issue.level == ValidationIssueLevel.ERROR
        ]
        if not self.issues:
            summary_message = "SemanticValidationError was raised with no error-level issues."
        else:
            summary_message = (
                f"Snapshot validation failed with {len(self.issues)} error(s):\n"
                + "\n".join(f"  - {issue}" for issue in self.issues)
            )
        super().__init__(summary_message)

    def get_diagnostic_report(self) -> str:
        details = (
            f"The circuit snapshot contains {len(self.issues)} error(s):\n\n"
            + "\n".join(f"  - {issue}" for issue in self.issues)
        )
        first_issue = self.issues[0] if self.issues else None
        context = {'element_id': first_issue.element_id} if first_issue else {}
        return format_diagnostic_report(
            error_type="Circuit Snapshot Validation Error",
            details=details,
            suggestion="Correct the listed elements before solving the next frame.",
            context=context
        )
