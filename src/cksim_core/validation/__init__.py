# src/cksim_core/validation/__init__.py
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import SnapshotIssueCode
from .snapshot_validator import SnapshotValidator
from .exceptions import SemanticValidationError

__all__ = [
    "ValidationIssue", "ValidationIssueLevel", "SnapshotIssueCode",
    "SnapshotValidator", "SemanticValidationError",
]
