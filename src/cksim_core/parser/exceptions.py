# src/cksim_core/parser/exceptions.py
"""
Diagnosable exceptions for loading circuit files.

`ParsingError` covers file-level and syntax problems; `SchemaValidationError`
covers documents that load but do not match the circuit schema.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any

from ..errors import DiagnosableError, format_diagnostic_report


class BaseParsingError(DiagnosableError):
    """Common base for YAML loading and schema validation errors."""
    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="Generic Parsing Error",
            details=str(self),
            suggestion="Please check the format and content of the circuit YAML file.",
            context={}
        )


@dataclass(frozen=True)
class ParsingError(BaseParsingError):
    """Raised when a file is missing, unreadable, or not valid YAML."""
    details: str
    file_path: Path

    def __str__(self):
        return f"Parsing error in file '{self.file_path}': {self.details}"

    def get_diagnostic_report(self) -> str:
        return format_diagnostic_report(
            error_type="YAML Parsing or File Error",
            details=self.details,
            suggestion="Ensure the file exists, has the correct read permissions, and contains valid YAML syntax.",
            context={'source_file': self.file_path}
        )


@dataclass(frozen=True)
class SchemaValidationError(BaseParsingError):
    """Raised when a YAML document does not conform to the circuit schema."""
    errors: Dict[str, Any]
    file_path: Path

    def _error_lines(self):
        return [f"  - Field '{field}': {messages}" for field, messages in sorted(self.errors.items())]

    def __str__(self):
        return f"YAML schema validation failed for file '{self.file_path}':\n" + "\n".join(self._error_lines())

    def get_diagnostic_report(self) -> str:
        details = (
            "The structure of the YAML file does not conform to the circuit schema.\n"
            f"See details for {len(self.errors)} issue(s) below:\n\n" + "\n".join(self._error_lines())
        )
        return format_diagnostic_report(
            error_type="YAML Schema Validation Error",
            details=details,
            suggestion="Check for unknown element types, invalid identifiers, duplicate element ids, or elements without exactly two nodes.",
            context={'source_file': self.file_path}
        )
