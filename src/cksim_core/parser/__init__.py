# src/cksim_core/parser/__init__.py
from .parser import NetlistParser, ParsedCircuit, load_circuit
from .exceptions import ParsingError, SchemaValidationError

__all__ = [
    "NetlistParser",
    "ParsedCircuit",
    "load_circuit",
    "ParsingError",
    "SchemaValidationError",
]
