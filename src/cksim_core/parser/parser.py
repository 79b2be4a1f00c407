# src/cksim_core/parser/parser.py
import logging
import re
import string
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Union

import cerberus
import yaml

from ..components import ELEMENT_REGISTRY, CircuitElement
from ..data_structures import CircuitSnapshot
from ..errors import CircuitBuildError, DiagnosableError
from ..simulation.config import ConfigParsingError, SolverConfig, parse_solver_config
from .exceptions import ParsingError, SchemaValidationError

logger = logging.getLogger(__name__)

ID_REGEX = r"^[a-zA-Z_][a-zA-Z0-9_]*$"
ALLOWED_ID_CHARS = set(string.ascii_letters + string.digits + "_")


class EnhancedValidator(cerberus.Validator):
    """Cerberus validator with the identifier and uniqueness rules used by circuit files."""

    def _validate_id_regex(self, constraint, field, value):
        """
        The rule's arguments are validated against this schema:
        {'type': 'boolean'}
        """
        if not constraint:
            return
        if not isinstance(value, str):
            self._error(field, "must be a string to be validated by id_regex.")
            return
        if not re.match(ID_REGEX, value):
            invalid_chars = sorted(set(value) - ALLOWED_ID_CHARS)
            self._error(
                field,
                f"Identifier '{value}' is invalid. Identifiers must start with a letter or underscore "
                f"and contain only letters, numbers and underscores. Forbidden character(s): {invalid_chars}"
            )

    def _validate_unique_elements_by_key(self, key_for_uniqueness, field, value):
        """
        Validates that all dictionaries in a list have a unique value for a given key.
        The rule's arguments are validated against this schema:
        {'type': 'string'}
        """
        if not isinstance(value, list):
            return
        seen_keys = set()
        duplicates = []
        for item in value:
            if not isinstance(item, dict):
                continue
            item_key = item.get(key_for_uniqueness)
            if item_key is None:
                continue
            if item_key in seen_keys:
                duplicates.append(item_key)
            else:
                seen_keys.add(item_key)
        if duplicates:
            self._error(field, f"Duplicate values found for key '{key_for_uniqueness}': {sorted(set(duplicates))}")


@dataclass(frozen=True)
class ParsedCircuit:
    """A loaded circuit file: the initial snapshot and its solver settings."""
    snapshot: CircuitSnapshot
    solver_config: SolverConfig
    source_path: Path


class NetlistParser:
    """
    Loads a circuit YAML file into a CircuitSnapshot and a SolverConfig.

    Example document:

        circuit_name: rc_charge
        elements:
          - {id: B1, type: Battery, nodes: [gnd, a], parameters: {voltage: "9 V"}}
          - {id: R1, type: Resistor, nodes: [a, b], parameters: {resistance: "9 ohm"}}
          - {id: C1, type: Capacitor, nodes: [b, gnd], parameters: {capacitance: "10 mF"}}
        solver:
          min_dt: "1 ms"
    """
    _id_rule = {"type": "string", "required": True, "empty": False, "id_regex": True}
    _param_key_rule = {"type": "string", "empty": False, "id_regex": True}

    def __init__(self):
        element_schema = {
            "id": self._id_rule,
            "type": {"type": "string", "required": True, "allowed": sorted(ELEMENT_REGISTRY)},
            "nodes": {
                "type": "list", "required": True, "minlength": 2, "maxlength": 2,
                "schema": {"type": ["string", "integer"]},
            },
            "traversable": {"type": "boolean", "default": True},
            "parameters": {
                "type": "dict", "required": False,
                "keysrules": self._param_key_rule,
                "valuesrules": {"type": ["string", "number", "boolean"]},
            },
        }
        self._schema = {
            "circuit_name": {"type": "string", "required": False, "id_regex": True},
            "time": {"type": "number", "required": False, "default": 0.0},
            "elements": {
                "type": "list", "required": True, "minlength": 1, "unique_elements_by_key": "id",
                "schema": {"type": "dict", "schema": element_schema},
            },
            "solver": {
                "type": "dict", "required": False,
                "keysrules": {"type": "string", "allowed": [f.name for f in fields(SolverConfig)]},
                "valuesrules": {"type": ["string", "number", "boolean"]},
            },
        }
        self._validator = EnhancedValidator(self._schema)
        self._validator.allow_unknown = False
        logger.debug("NetlistParser initialized.")

    def parse(self, yaml_path: Union[str, Path]) -> ParsedCircuit:
        resolved_path = Path(yaml_path).resolve()
        logger.info(f"Loading circuit file: {resolved_path}")
        content = self._load_yaml(resolved_path)
        return self.parse_document(content, resolved_path)

    def parse_document(self, content: Dict[str, Any], source_path: Path) -> ParsedCircuit:
        """Validates an already-loaded document and builds the snapshot."""
        if not self._validator.validate(content):
            raise SchemaValidationError(self._validator.errors, source_path)
        document = self._validator.document

        elements: List[CircuitElement] = []
        for raw in document["elements"]:
            element_cls = ELEMENT_REGISTRY[raw["type"]]
            node0, node1 = raw["nodes"]
            elements.append(element_cls.from_parameters(
                element_id=raw["id"],
                node0=node0,
                node1=node1,
                raw_parameters=raw.get("parameters", {}),
                traversable=raw.get("traversable", True),
            ))

        try:
            solver_config = parse_solver_config(document.get("solver"))
        except ConfigParsingError as e:
            raise ParsingError(details=f"Invalid 'solver' section: {e}", file_path=source_path) from e

        snapshot = CircuitSnapshot(
            elements=tuple(elements),
            time=float(document["time"]),
            name=document.get("circuit_name", source_path.stem),
        )
        logger.info(f"Loaded circuit '{snapshot.name}' with {len(elements)} element(s).")
        return ParsedCircuit(snapshot=snapshot, solver_config=solver_config, source_path=source_path)

    def _load_yaml(self, source: Path) -> Dict[str, Any]:
        """Loads and performs basic sanity checks on a YAML file."""
        if not source.is_file():
            raise ParsingError(details=f"Circuit file not found at path: {source}", file_path=source)
        try:
            with source.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except PermissionError as e:
            raise ParsingError(details=f"Permission denied when trying to read file: {e}", file_path=source) from e
        except yaml.YAMLError as e:
            raise ParsingError(details=f"Invalid YAML syntax: {e}", file_path=source) from e
        if content is None:
            raise ParsingError(details="The YAML file is empty or contains no valid content.", file_path=source)
        if not isinstance(content, dict):
            raise ParsingError(details="The root of the YAML file must be a dictionary (mapping).", file_path=source)
        return content


def load_circuit(yaml_path: Union[str, Path]) -> ParsedCircuit:
    """
    Loads a circuit file, converting any diagnosable failure into a CircuitBuildError.
    """
    try:
        return NetlistParser().parse(yaml_path)
    except DiagnosableError as e:
        logger.error(f"Failed to load circuit '{yaml_path}': {e}")
        raise CircuitBuildError(e.get_diagnostic_report()) from e
