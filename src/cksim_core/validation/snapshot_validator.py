# src/cksim_core/validation/snapshot_validator.py
import logging
import math
from collections import Counter
from typing import Dict, Hashable, List

from ..components import (
    ACVoltageSource, Battery, Capacitor, ELEMENT_REGISTRY, ElementBase, Fuse, Inductor,
    LightBulb, Resistor, VoltageSource, Wire,
)
from ..data_structures import CircuitSnapshot
from .issues import ValidationIssue, ValidationIssueLevel
from .issue_codes import SnapshotIssueCode

logger = logging.getLogger(__name__)


class SnapshotValidator:
    """
    Checks a circuit snapshot for values the solver cannot handle. Errors stop the
    frame; warnings describe wiring that is legal but will carry no current.
    """

    def __init__(self, snapshot: CircuitSnapshot):
        if not isinstance(snapshot, CircuitSnapshot):
            raise TypeError("SnapshotValidator requires a CircuitSnapshot.")
        self.snapshot = snapshot
        self.issues: List[ValidationIssue] = []

    def validate(self) -> List[ValidationIssue]:
        self.issues = []
        self._check_identity()
        for element in self.snapshot.elements:
            if not isinstance(element, ElementBase) or type(element) not in ELEMENT_REGISTRY.values():
                self._add_issue(
                    ValidationIssueLevel.ERROR, SnapshotIssueCode.ELEM_TYPE_UNSUPPORTED,
                    element_id=getattr(element, 'element_id', repr(element)),
                    element_type=type(element).__name__,
                    available_types=sorted(ELEMENT_REGISTRY),
                )
                continue
            self._check_parameters(element)
            if element.node0 == element.node1:
                self._add_issue(
                    ValidationIssueLevel.WARNING, SnapshotIssueCode.ELEM_SELF_LOOP,
                    element_id=element.element_id, node=element.node0,
                )
        self._check_dangling_nodes()

        if self.issues:
            errors = sum(1 for i in self.issues if i.level == ValidationIssueLevel.ERROR)
            warnings = sum(1 for i in self.issues if i.level == ValidationIssueLevel.WARNING)
            logger.debug(f"Validation of '{self.snapshot.name}' found {errors} error(s), {warnings} warning(s).")
        return self.issues

    def _add_issue(self, level: ValidationIssueLevel, code_enum: SnapshotIssueCode, **kwargs):
        self.issues.append(ValidationIssue(
            level=level,
            code=code_enum.code,
            message=code_enum.format_message(**kwargs),
            element_id=kwargs.get('element_id'),
            details=kwargs,
        ))

    def _check_identity(self):
        counts = Counter(getattr(e, 'element_id', None) for e in self.snapshot.elements)
        for element_id, count in counts.items():
            if count > 1:
                self._add_issue(
                    ValidationIssueLevel.ERROR, SnapshotIssueCode.ELEM_DUP_ID,
                    element_id=element_id, count=count,
                )

    def _check_parameters(self, element: ElementBase):
        if isinstance(element, (Resistor, Wire, LightBulb)):
            self._require_non_negative(element, "resistance", element.resistance)
        if isinstance(element, VoltageSource):
            self._require_non_negative(element, "internal_resistance", element.internal_resistance)
        if isinstance(element, Battery):
            self._require_finite(element, "voltage", element.voltage)
        if isinstance(element, ACVoltageSource):
            self._require_finite(element, "amplitude", element.amplitude)
            self._require_non_negative(element, "frequency", element.frequency)
            self._require_finite(element, "phase", element.phase)
        if isinstance(element, Capacitor):
            self._require_positive(element, "capacitance", element.capacitance)
        if isinstance(element, Inductor):
            self._require_positive(element, "inductance", element.inductance)
        if isinstance(element, Fuse):
            self._require_positive(element, "current_rating", element.current_rating)

    def _require_finite(self, element: ElementBase, name: str, value: float) -> bool:
        if not math.isfinite(value):
            self._add_issue(
                ValidationIssueLevel.ERROR, SnapshotIssueCode.PARAM_NOT_FINITE,
                element_id=element.element_id, parameter_name=name, value=value,
            )
            return False
        return True

    def _require_non_negative(self, element: ElementBase, name: str, value: float):
        if self._require_finite(element, name, value) and value < 0:
            self._add_issue(
                ValidationIssueLevel.ERROR, SnapshotIssueCode.PARAM_NEGATIVE,
                element_id=element.element_id, parameter_name=name, value=value,
            )

    def _require_positive(self, element: ElementBase, name: str, value: float):
        if self._require_finite(element, name, value) and value <= 0:
            self._add_issue(
                ValidationIssueLevel.ERROR, SnapshotIssueCode.PARAM_NON_POSITIVE,
                element_id=element.element_id, parameter_name=name, value=value,
            )

    def _check_dangling_nodes(self):
        connections: Dict[Hashable, List[str]] = {}
        for element in self.snapshot.elements:
            if not isinstance(element, ElementBase):
                continue
            connections.setdefault(element.node0, []).append(element.element_id)
            if element.node1 != element.node0:
                connections.setdefault(element.node1, []).append(element.element_id)
        for node, element_ids in connections.items():
            if len(element_ids) == 1:
                self._add_issue(
                    ValidationIssueLevel.WARNING, SnapshotIssueCode.NODE_DANGLING,
                    node=node, element_id=element_ids[0],
                )
