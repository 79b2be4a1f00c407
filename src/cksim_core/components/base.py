# src/cksim_core/components/base.py
"""
Base contracts for the flat circuit element model.

Every element is a frozen dataclass with an opaque, caller-owned id and two
terminal node ids. Elements never change in place: the engine hands back new
instances (via `dataclasses.replace`) carrying updated state for the next frame.
"""
import logging
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Hashable, Mapping, Optional, Type

import pint

from ..units import to_magnitude
from .exceptions import ComponentError

logger = logging.getLogger(__name__)

NodeId = Hashable


@dataclass(frozen=True)
class DynamicState:
    """
    Persisted integration state of a capacitor or inductor.

    `voltage_drop` is V(node0) - V(node1); `current` flows from node0 to node1
    through the element.
    """
    voltage_drop: float = 0.0
    current: float = 0.0


@dataclass(frozen=True)
class ElementBase:
    element_id: str
    node0: NodeId
    node1: NodeId
    traversable: bool = True

    element_type_str: ClassVar[str] = "ElementBase"

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        """
        Maps each netlist parameter name to the base unit it is converted into.
        A unit of None marks a plain (boolean) flag.
        """
        return {}

    @classmethod
    def from_parameters(
        cls,
        element_id: str,
        node0: NodeId,
        node1: NodeId,
        raw_parameters: Mapping[str, Any],
        traversable: bool = True,
    ) -> "ElementBase":
        """Builds an element from raw netlist values, converting units with pint."""
        declared = cls.declare_parameters()
        undeclared = sorted(set(raw_parameters) - set(declared))
        if undeclared:
            raise ComponentError(
                element_id=element_id,
                details=f"Parameter(s) {undeclared} are not declared by {cls.element_type_str}. Declared: {sorted(declared)}."
            )
        converted: Dict[str, Any] = {}
        for name, raw_value in raw_parameters.items():
            unit = declared[name]
            if unit is None:
                if isinstance(raw_value, str):
                    converted[name] = raw_value.strip().lower() in ("true", "yes", "on", "1")
                else:
                    converted[name] = bool(raw_value)
                continue
            try:
                converted[name] = to_magnitude(raw_value, unit)
            except (pint.DimensionalityError, pint.UndefinedUnitError, TypeError, ValueError) as e:
                raise ComponentError(
                    element_id=element_id,
                    details=f"Parameter '{name}' value '{raw_value}' cannot be converted to {unit}: {e}"
                ) from e
        return cls(element_id=element_id, node0=node0, node1=node1, traversable=traversable,
                   **cls._constructor_kwargs(converted))

    @classmethod
    def _constructor_kwargs(cls, converted: Dict[str, Any]) -> Dict[str, Any]:
        return converted

    def is_traversable(self) -> bool:
        return self.traversable

    def contains_node(self, node: NodeId) -> bool:
        return node == self.node0 or node == self.node1

    def opposite_node(self, node: NodeId) -> NodeId:
        if node == self.node0:
            return self.node1
        if node == self.node1:
            return self.node0
        raise ValueError(f"Node '{node}' is not a terminal of element '{self.element_id}'.")


# Netlist parameters that feed DynamicState rather than a dataclass field.
_STATE_PARAMETERS = frozenset({"initial_voltage", "initial_current"})

ELEMENT_REGISTRY: Dict[str, Type[ElementBase]] = {}


def register_element(type_str: str):
    """
    Class decorator that registers an element variant under its netlist type name,
    making it available to the NetlistParser.
    """
    def decorator(cls: Type[ElementBase]):
        if not issubclass(cls, ElementBase):
            raise TypeError(f"Class {cls.__name__} must inherit from ElementBase.")
        field_names = {f.name for f in fields(cls)}
        for param_name in cls.declare_parameters():
            if param_name not in field_names and param_name not in _STATE_PARAMETERS:
                raise TypeError(
                    f"Element '{type_str}' declares parameter '{param_name}' with no matching field."
                )
        if type_str in ELEMENT_REGISTRY:
            logger.warning(f"Element type '{type_str}' is being redefined/overwritten.")
        cls.element_type_str = type_str
        ELEMENT_REGISTRY[type_str] = cls
        logger.debug(f"Registered element type '{type_str}' -> {cls.__name__}")
        return cls
    return decorator
