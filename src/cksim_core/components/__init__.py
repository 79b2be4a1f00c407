# src/cksim_core/components/__init__.py
import logging
logger = logging.getLogger(__name__)

from .base import ElementBase, DynamicState, NodeId, ELEMENT_REGISTRY, register_element
from .exceptions import ComponentError
# Importing the variants triggers their registration
from .elements import (
    Resistor, Wire, SeriesAmmeter, Switch, Fuse, LightBulb,
    VoltageSource, Battery, ACVoltageSource, Capacitor, Inductor,
    CircuitElement, RESISTIVE_TYPES, DYNAMIC_TYPES,
)

logger.debug(f"Available element types: {list(ELEMENT_REGISTRY.keys())}")

__all__ = [
    "ElementBase", "DynamicState", "NodeId", "ELEMENT_REGISTRY", "register_element",
    "ComponentError",
    "Resistor", "Wire", "SeriesAmmeter", "Switch", "Fuse", "LightBulb",
    "VoltageSource", "Battery", "ACVoltageSource", "Capacitor", "Inductor",
    "CircuitElement", "RESISTIVE_TYPES", "DYNAMIC_TYPES",
]
