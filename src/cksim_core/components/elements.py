# src/cksim_core/components/elements.py
"""
The closed set of element variants understood by the engine.

Each variant carries only the numeric parameters the solver needs. Deciding how a
variant enters the linear system happens in one place, the companion model builder.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union

from ..constants import (
    AC_DEFAULT_AMPLITUDE, AC_DEFAULT_FREQUENCY, FUSE_CURRENT_TOLERANCE,
    FUSE_DEFAULT_CURRENT_RATING, FUSE_RESISTANCE_SCALE, MAX_RESISTANCE,
    MINIMUM_RESISTANCE, REAL_BULB_COEFFICIENT, REAL_BULB_COLD_RESISTANCE, REAL_BULB_LOG_BASE,
)
from .base import DynamicState, ElementBase, register_element

logger = logging.getLogger(__name__)


# --- Resistive elements ---

@register_element("Resistor")
@dataclass(frozen=True)
class Resistor(ElementBase):
    resistance: float = 10.0

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"resistance": "ohm"}


@register_element("Wire")
@dataclass(frozen=True)
class Wire(ElementBase):
    resistance: float = 0.0

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"resistance": "ohm"}


@register_element("SeriesAmmeter")
@dataclass(frozen=True)
class SeriesAmmeter(ElementBase):
    """Ideal ammeter placed in series. Contributes a floor resistance only."""

    @property
    def resistance(self) -> float:
        return 0.0


@register_element("Switch")
@dataclass(frozen=True)
class Switch(ElementBase):
    closed: bool = False

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"closed": None}

    @property
    def resistance(self) -> float:
        return MINIMUM_RESISTANCE if self.closed else MAX_RESISTANCE

    def is_traversable(self) -> bool:
        # An open switch can never close a loop, whatever the caller's flag says.
        return self.traversable and self.closed

    def toggled(self) -> "Switch":
        return replace(self, closed=not self.closed)


@register_element("Fuse")
@dataclass(frozen=True)
class Fuse(ElementBase):
    """
    A resistor that trips to MAX_RESISTANCE once its current stays above the
    rating for longer than the trip delay. It remains tripped until `reset()`.
    """
    current_rating: float = FUSE_DEFAULT_CURRENT_RATING
    is_tripped: bool = False
    time_exceeded: float = 0.0

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"current_rating": "ampere", "is_tripped": None}

    @property
    def resistance(self) -> float:
        if self.is_tripped:
            return MAX_RESISTANCE
        return FUSE_RESISTANCE_SCALE / self.current_rating

    def after_frame(self, current: float, dt: float, trip_delay: float = 0.0) -> "Fuse":
        """Returns the fuse advanced by one frame that carried `current`."""
        if abs(current) > self.current_rating + FUSE_CURRENT_TOLERANCE:
            time_exceeded = self.time_exceeded + dt
        else:
            time_exceeded = 0.0
        tripped = self.is_tripped or time_exceeded > trip_delay
        if tripped and not self.is_tripped:
            logger.info(f"Fuse '{self.element_id}' tripped after {time_exceeded:.4g} s above {self.current_rating} A.")
        return replace(self, is_tripped=tripped, time_exceeded=time_exceeded)

    def reset(self) -> "Fuse":
        return replace(self, is_tripped=False, time_exceeded=0.0)


@register_element("LightBulb")
@dataclass(frozen=True)
class LightBulb(ElementBase):
    """
    A bulb is an ordinary resistor unless `is_real` is set. A real bulb's resistance
    follows its voltage through an empirical curve, settled by a fixed-point loop.
    """
    resistance: float = REAL_BULB_COLD_RESISTANCE
    is_real: bool = False

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"resistance": "ohm", "is_real": None}

    @staticmethod
    def empirical_resistance(
        voltage: float,
        cold_resistance: float = REAL_BULB_COLD_RESISTANCE,
        coefficient: float = REAL_BULB_COEFFICIENT,
        log_base: float = REAL_BULB_LOG_BASE,
    ) -> float:
        v = abs(voltage)
        return cold_resistance + coefficient * v / math.log(v + log_base, log_base)


# --- Sources ---

@dataclass(frozen=True)
class VoltageSource(ElementBase):
    """Ideal source driving node1 `voltage_at(t)` volts above node0."""
    internal_resistance: float = 0.0

    def voltage_at(self, time: float) -> float:
        raise NotImplementedError


@register_element("Battery")
@dataclass(frozen=True)
class Battery(VoltageSource):
    voltage: float = 9.0

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"voltage": "volt", "internal_resistance": "ohm"}

    def voltage_at(self, time: float) -> float:
        return self.voltage


@register_element("ACVoltageSource")
@dataclass(frozen=True)
class ACVoltageSource(VoltageSource):
    amplitude: float = AC_DEFAULT_AMPLITUDE
    frequency: float = AC_DEFAULT_FREQUENCY
    phase: float = 0.0  # degrees

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"amplitude": "volt", "frequency": "hertz", "phase": "degree", "internal_resistance": "ohm"}

    def voltage_at(self, time: float) -> float:
        return -self.amplitude * math.sin(2 * math.pi * self.frequency * time + self.phase * math.pi / 180)


# --- Dynamic elements ---

@register_element("Capacitor")
@dataclass(frozen=True)
class Capacitor(ElementBase):
    capacitance: float = 0.1
    state: DynamicState = field(default_factory=DynamicState)

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"capacitance": "farad", "initial_voltage": "volt", "initial_current": "ampere"}

    @classmethod
    def _constructor_kwargs(cls, converted: Dict[str, Any]) -> Dict[str, Any]:
        return _split_initial_state(converted)


@register_element("Inductor")
@dataclass(frozen=True)
class Inductor(ElementBase):
    inductance: float = 5.0
    state: DynamicState = field(default_factory=DynamicState)

    @classmethod
    def declare_parameters(cls) -> Dict[str, Optional[str]]:
        return {"inductance": "henry", "initial_voltage": "volt", "initial_current": "ampere"}

    @classmethod
    def _constructor_kwargs(cls, converted: Dict[str, Any]) -> Dict[str, Any]:
        return _split_initial_state(converted)


def _split_initial_state(converted: Dict[str, Any]) -> Dict[str, Any]:
    kwargs = dict(converted)
    voltage = kwargs.pop("initial_voltage", 0.0)
    current = kwargs.pop("initial_current", 0.0)
    kwargs["state"] = DynamicState(voltage_drop=voltage, current=current)
    return kwargs


CircuitElement = Union[
    Resistor, Wire, SeriesAmmeter, Switch, Fuse, LightBulb,
    Battery, ACVoltageSource, Capacitor, Inductor,
]

#: Variants solved through a plain resistor primitive.
RESISTIVE_TYPES = (Resistor, Wire, SeriesAmmeter, Switch, Fuse, LightBulb)
DYNAMIC_TYPES = (Capacitor, Inductor)
