# src/cksim_core/simulation/config.py
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import pint

from ..constants import (
    CAPACITOR_SERIES_RESISTANCE, CLAMP_MAGNITUDE, ERROR_THRESHOLD, MAX_RESISTANCE, MIN_DT,
    MINIMUM_RESISTANCE, PAUSED_DT, REAL_BULB_COEFFICIENT, REAL_BULB_COLD_RESISTANCE,
    REAL_BULB_ITERATIONS, REAL_BULB_LOG_BASE,
)
from ..units import to_magnitude

logger = logging.getLogger(__name__)

class ConfigParsingError(ValueError):
    """Custom exception for errors during solver configuration parsing."""
    pass


@dataclass(frozen=True)
class SolverConfig:
    """
    Tunables of the per-frame solver. `error_threshold` and `min_dt` trade accuracy
    for work; they are not physical constants.
    """
    error_threshold: float = ERROR_THRESHOLD
    min_dt: float = MIN_DT
    paused_dt: float = PAUSED_DT
    resistance_floor: float = MINIMUM_RESISTANCE
    max_resistance: float = MAX_RESISTANCE
    capacitor_series_resistance: float = CAPACITOR_SERIES_RESISTANCE
    clamp_magnitude: float = CLAMP_MAGNITUDE
    bulb_iterations: int = REAL_BULB_ITERATIONS
    bulb_cold_resistance: float = REAL_BULB_COLD_RESISTANCE
    bulb_coefficient: float = REAL_BULB_COEFFICIENT
    bulb_log_base: float = REAL_BULB_LOG_BASE
    fuse_trip_delay: float = 0.0
    strict_numerics: bool = False

    def __post_init__(self):
        if self.error_threshold <= 0:
            raise ConfigParsingError("error_threshold must be positive.")
        if self.min_dt <= 0:
            raise ConfigParsingError("min_dt must be positive.")
        if self.resistance_floor <= 0:
            raise ConfigParsingError("resistance_floor must be positive.")
        if self.bulb_iterations < 1:
            raise ConfigParsingError("bulb_iterations must be at least 1.")
        if self.bulb_log_base <= 1:
            raise ConfigParsingError("bulb_log_base must be greater than 1.")


# Unit each configurable quantity is expressed in. None means a plain number or flag.
_CONFIG_UNITS: Dict[str, Optional[str]] = {
    "error_threshold": None,
    "min_dt": "second",
    "paused_dt": "second",
    "resistance_floor": "ohm",
    "max_resistance": "ohm",
    "capacitor_series_resistance": "ohm",
    "clamp_magnitude": None,
    "bulb_iterations": None,
    "bulb_cold_resistance": "ohm",
    "bulb_coefficient": None,
    "bulb_log_base": None,
    "fuse_trip_delay": "second",
    "strict_numerics": None,
}


def parse_solver_config(raw_solver_config: Optional[Dict[str, Any]]) -> SolverConfig:
    """
    Parses a raw 'solver' mapping into a SolverConfig. Missing keys keep their
    defaults; quantities may be given as pint strings such as "1 ms".
    """
    if not raw_solver_config:
        return SolverConfig()
    unknown = sorted(set(raw_solver_config) - {f.name for f in fields(SolverConfig)})
    if unknown:
        raise ConfigParsingError(f"Unknown solver setting(s): {unknown}")
    try:
        values: Dict[str, Any] = {}
        for name, raw_value in raw_solver_config.items():
            unit = _CONFIG_UNITS[name]
            if name == "strict_numerics":
                values[name] = bool(raw_value)
            elif name == "bulb_iterations":
                values[name] = int(raw_value)
            elif unit is None:
                values[name] = float(raw_value)
            else:
                values[name] = to_magnitude(raw_value, unit)
        config = SolverConfig(**values)
    except (ValueError, TypeError, pint.DimensionalityError, pint.UndefinedUnitError) as e:
        if isinstance(e, ConfigParsingError):
            raise
        raise ConfigParsingError(f"Failed to parse solver configuration: {e}") from e
    logger.debug(f"Parsed solver configuration: {config}")
    return config
