# --- src/cksim_core/units.py ---
import logging
from typing import Union

import pint

logger = logging.getLogger(__name__)
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.debug("Pint Unit Registry initialized.")


def to_magnitude(value: Union[str, int, float, Quantity], unit: str) -> float:
    """
    Converts a user value into a float in the given base unit.

    Bare numbers are taken to already be in `unit`. Strings are parsed by pint,
    so "4.7 kohm" and "10 ms" both work. Raises pint.DimensionalityError when the
    parsed quantity cannot be expressed in `unit`.
    """
    if isinstance(value, bool):
        raise TypeError(f"Boolean value '{value}' is not a physical quantity.")
    if isinstance(value, (int, float)):
        return float(value)
    quantity = value if isinstance(value, Quantity) else ureg.Quantity(value)
    if quantity.unitless:
        # A plain numeric string such as "9" carries no unit; treat it as the base unit.
        return float(quantity.magnitude)
    return float(quantity.to(unit).magnitude)
