# --- src/cksim_core/constants.py ---
import logging

logger = logging.getLogger(__name__)

# --- Resistance limits ---

#: Smallest resistance handed to the linear solver. Wires, ammeters and closed
#: switches are lifted to this floor so no conductance is infinite.
#: Value: 1.1e-10 ohm.
MINIMUM_RESISTANCE: float = 1.1e-10

#: Resistance of an open switch or a tripped fuse. Large but finite, so the
#: element still belongs to its group structurally.
MAX_RESISTANCE: float = 1.0e9

#: Series resistance inserted behind every capacitor companion model. Keeps a
#: capacitor placed directly across an ideal source solvable.
CAPACITOR_SERIES_RESISTANCE: float = 1.0e-4

#: Stand-in for a zero resistance when writing a SPICE deck.
SPICE_MINIMUM_RESISTANCE: float = 1.0e-9

# --- Timestep subdivision ---

#: Frame length that signals a paused simulation; solved once, never subdivided.
PAUSED_DT: float = 1.0e-6

#: Subdivision floor in seconds. Steps at or below this length are accepted as-is.
MIN_DT: float = 1.0e-3

#: Default acceptance threshold on the coarse vs. fine discrepancy.
ERROR_THRESHOLD: float = 1.0e-5

# --- Write-back guards ---

#: Magnitude bound applied to dynamic state before it is persisted.
CLAMP_MAGNITUDE: float = 1.0e20

# --- Empirical light bulb ---

REAL_BULB_COLD_RESISTANCE: float = 10.0
REAL_BULB_COEFFICIENT: float = 3.0
REAL_BULB_LOG_BASE: float = 2.0
REAL_BULB_ITERATIONS: int = 10

# --- Fuse ---

FUSE_DEFAULT_CURRENT_RATING: float = 4.0
#: Untripped fuse resistance is FUSE_RESISTANCE_SCALE / current_rating.
FUSE_RESISTANCE_SCALE: float = 0.06
#: Current must exceed the rating by more than this before the trip timer runs.
FUSE_CURRENT_TOLERANCE: float = 1.0e-6

# --- AC source defaults ---

AC_DEFAULT_AMPLITUDE: float = 9.0
AC_DEFAULT_FREQUENCY: float = 0.5

logger.debug("Defined core constants: MINIMUM_RESISTANCE, MAX_RESISTANCE, MIN_DT, CLAMP_MAGNITUDE")
