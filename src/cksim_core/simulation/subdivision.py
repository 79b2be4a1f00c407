# src/cksim_core/simulation/subdivision.py
"""
Adaptive timestep subdivision.

A step of length h is solved once ("coarse") and as two consecutive half steps
("fine"). If the two disagree by less than the error threshold, the fine result
is accepted. Otherwise each half is subdivided again on its own. Steps at or below
the minimum length are accepted without comparison, which bounds the recursion
depth at log2(dt / min_dt).
"""
import logging
import math
from dataclasses import dataclass
from typing import Generic, List, Optional, Protocol, TypeVar

from ..errors import FrameworkLogicError

logger = logging.getLogger(__name__)

S = TypeVar("S")


class Steppable(Protocol[S]):
    def update(self, state: S, dt: float) -> S:
        ...

    def distance(self, a: S, b: S) -> float:
        ...


@dataclass(frozen=True)
class StepRecord(Generic[S]):
    """An accepted step: its length and the state at its end."""
    dt: float
    state: S


class TimestepSubdivisions:
    def __init__(self, error_threshold: float, min_dt: float, paused_dt: Optional[float] = None):
        self.error_threshold = error_threshold
        self.min_dt = min_dt
        self.paused_dt = paused_dt

    def step_in_time_with_history(self, state: S, steppable: Steppable, total_time: float) -> List[StepRecord]:
        """
        Advances `state` by `total_time` and returns every accepted step in order.
        The last record's state is the end-of-frame state.
        """
        if not total_time > 0:
            raise ValueError(f"Cannot integrate over a non-positive interval ({total_time!r}).")
        if self.paused_dt is not None and total_time == self.paused_dt:
            return [StepRecord(total_time, steppable.update(state, total_time))]

        steps = self._search(state, steppable, total_time, coarse=None)
        logger.debug(f"Integrated {total_time:.6g} s in {len(steps)} accepted step(s).")
        return steps

    def _search(self, state: S, steppable: Steppable, dt: float, coarse: Optional[S]) -> List[StepRecord]:
        if dt <= self.min_dt:
            return [StepRecord(dt, coarse if coarse is not None else steppable.update(state, dt))]

        if coarse is None:
            coarse = steppable.update(state, dt)
        first_half = steppable.update(state, dt / 2)
        fine = steppable.update(first_half, dt / 2)

        error = steppable.distance(coarse, fine)
        if math.isnan(error):
            raise FrameworkLogicError(f"Subdivision error estimate is NaN for a step of {dt!r} s.")
        if error < self.error_threshold:
            return [StepRecord(dt, fine)]

        # The first half's coarse solve is already known.
        left = self._search(state, steppable, dt / 2, coarse=first_half)
        right = self._search(left[-1].state, steppable, dt / 2, coarse=None)
        return left + right
