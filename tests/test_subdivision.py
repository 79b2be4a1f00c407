# tests/test_subdivision.py
import math

import pytest

from cksim_core.errors import FrameworkLogicError
from cksim_core.simulation import TimestepSubdivisions


class ExactDecay:
    """y' = -y integrated exactly: halving the step never changes the answer."""

    def __init__(self):
        self.updates = 0

    def update(self, state, dt):
        self.updates += 1
        return state * math.exp(-dt)

    def distance(self, a, b):
        return abs(a - b)


class EulerDecay(ExactDecay):
    """Forward Euler on y' = -y: the coarse/fine gap shrinks with the step."""

    def update(self, state, dt):
        self.updates += 1
        return state * (1.0 - dt)


class NanDistance(ExactDecay):
    def distance(self, a, b):
        return float("nan")


class TestTimestepSubdivisions:

    def test_exact_integrator_accepts_the_whole_step(self):
        steppable = ExactDecay()
        steps = TimestepSubdivisions(error_threshold=1e-9, min_dt=1e-3).step_in_time_with_history(1.0, steppable, 1.0)

        assert len(steps) == 1
        assert steps[0].dt == 1.0
        assert steps[0].state == pytest.approx(math.exp(-1.0))
        assert steppable.updates == 3

    def test_inexact_integrator_is_subdivided(self):
        steps = TimestepSubdivisions(error_threshold=1e-3, min_dt=1e-4).step_in_time_with_history(
            1.0, EulerDecay(), 1.0
        )

        assert len(steps) > 1
        assert sum(s.dt for s in steps) == pytest.approx(1.0)
        assert all(s.dt <= 0.0625 for s in steps)
        assert steps[-1].state == pytest.approx(math.exp(-1.0), abs=0.02)

    def test_tighter_threshold_is_more_accurate(self):
        loose = TimestepSubdivisions(error_threshold=1e-2, min_dt=1e-5).step_in_time_with_history(
            1.0, EulerDecay(), 1.0
        )
        tight = TimestepSubdivisions(error_threshold=1e-4, min_dt=1e-5).step_in_time_with_history(
            1.0, EulerDecay(), 1.0
        )
        exact = math.exp(-1.0)
        assert len(tight) > len(loose)
        assert abs(tight[-1].state - exact) < abs(loose[-1].state - exact)

    def test_minimum_step_bounds_the_recursion(self):
        steppable = EulerDecay()
        steps = TimestepSubdivisions(error_threshold=1e-15, min_dt=0.1).step_in_time_with_history(1.0, steppable, 1.0)

        assert len(steps) == 16
        assert all(s.dt == 0.0625 for s in steps)
        assert sum(s.dt for s in steps) == pytest.approx(1.0)

    def test_steps_are_ordered_and_chained(self):
        steps = TimestepSubdivisions(error_threshold=1e-15, min_dt=0.25).step_in_time_with_history(
            1.0, EulerDecay(), 1.0
        )
        values = [s.state for s in steps]
        assert values == sorted(values, reverse=True)
        assert len(steps) == 4
        assert values[-1] == pytest.approx(0.75 ** 4)

    def test_paused_step_is_solved_once(self):
        steppable = EulerDecay()
        controller = TimestepSubdivisions(error_threshold=1e-15, min_dt=1e-9, paused_dt=1e-6)
        steps = controller.step_in_time_with_history(1.0, steppable, 1e-6)

        assert len(steps) == 1
        assert steppable.updates == 1
        assert steps[0].state == pytest.approx(1.0 - 1e-6)

    @pytest.mark.parametrize("total_time", [0.0, -1.0])
    def test_non_positive_interval_is_rejected(self, total_time):
        with pytest.raises(ValueError):
            TimestepSubdivisions(1e-5, 1e-3).step_in_time_with_history(1.0, ExactDecay(), total_time)

    def test_nan_error_estimate_is_a_framework_error(self):
        with pytest.raises(FrameworkLogicError):
            TimestepSubdivisions(1e-5, 1e-3).step_in_time_with_history(1.0, NanDistance(), 1.0)
