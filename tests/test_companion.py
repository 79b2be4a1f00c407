# tests/test_companion.py
import pytest

from cksim_core import (
    Battery, ACVoltageSource, Resistor, Wire, Switch, Fuse, SeriesAmmeter, Capacitor, Inductor,
    LightBulb, DynamicState, SolverConfig, MnaInputError,
)
from cksim_core.constants import MAX_RESISTANCE, MINIMUM_RESISTANCE
from cksim_core.simulation import (
    CompanionModelBuilder, TransientCircuit, TransientState, TransientSteppable, SyntheticNode,
)
from cksim_core.simulation.companion import capacitor_state_from_voltage, inductor_state_from_voltage


@pytest.fixture
def builder():
    return CompanionModelBuilder(SolverConfig())


def transient(builder, *elements):
    return TransientCircuit(elements=tuple(elements), builder=builder, group_id="group:test")


class TestResistanceFloor:

    def test_zero_resistance_elements_are_lifted_to_the_floor(self, builder):
        assert builder.resistance_of(Wire("W1", "a", "b")) == MINIMUM_RESISTANCE
        assert builder.resistance_of(SeriesAmmeter("A1", "a", "b")) == MINIMUM_RESISTANCE
        assert builder.resistance_of(Switch("S1", "a", "b", closed=True)) == MINIMUM_RESISTANCE

    def test_open_switch_and_tripped_fuse_use_max_resistance(self, builder):
        assert builder.resistance_of(Switch("S1", "a", "b")) == MAX_RESISTANCE
        assert builder.resistance_of(Fuse("F1", "a", "b", is_tripped=True)) == MAX_RESISTANCE

    def test_ordinary_resistance_is_unchanged(self, builder):
        assert builder.resistance_of(Resistor("R1", "a", "b", resistance=47.0)) == 47.0
        assert builder.resistance_of(Fuse("F1", "a", "b", current_rating=4.0)) == pytest.approx(0.015)

    def test_custom_floor(self):
        builder = CompanionModelBuilder(SolverConfig(resistance_floor=1e-3))
        assert builder.resistance_of(Wire("W1", "a", "b")) == 1e-3


class TestCompanionBuild:

    def test_capacitor_uses_synthetic_nodes(self, builder):
        capacitor = Capacitor("C1", "a", "b", capacitance=2.0)
        mna, stamps = builder.build((capacitor,), time=0.1, dt=0.1)

        assert SyntheticNode("C1", "source") in mna.nodes
        assert SyntheticNode("C1", "plate") in mna.nodes
        assert stamps["C1"].resistor.resistance == pytest.approx(0.1 / 4.0)
        assert stamps["C1"].measure_node == SyntheticNode("C1", "plate")

    def test_inductor_companion_resistance(self, builder):
        inductor = Inductor("L1", "a", "b", inductance=3.0)
        _, stamps = builder.build((inductor,), time=0.5, dt=0.5)
        assert stamps["L1"].resistor.resistance == pytest.approx(12.0)

    def test_internal_resistance_adds_a_node(self, builder):
        battery = Battery("B1", "a", "b", voltage=9.0, internal_resistance=1.0)
        mna, stamps = builder.build((battery,), time=1.0, dt=1.0)
        assert SyntheticNode("B1", "internal") in mna.nodes
        assert stamps["B1"].resistor.resistance == 1.0

    @pytest.mark.parametrize("dt", [0.0, -0.1])
    def test_non_positive_step_is_rejected(self, builder, dt):
        with pytest.raises(MnaInputError):
            builder.build((Resistor("R1", "a", "b"),), time=0.0, dt=dt)


class TestTransientCircuit:

    def test_resistive_loop(self, builder):
        circuit = transient(
            builder,
            Battery("B1", "gnd", "a", voltage=9.0, internal_resistance=1.0),
            Resistor("R1", "a", "gnd", resistance=8.0),
        )
        solution = circuit.solve_propagate(time=0.1, dt=0.1)
        assert solution.current("B1") == pytest.approx(1.0)
        assert solution.current("R1") == pytest.approx(1.0)
        assert solution.voltage_drop("R1") == pytest.approx(8.0)
        assert solution.voltage_drop("B1") == pytest.approx(-8.0)
        assert set(solution.caller_node_voltages()) == {"gnd", "a"}

    def test_single_capacitor_step_matches_trapezoidal_rule(self, builder):
        circuit = transient(
            builder,
            Battery("B1", "gnd", "a", voltage=10.0),
            Resistor("R1", "a", "b", resistance=10.0),
            Capacitor("C1", "b", "gnd", capacitance=1.0),
        )
        solution = circuit.solve_propagate(time=0.2, dt=0.2)

        expected_current = 10.0 / (10.0 + 0.1 + 1e-4)
        assert solution.current("C1") == pytest.approx(expected_current, rel=1e-9)
        assert solution.voltage_drop("C1") == pytest.approx(0.1 * expected_current, rel=1e-9)

    def test_single_inductor_step_matches_trapezoidal_rule(self, builder):
        circuit = transient(
            builder,
            Battery("B1", "gnd", "a", voltage=10.0),
            Resistor("R1", "a", "b", resistance=10.0),
            Inductor("L1", "b", "gnd", inductance=1.0, state=DynamicState(voltage_drop=10.0, current=0.0)),
        )
        solution = circuit.solve_propagate(time=0.1, dt=0.1)

        assert solution.current("L1") == pytest.approx(2.0 / 3.0, rel=1e-9)
        assert solution.voltage_drop("L1") == pytest.approx(10.0 / 3.0, rel=1e-9)

    def test_updated_returns_new_state_without_mutating(self, builder):
        capacitor = Capacitor("C1", "b", "gnd", capacitance=1.0)
        circuit = transient(
            builder, Battery("B1", "gnd", "a", voltage=10.0), Resistor("R1", "a", "b", resistance=10.0), capacitor,
        )
        solution = circuit.solve_propagate(time=0.2, dt=0.2)
        advanced = circuit.updated(solution)

        assert circuit.elements[2] is capacitor
        assert capacitor.state == DynamicState()
        new_state = advanced.elements[2].state
        assert new_state.voltage_drop == pytest.approx(solution.voltage_drop("C1"))
        assert new_state.current == pytest.approx(solution.current("C1"))

    def test_state_helpers_agree_with_companion_solve(self, builder):
        capacitor = Capacitor("C1", "b", "gnd", capacitance=1.0, state=DynamicState(1.0, 0.5))
        inductor = Inductor("L1", "c", "gnd", inductance=2.0, state=DynamicState(3.0, 0.2))
        circuit = transient(
            builder,
            Battery("B1", "gnd", "a", voltage=10.0),
            Resistor("R1", "a", "b", resistance=10.0),
            capacitor,
            Resistor("R2", "a", "c", resistance=5.0),
            inductor,
        )
        solution = circuit.solve_propagate(time=0.05, dt=0.05)

        c_state = capacitor_state_from_voltage(capacitor, solution.voltage_drop("C1"), 0.05)
        l_state = inductor_state_from_voltage(inductor, solution.voltage_drop("L1"), 0.05)
        assert c_state.current == pytest.approx(solution.current("C1"), rel=1e-6)
        assert l_state.current == pytest.approx(solution.current("L1"), rel=1e-6)

    def test_sources_are_evaluated_at_the_step_end(self, builder):
        source = ACVoltageSource("V1", "gnd", "a", amplitude=10.0, frequency=1.0)
        circuit = transient(builder, source, Resistor("R1", "a", "gnd", resistance=5.0))

        solution = circuit.solve_propagate(time=0.25, dt=0.25)
        assert solution.current("R1") == pytest.approx(-2.0)

    def test_with_bulb_resistances(self, builder):
        circuit = transient(builder, Battery("B1", "a", "b"), LightBulb("L1", "b", "a", is_real=True))
        adjusted = circuit.with_bulb_resistances({"L1": 20.0})
        assert adjusted.elements[1].resistance == 20.0
        assert circuit.elements[1].resistance == 10.0


class TestTransientState:

    def test_update_advances_time_and_state(self, builder):
        circuit = transient(
            builder,
            Battery("B1", "gnd", "a", voltage=10.0),
            Resistor("R1", "a", "b", resistance=10.0),
            Capacitor("C1", "b", "gnd", capacitance=1.0),
        )
        state = TransientState(circuit=circuit, time=1.0)
        advanced = state.update(0.2)

        assert advanced.time == pytest.approx(1.2)
        assert advanced.solution is not None
        assert state.solution is None
        assert advanced.characteristic_array().shape == (2,)

    def test_distance_is_max_abs_difference(self, builder):
        steppable = TransientSteppable()
        a = TransientState(transient(builder, Capacitor("C1", "a", "b", state=DynamicState(1.0, 0.0))), 0.0)
        b = TransientState(transient(builder, Capacitor("C1", "a", "b", state=DynamicState(1.5, -0.25))), 0.0)
        assert steppable.distance(a, b) == pytest.approx(0.5)

    def test_distance_without_dynamic_elements_is_zero(self, builder):
        steppable = TransientSteppable()
        state = TransientState(transient(builder, Resistor("R1", "a", "b")), 0.0)
        assert steppable.distance(state, state) == 0.0
