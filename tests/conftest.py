# tests/conftest.py
import pytest

from cksim_core import (
    CircuitSnapshot, SimulationCache, SolverConfig,
    Battery, Resistor, Capacitor, Inductor, Switch, DynamicState,
)


@pytest.fixture(autouse=True)
def clear_process_cache():
    """Topology results are cached per process; start every test from a cold cache."""
    SimulationCache.clear_process_cache()
    yield
    SimulationCache.clear_process_cache()


@pytest.fixture
def default_config():
    return SolverConfig()


def make_snapshot(*elements, time: float = 0.0, name: str = "TestCircuit") -> CircuitSnapshot:
    return CircuitSnapshot(elements=tuple(elements), time=time, name=name)


def series_loop(voltage: float = 12.0, resistances=(4.0, 2.0), nodes=("n0", "n1", "n2", "n3")):
    """
    A battery driving a chain of resistors back to its negative terminal.
    Battery B1 sits between nodes[0] (negative) and nodes[1] (positive).
    """
    elements = [Battery("B1", nodes[0], nodes[1], voltage=voltage)]
    chain = list(nodes[2:len(resistances) + 1]) + [nodes[0]]
    previous = nodes[1]
    for i, (resistance, next_node) in enumerate(zip(resistances, chain), start=1):
        elements.append(Resistor(f"R{i}", previous, next_node, resistance=resistance))
        previous = next_node
    return make_snapshot(*elements)


def rc_circuit(voltage=9.0, resistance=9.0, capacitance=0.01, initial_voltage=0.0, initial_current=None):
    """Battery -> resistor -> capacitor -> back to ground."""
    if initial_current is None:
        initial_current = (voltage - initial_voltage) / resistance
    return make_snapshot(
        Battery("B1", "gnd", "a", voltage=voltage),
        Resistor("R1", "a", "b", resistance=resistance),
        Capacitor("C1", "b", "gnd", capacitance=capacitance,
                  state=DynamicState(voltage_drop=initial_voltage, current=initial_current)),
    )


def rl_circuit(voltage=5.0, resistance=10.0, inductance=1.0):
    """Battery -> resistor -> inductor -> back to ground, inductor initially carrying no current."""
    return make_snapshot(
        Battery("B1", "gnd", "a", voltage=voltage),
        Resistor("R1", "a", "b", resistance=resistance),
        Inductor("L1", "b", "gnd", inductance=inductance,
                 state=DynamicState(voltage_drop=voltage, current=0.0)),
    )


def open_switch_circuit(voltage=9.0, closed=False):
    """Battery, resistor and switch in one loop. The switch is open unless `closed`."""
    return make_snapshot(
        Battery("B1", "a", "b", voltage=voltage),
        Resistor("R1", "b", "c", resistance=10.0),
        Switch("S1", "c", "a", closed=closed),
    )
