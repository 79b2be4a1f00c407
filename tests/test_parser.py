# tests/test_parser.py
import textwrap

import pytest

from cksim_core import (
    NetlistParser, load_circuit, run_frame, CircuitBuildError, ComponentError,
    Battery, Resistor, Capacitor, Switch, ACVoltageSource,
)
from cksim_core.parser import ParsingError, SchemaValidationError


@pytest.fixture
def parser():
    return NetlistParser()


@pytest.fixture
def write_yaml(tmp_path):
    def _write(content: str, name: str = "circuit.yaml"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path
    return _write


RC_CIRCUIT = """
    circuit_name: rc_charge
    elements:
      - {id: B1, type: Battery, nodes: [gnd, a], parameters: {voltage: "9 V"}}
      - {id: R1, type: Resistor, nodes: [a, b], parameters: {resistance: "1 kohm"}}
      - id: C1
        type: Capacitor
        nodes: [b, gnd]
        parameters:
          capacitance: "10 mF"
          initial_voltage: "1.5 V"
      - {id: S1, type: Switch, nodes: [b, c], parameters: {closed: true}}
    solver:
      min_dt: "2 ms"
      error_threshold: 1e-6
"""


class TestNetlistParser:

    def test_parse_valid_circuit(self, parser, write_yaml):
        parsed = parser.parse(write_yaml(RC_CIRCUIT))
        snapshot = parsed.snapshot

        assert snapshot.name == "rc_charge"
        assert snapshot.time == 0.0
        assert [e.element_id for e in snapshot.elements] == ["B1", "R1", "C1", "S1"]

        battery, resistor, capacitor, switch = snapshot.elements
        assert isinstance(battery, Battery) and battery.voltage == pytest.approx(9.0)
        assert isinstance(resistor, Resistor) and resistor.resistance == pytest.approx(1000.0)
        assert isinstance(capacitor, Capacitor) and capacitor.capacitance == pytest.approx(0.01)
        assert capacitor.state.voltage_drop == pytest.approx(1.5)
        assert isinstance(switch, Switch) and switch.closed

        assert parsed.solver_config.min_dt == pytest.approx(0.002)
        assert parsed.solver_config.error_threshold == pytest.approx(1e-6)

    def test_parsed_circuit_can_be_solved(self, write_yaml):
        parsed = load_circuit(write_yaml(RC_CIRCUIT))
        result = run_frame(parsed.snapshot, 1.0 / 60.0, parsed.solver_config)
        assert result.current("R1") > 0.0

    def test_integer_nodes_and_plain_numbers(self, parser, write_yaml):
        path = write_yaml("""
            time: 2.5
            elements:
              - {id: V1, type: ACVoltageSource, nodes: [0, 1], parameters: {amplitude: 5, frequency: "50 Hz", phase: "90 deg"}}
              - {id: R1, type: Resistor, nodes: [1, 0], traversable: false}
        """)
        snapshot = parser.parse(path).snapshot
        source, resistor = snapshot.elements

        assert isinstance(source, ACVoltageSource)
        assert source.node0 == 0 and source.node1 == 1
        assert source.amplitude == 5.0
        assert source.frequency == pytest.approx(50.0)
        assert source.phase == pytest.approx(90.0)
        assert not resistor.traversable
        assert resistor.resistance == 10.0
        assert snapshot.time == 2.5
        assert snapshot.name == "circuit"

    def test_unknown_element_type(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: X1, type: Transistor, nodes: [a, b]}
        """)
        with pytest.raises(SchemaValidationError) as excinfo:
            parser.parse(path)
        assert "elements" in excinfo.value.errors

    def test_duplicate_ids(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: R1, type: Resistor, nodes: [a, b]}
              - {id: R1, type: Resistor, nodes: [b, a]}
        """)
        with pytest.raises(SchemaValidationError) as excinfo:
            parser.parse(path)
        assert "Duplicate" in str(excinfo.value)

    @pytest.mark.parametrize("nodes", ["[a]", "[a, b, c]"])
    def test_element_needs_exactly_two_nodes(self, parser, write_yaml, nodes):
        path = write_yaml(f"""
            elements:
              - {{id: R1, type: Resistor, nodes: {nodes}}}
        """)
        with pytest.raises(SchemaValidationError):
            parser.parse(path)

    def test_invalid_identifier(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: "R-1", type: Resistor, nodes: [a, b]}
        """)
        with pytest.raises(SchemaValidationError) as excinfo:
            parser.parse(path)
        assert "Forbidden character(s): ['-']" in str(excinfo.value)

    def test_unknown_solver_setting(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: R1, type: Resistor, nodes: [a, b]}
            solver:
              max_iterations: 3
        """)
        with pytest.raises(SchemaValidationError):
            parser.parse(path)

    def test_invalid_solver_value(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: R1, type: Resistor, nodes: [a, b]}
            solver:
              min_dt: "-1 ms"
        """)
        with pytest.raises(ParsingError) as excinfo:
            parser.parse(path)
        assert "min_dt" in excinfo.value.get_diagnostic_report()

    def test_wrong_dimension_is_a_component_error(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: B1, type: Battery, nodes: [a, b], parameters: {voltage: "9 ohm"}}
        """)
        with pytest.raises(ComponentError) as excinfo:
            parser.parse(path)
        assert excinfo.value.element_id == "B1"

    def test_undeclared_parameter_is_a_component_error(self, parser, write_yaml):
        path = write_yaml("""
            elements:
              - {id: R1, type: Resistor, nodes: [a, b], parameters: {capacitance: "1 F"}}
        """)
        with pytest.raises(ComponentError):
            parser.parse(path)

    def test_missing_file(self, parser, tmp_path):
        with pytest.raises(ParsingError) as excinfo:
            parser.parse(tmp_path / "missing.yaml")
        assert "not found" in excinfo.value.get_diagnostic_report()

    def test_invalid_yaml_syntax(self, parser, write_yaml):
        with pytest.raises(ParsingError):
            parser.parse(write_yaml("elements: [unclosed"))

    @pytest.mark.parametrize("content", ["", "- just\n- a list\n"])
    def test_empty_or_non_mapping_document(self, parser, write_yaml, content):
        with pytest.raises(ParsingError):
            parser.parse(write_yaml(content))


class TestLoadCircuit:

    def test_wraps_failures_in_circuit_build_error(self, write_yaml):
        path = write_yaml("""
            elements:
              - {id: B1, type: Battery, nodes: [a, b], parameters: {voltage: "9 ohm"}}
        """)
        with pytest.raises(CircuitBuildError) as excinfo:
            load_circuit(path)
        assert "Circuit Element Error" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, ComponentError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CircuitBuildError) as excinfo:
            load_circuit(tmp_path / "missing.yaml")
        assert "YAML Parsing or File Error" in str(excinfo.value)
