# tests/test_topology_analyzer.py
import pytest

from cksim_core import (
    TopologyAnalyzer, SimulationCache, partition, find_participants,
    Battery, Resistor, Wire, Switch, Capacitor,
)
from cksim_core.analysis import build_element_graph
from cksim_core.cache import create_topology_key
from tests.conftest import make_snapshot, open_switch_circuit


class TestPartition:

    def test_separate_loops_become_separate_groups(self):
        elements = [
            Battery("B1", "a", "b"), Resistor("R1", "b", "a"),
            Battery("B2", "x", "y"), Resistor("R2", "y", "z"), Resistor("R3", "z", "x"),
        ]
        groups = partition(elements)

        assert [g.group_id for g in groups] == ["group:B1", "group:B2"]
        assert groups[0].element_ids == ("B1", "R1")
        assert groups[1].element_ids == ("B2", "R2", "R3")
        assert groups[0].nodes.isdisjoint(groups[1].nodes)

    def test_every_element_in_exactly_one_group(self):
        elements = [
            Battery("B1", 1, 2), Resistor("R1", 2, 3), Resistor("R2", 3, 1),
            Resistor("R3", 3, 4), Capacitor("C1", 5, 6), Wire("W1", 6, 7),
        ]
        groups = partition(elements)
        seen = [eid for g in groups for eid in g.element_ids]
        assert sorted(seen) == sorted(e.element_id for e in elements)
        assert len(seen) == len(set(seen))
        for i, a in enumerate(groups):
            for b in groups[i + 1:]:
                assert a.nodes.isdisjoint(b.nodes)

    def test_open_switch_stays_in_its_group(self):
        groups = partition(open_switch_circuit().elements)
        assert len(groups) == 1
        assert "S1" in groups[0].element_ids
        assert groups[0].participant_ids == frozenset()
        assert not groups[0].is_solvable

    def test_closed_switch_makes_the_loop_participate(self):
        groups = partition(open_switch_circuit(closed=True).elements)
        assert groups[0].participant_ids == frozenset({"B1", "R1", "S1"})
        assert groups[0].is_solvable

    def test_group_without_source_is_not_solvable(self):
        groups = partition([Resistor("R1", "a", "b"), Resistor("R2", "b", "a")])
        assert not groups[0].has_source
        assert groups[0].participant_ids == frozenset({"R1", "R2"})
        assert not groups[0].is_solvable

    def test_group_ids_follow_first_element(self):
        elements = [Resistor("R9", "p", "q"), Battery("B1", "q", "p")]
        assert partition(elements)[0].group_id == "group:R9"


class TestParticipants:

    def test_dangling_branch_does_not_participate(self):
        elements = [
            Battery("B1", "a", "b"), Resistor("R1", "b", "a"),
            Wire("W1", "b", "c"), Resistor("R2", "c", "d"),
        ]
        assert find_participants(elements) == frozenset({"B1", "R1"})

    def test_parallel_elements_both_participate(self):
        elements = [Battery("B1", "a", "b"), Resistor("R1", "b", "a"), Resistor("R2", "b", "a")]
        assert find_participants(elements) == frozenset({"B1", "R1", "R2"})

    def test_two_parallel_elements_alone_form_a_loop(self):
        elements = [Battery("B1", "a", "b"), Capacitor("C1", "a", "b")]
        assert find_participants(elements) == frozenset({"B1", "C1"})

    def test_self_loop_never_participates(self):
        elements = [Battery("B1", "a", "b"), Resistor("R1", "b", "a"), Resistor("R2", "a", "a")]
        assert "R2" not in find_participants(elements)

    def test_non_traversable_element_breaks_the_loop(self):
        elements = [
            Battery("B1", "a", "b"),
            Resistor("R1", "b", "c"),
            Resistor("R2", "c", "a", traversable=False),
        ]
        assert find_participants(elements) == frozenset()

    def test_element_graph_keeps_parallel_edges(self):
        graph = build_element_graph([Resistor("R1", "a", "b"), Resistor("R2", "a", "b")])
        assert graph.number_of_edges("a", "b") == 2

    def test_traversable_only_graph_skips_open_switches(self):
        graph = build_element_graph(open_switch_circuit().elements, traversable_only=True)
        assert not graph.has_edge("c", "a")


class TestTopologyAnalyzer:

    def test_analyze_maps_elements_to_groups(self):
        snapshot = make_snapshot(
            Battery("B1", "a", "b"), Resistor("R1", "b", "a"), Resistor("R2", "x", "y"),
        )
        results = TopologyAnalyzer(snapshot, SimulationCache()).analyze()

        assert results.element_to_group == {"B1": "group:B1", "R1": "group:B1", "R2": "group:R2"}
        assert results.participant_ids == frozenset({"B1", "R1"})
        assert results.get_group("group:R2").participant_ids == frozenset()
        with pytest.raises(KeyError):
            results.get_group("group:missing")

    def test_results_are_reused_across_cache_instances(self):
        snapshot = make_snapshot(Battery("B1", "a", "b"), Resistor("R1", "b", "a"))
        first = TopologyAnalyzer(snapshot, SimulationCache()).analyze()

        cache = SimulationCache()
        second = TopologyAnalyzer(snapshot, cache).analyze()
        assert second is first
        assert cache.get_stats()["process"]["hits"] == 1

    def test_parameter_changes_do_not_change_the_key(self):
        before = make_snapshot(Battery("B1", "a", "b", voltage=1.0), Resistor("R1", "b", "a", resistance=1.0))
        after = make_snapshot(Battery("B1", "a", "b", voltage=9.0), Resistor("R1", "b", "a", resistance=5.0))
        assert create_topology_key(before) == create_topology_key(after)

    def test_switch_toggle_changes_the_key(self):
        assert create_topology_key(open_switch_circuit()) != create_topology_key(open_switch_circuit(closed=True))

    def test_rejects_non_snapshot(self):
        with pytest.raises(TypeError):
            TopologyAnalyzer([Resistor("R1", "a", "b")], SimulationCache())
