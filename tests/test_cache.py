# tests/test_cache.py
import pytest

from cksim_core import SimulationCache
from cksim_core.cache import service


class TestSimulationCache:

    def test_run_scope_is_per_instance(self):
        first, second = SimulationCache(), SimulationCache()
        first.put(("k",), 1)
        assert first.get(("k",)) == 1
        assert second.get(("k",)) is None
        assert first.get_stats()["run"] == {"hits": 1, "misses": 0, "evictions": 0}
        assert second.get_stats()["run"]["misses"] == 1

    def test_process_scope_is_shared(self):
        SimulationCache().put(("k",), "shared", scope="process")
        assert SimulationCache().get(("k",), scope="process") == "shared"

    def test_get_or_compute_calls_the_factory_once(self):
        cache = SimulationCache()
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute(("k",), compute) == "value"
        assert cache.get_or_compute(("k",), compute) == "value"
        assert len(calls) == 1

    def test_process_scope_evicts_least_recently_used(self, monkeypatch):
        monkeypatch.setattr(service, "PROCESS_CACHE_MAX_ENTRIES", 2)
        cache = SimulationCache()
        cache.put(("a",), 1, scope="process")
        cache.put(("b",), 2, scope="process")
        cache.get(("a",), scope="process")
        cache.put(("c",), 3, scope="process")

        assert cache.get(("b",), scope="process") is None
        assert cache.get(("a",), scope="process") == 1
        assert cache.get_stats()["process"]["evictions"] == 1

    def test_invalid_scope(self):
        with pytest.raises(ValueError):
            SimulationCache().get(("k",), scope="global")

    def test_clear_stats(self):
        cache = SimulationCache()
        cache.get(("missing",))
        cache.clear_stats()
        assert cache.get_stats()["run"]["misses"] == 0
