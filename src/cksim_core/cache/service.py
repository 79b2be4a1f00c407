# src/cksim_core/cache/service.py
"""
Two-scope cache used by the analysis services.

The 'process' scope holds topology partitions keyed by circuit structure. A caller
that edits its circuit between frames produces a new key per edit, so that scope
is a bounded LRU rather than a plain dict.
"""
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

#: Upper bound on structurally distinct circuits remembered per process.
PROCESS_CACHE_MAX_ENTRIES = 256

_SCOPES = ('run', 'process')


class SimulationCache:
    """
    - 'run': owned by this instance. A `TransientSimulation` keeps one instance for
             its whole lifetime, so entries survive from frame to frame of one circuit.
    - 'process': class-level and shared by every instance, least recently used
                 entries are evicted past PROCESS_CACHE_MAX_ENTRIES.
    """
    _process_cache: "OrderedDict[Tuple, Any]" = OrderedDict()

    def __init__(self):
        self._run_cache: Dict[Tuple, Any] = {}
        self.clear_stats()

    def get(self, key: Tuple, scope: str = 'run') -> Any:
        """Returns the cached value, or None on a miss."""
        cache = self._select(scope)
        if key not in cache:
            self._stats[scope]['misses'] += 1
            return None
        self._stats[scope]['hits'] += 1
        if scope == 'process':
            cache.move_to_end(key)
        return cache[key]

    def put(self, key: Tuple, value: Any, scope: str = 'run'):
        cache = self._select(scope)
        cache[key] = value
        if scope != 'process':
            return
        cache.move_to_end(key)
        while len(cache) > PROCESS_CACHE_MAX_ENTRIES:
            evicted, _ = cache.popitem(last=False)
            self._stats['process']['evictions'] += 1
            logger.debug(f"Evicted process cache entry {str(evicted)[:80]}")

    def get_or_compute(self, key: Tuple, compute: Callable[[], Any], scope: str = 'run') -> Any:
        value = self.get(key, scope)
        if value is None:
            value = compute()
            self.put(key, value, scope)
        return value

    def _select(self, scope: str):
        if scope == 'run':
            return self._run_cache
        if scope == 'process':
            return type(self)._process_cache
        raise ValueError(f"Invalid cache scope '{scope}'. Must be one of {_SCOPES}.")

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        return {scope: dict(counts) for scope, counts in self._stats.items()}

    def clear_stats(self):
        self._stats = {scope: {'hits': 0, 'misses': 0, 'evictions': 0} for scope in _SCOPES}

    @classmethod
    def clear_process_cache(cls):
        cls._process_cache.clear()
        logger.debug("Cleared the process-level topology cache.")
