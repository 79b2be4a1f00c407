# src/cksim_core/cache/__init__.py
from .service import SimulationCache
from .keys import create_topology_key

__all__ = ["SimulationCache", "create_topology_key"]
