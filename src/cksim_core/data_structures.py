# --- src/cksim_core/data_structures.py ---
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Tuple

from .components import CircuitElement, NodeId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitSnapshot:
    """
    The caller's circuit at one instant: every element with its parameters and
    persisted state, plus the simulation time the snapshot describes.

    The engine never mutates a snapshot. A solved frame produces new element
    instances, and `with_elements` builds the snapshot for the next frame.
    """
    elements: Tuple[CircuitElement, ...]
    time: float = 0.0
    name: str = "circuit"

    def __post_init__(self):
        # Accept any iterable of elements but store an immutable tuple.
        if not isinstance(self.elements, tuple):
            object.__setattr__(self, 'elements', tuple(self.elements))

    @property
    def element_map(self) -> Dict[str, CircuitElement]:
        return {element.element_id: element for element in self.elements}

    def get_element(self, element_id: str) -> CircuitElement:
        for element in self.elements:
            if element.element_id == element_id:
                return element
        raise KeyError(f"No element with id '{element_id}' in snapshot '{self.name}'.")

    def nodes(self) -> List[NodeId]:
        """All terminal node ids, in first-seen order."""
        seen: Dict[NodeId, None] = {}
        for element in self.elements:
            seen.setdefault(element.node0, None)
            seen.setdefault(element.node1, None)
        return list(seen)

    def with_elements(self, updated: Mapping[str, CircuitElement], time: Optional[float] = None) -> "CircuitSnapshot":
        """Returns a snapshot with the given elements swapped in by id, order preserved."""
        new_elements = tuple(updated.get(e.element_id, e) for e in self.elements)
        return replace(self, elements=new_elements, time=self.time if time is None else time)

    def __repr__(self):
        return f"CircuitSnapshot(name='{self.name}', time={self.time}, elements={len(self.elements)})"
