"""
Explicit dependency graph for multi-curve construction.

Curves that depend on other curves (projection curves discounted on an OIS
curve, cross-currency curves using a foreign discount curve) are registered
as named nodes with their upstream dependencies. The graph:

- orders builds topologically and rejects cycles up front
- caches one snapshot per node together with the versions it was built from
- rebuilds a node (and anything downstream) only when an input version changes
"""

import logging
import threading
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError
from .quotes import version_of

logger = logging.getLogger(__name__)

Builder = Callable[[Dict[str, Any]], Any]


@dataclass
class _GraphNode:
    name: str
    builder: Builder
    depends_on: Tuple[str, ...]
    inputs: Tuple[Any, ...]
    lock: threading.RLock = field(default_factory=threading.RLock)
    current: Optional[Tuple[Hashable, Any]] = None


class CurveGraph:
    """
    Directed acyclic graph of curve builders.

    Example:
        graph = CurveGraph()
        graph.add("ois", lambda deps: build_ois(), inputs=ois_quotes)
        graph.add("euribor6m", lambda deps: build_6m(deps["ois"]), depends_on=["ois"])
        curve = graph.get("euribor6m")
    """

    def __init__(self):
        self._nodes: Dict[str, _GraphNode] = {}
        self._lock = threading.RLock()

    def add(
        self,
        name: str,
        builder: Builder,
        depends_on: Sequence[str] = (),
        inputs: Sequence[Any] = ()
    ) -> None:
        """
        Register a node.

        Args:
            name: Unique node name
            builder: Callable receiving {dependency name: built object}
            depends_on: Names of upstream nodes
            inputs: Quotes/handles whose versions invalidate the node
        """
        with self._lock:
            if name in self._nodes:
                raise ConfigurationError(f"Curve '{name}' is already registered")
            self._nodes[name] = _GraphNode(
                name=name,
                builder=builder,
                depends_on=tuple(depends_on),
                inputs=tuple(inputs),
            )
            try:
                self.order()
            except ConfigurationError:
                del self._nodes[name]
                raise

    def order(self) -> List[str]:
        """Node names in build order (dependencies first)."""
        sorter = TopologicalSorter()
        for node in self._nodes.values():
            missing = [d for d in node.depends_on if d not in self._nodes]
            if missing:
                raise ConfigurationError(
                    f"Curve '{node.name}' depends on unknown curve(s): {missing}"
                )
            sorter.add(node.name, *node.depends_on)
        try:
            return list(sorter.static_order())
        except CycleError as exc:
            raise ConfigurationError(
                f"Circular curve dependency: {' -> '.join(exc.args[1])}"
            ) from exc

    def names(self) -> List[str]:
        return list(self._nodes)

    def version(self, name: str) -> Hashable:
        """Version key of a node: its inputs plus its dependencies' versions."""
        node = self._node(name)
        return (
            tuple(version_of(i) for i in node.inputs),
            tuple(self.version(d) for d in node.depends_on),
        )

    def is_stale(self, name: str) -> bool:
        node = self._node(name)
        current = node.current
        return current is None or current[0] != self.version(name)

    def get(self, name: str) -> Any:
        """Return the node's snapshot, rebuilding it and its upstream if stale."""
        node = self._node(name)
        deps = {d: self.get(d) for d in node.depends_on}

        key = self.version(name)
        current = node.current
        if current is not None and current[0] == key:
            return current[1]

        with node.lock:
            key = self.version(name)
            current = node.current
            if current is not None and current[0] == key:
                return current[1]
            logger.debug("Building curve '%s'", name)
            value = node.builder(deps)
            node.current = (key, value)
            return value

    def build_all(self) -> Dict[str, Any]:
        """Build every node in dependency order."""
        return {name: self.get(name) for name in self.order()}

    def _node(self, name: str) -> _GraphNode:
        try:
            return self._nodes[name]
        except KeyError:
            raise ConfigurationError(f"Unknown curve '{name}'") from None


__all__ = ["CurveGraph"]
